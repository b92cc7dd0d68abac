"""Concurrent fan-out of one notification to many device tokens."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx

from recipehub.notifications.contracts import NEW_RECIPE_NOTIFICATION_TYPE, InvalidDeviceTokenError, NewRecipeNotification, PushDeliveryError, PushMessage
from recipehub.notifications.push_sender import FcmPushSender

logger = logging.getLogger(__name__)

TokenCleanup = Callable[[list[str]], Awaitable[int]]


def build_new_recipe_message(notification: NewRecipeNotification, token: str) -> PushMessage:
  """Build the fixed new-recipe message for one device."""
  data = {"type": NEW_RECIPE_NOTIFICATION_TYPE, "recipe_id": str(notification.recipe_id), "author_id": str(notification.author_id)}
  return PushMessage(token=token, title=f"New recipe from {notification.author_name}", body=notification.recipe_title, data=data)


class FanOutDispatcher:
  """Send one message per token concurrently, isolating each failure."""

  def __init__(self, *, sender: FcmPushSender, token_cleanup: TokenCleanup | None = None) -> None:
    self._sender = sender
    self._token_cleanup = token_cleanup

  async def dispatch(self, device_tokens: list[str], notification: NewRecipeNotification, access_token: str) -> None:
    """Attempt delivery to every token and return once all sends have settled."""
    if not device_tokens:
      return

    async with self._sender.build_client() as client:
      results = await asyncio.gather(*(self._send_one(client, build_new_recipe_message(notification, token), access_token) for token in device_tokens))

    invalid_tokens = [token for token, outcome in zip(device_tokens, results, strict=True) if outcome == "invalid"]
    delivered = sum(1 for outcome in results if outcome == "sent")
    logger.info("Follower push round finished recipe_id=%s attempted=%d delivered=%d invalid=%d", notification.recipe_id, len(device_tokens), delivered, len(invalid_tokens))

    if invalid_tokens:
      await self._cleanup(invalid_tokens)

  async def _send_one(self, client: httpx.AsyncClient, message: PushMessage, access_token: str) -> str:
    # Swallow per-message failures so sibling sends are never cancelled.
    try:
      await self._sender.send(client, message, access_token=access_token)
      return "sent"
    except InvalidDeviceTokenError as exc:
      logger.warning("FCM send failed token=%s status=%s error=%s", exc.token, exc.status_code, exc.detail)
      return "invalid"
    except PushDeliveryError as exc:
      logger.warning("FCM send failed token=%s status=%s error=%s", exc.token, exc.status_code, exc.detail or exc)
      return "failed"
    except Exception as exc:  # noqa: BLE001
      logger.error("Unexpected FCM send error token=%s error=%s", message.token, exc, exc_info=True)
      return "failed"

  async def _cleanup(self, tokens: list[str]) -> None:
    if self._token_cleanup is None:
      return
    try:
      deactivated = await self._token_cleanup(tokens)
      logger.info("Deactivated unregistered push tokens count=%d", deactivated)
    except Exception as exc:  # noqa: BLE001
      logger.error("Failed deactivating unregistered push tokens count=%d error=%s", len(tokens), exc, exc_info=True)

"""Follower push notifications for newly published recipes."""

from __future__ import annotations

import asyncio
import logging

from recipehub.notifications.audience import AudienceResolver
from recipehub.notifications.contracts import AccessTokenProvider, NewRecipeNotification, PushConfigurationError
from recipehub.notifications.credentials import ServiceAccountCredentials
from recipehub.notifications.dispatcher import FanOutDispatcher

logger = logging.getLogger(__name__)

# Strong references so detached rounds are not garbage collected mid-flight.
_background_tasks: set[asyncio.Task[None]] = set()


class FollowerNotifier:
  """Notify an author's followers when a new recipe is published.

  Each round is a short pipeline (configuration, audience, access token,
  dispatch) where any stage may end the round early. Nothing raised inside a
  round reaches the caller; failures are only visible in the logs.
  """

  def __init__(self, *, audience: AudienceResolver | None, credentials: ServiceAccountCredentials | None, token_provider: AccessTokenProvider | None, dispatcher: FanOutDispatcher | None) -> None:
    self._audience = audience
    self._credentials = credentials
    self._token_provider = token_provider
    self._dispatcher = dispatcher

  @property
  def enabled(self) -> bool:
    return self._audience is not None and self._credentials is not None and self._token_provider is not None and self._dispatcher is not None

  async def notify_followers_new_recipe(self, notification: NewRecipeNotification) -> None:
    """Run one best-effort notification round and return when every send has settled."""
    try:
      await self._run(notification)
    except PushConfigurationError as exc:
      logger.warning("%s Skipping follower push notifications.", exc)
    except Exception as exc:  # noqa: BLE001
      logger.error("Follower push notification round failed recipe_id=%s error=%s", notification.recipe_id, exc, exc_info=True)

  async def _run(self, notification: NewRecipeNotification) -> None:
    audience, token_provider, dispatcher = self._require_configuration()

    device_tokens = await audience.resolve_device_tokens(notification.author_id)
    if not device_tokens:
      return

    access_token = await token_provider.get_access_token()
    if access_token is None:
      return

    await dispatcher.dispatch(device_tokens, notification, access_token)

  def _require_configuration(self) -> tuple[AudienceResolver, AccessTokenProvider, FanOutDispatcher]:
    if self._audience is None:
      raise PushConfigurationError("RECIPEHUB_PG_DSN is not configured.")
    if self._credentials is None or self._token_provider is None or self._dispatcher is None:
      raise PushConfigurationError("Missing FIREBASE_PROJECT_ID/FIREBASE_CLIENT_EMAIL/FIREBASE_PRIVATE_KEY.")
    return self._audience, self._token_provider, self._dispatcher


def schedule_new_recipe_notification(notifier: FollowerNotifier, notification: NewRecipeNotification) -> asyncio.Task[None]:
  """Run a notification round in the background of the current event loop."""
  task = asyncio.create_task(notifier.notify_followers_new_recipe(notification), name=f"follower-push-{notification.recipe_id}")
  _background_tasks.add(task)
  task.add_done_callback(_on_background_task_done)
  return task


def _on_background_task_done(task: asyncio.Task[None]) -> None:
  """Release the task reference and log anything that escaped the round."""
  _background_tasks.discard(task)
  if task.cancelled():
    logger.warning("Background follower push task cancelled name=%s", task.get_name())
    return
  exc = task.exception()
  if exc is not None:
    logger.error("Background follower push task failed: %s", exc, exc_info=exc)


async def drain_background_tasks(*, timeout_seconds: float) -> int:
  """Wait for detached rounds on shutdown; return how many were still running at the deadline."""
  pending = list(_background_tasks)
  if not pending:
    return 0
  _, still_running = await asyncio.wait(pending, timeout=timeout_seconds)
  return len(still_running)


async def notify_followers_new_recipe(*, author_id: str, author_name: str, recipe_id: str, recipe_title: str) -> None:
  """Notify followers of `author_id` using the process-wide notifier."""
  from recipehub.notifications.factory import get_follower_notifier

  notification = NewRecipeNotification(author_id=str(author_id), author_name=author_name, recipe_id=str(recipe_id), recipe_title=recipe_title)
  try:
    notifier = get_follower_notifier()
  except Exception as exc:  # noqa: BLE001
    logger.error("Follower notifier unavailable recipe_id=%s error=%s", notification.recipe_id, exc, exc_info=True)
    return
  await notifier.notify_followers_new_recipe(notification)

"""FCM HTTP v1 delivery for individual push messages."""

from __future__ import annotations

import logging
from http import HTTPStatus

import httpx

from recipehub.notifications.contracts import InvalidDeviceTokenError, PushDeliveryError, PushMessage

logger = logging.getLogger(__name__)

FCM_SEND_URL_TEMPLATE = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"


class FcmPushSender:
  """Send one message per request to the FCM HTTP v1 endpoint."""

  def __init__(self, *, project_id: str, timeout_seconds: float = 10.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
    self._send_url = FCM_SEND_URL_TEMPLATE.format(project_id=project_id)
    self._timeout_seconds = timeout_seconds
    self._transport = transport

  @property
  def send_url(self) -> str:
    return self._send_url

  def build_client(self) -> httpx.AsyncClient:
    """Build a client shared by every send in one fan-out round."""
    # Sends queue for a pooled connection without a deadline; connect, read and write stay bounded.
    timeout = httpx.Timeout(self._timeout_seconds, pool=None)
    return httpx.AsyncClient(transport=self._transport, timeout=timeout, trust_env=False)

  async def send(self, client: httpx.AsyncClient, message: PushMessage, *, access_token: str) -> None:
    """POST a single message; raise PushDeliveryError on any failure."""
    headers = {"Authorization": f"Bearer {access_token}", "Content-Type": "application/json"}
    try:
      response = await client.post(self._send_url, json=message.to_fcm_payload(), headers=headers)
    except httpx.RequestError as exc:
      raise PushDeliveryError(f"FCM request failed: {type(exc).__name__}: {exc}", token=message.token) from exc

    if response.is_success:
      return

    detail = response.text[:1000]
    if _is_unregistered(response):
      raise InvalidDeviceTokenError("FCM reports device token as unregistered", token=message.token, status_code=response.status_code, detail=detail)
    raise PushDeliveryError("FCM send failed", token=message.token, status_code=response.status_code, detail=detail)


def _is_unregistered(response: httpx.Response) -> bool:
  """Detect FCM's UNREGISTERED error, which arrives as 404 and sometimes as 400."""
  if response.status_code == HTTPStatus.NOT_FOUND:
    return True

  try:
    payload = response.json()
  except ValueError:
    return False

  error = payload.get("error") if isinstance(payload, dict) else None
  if not isinstance(error, dict):
    return False
  for item in error.get("details") or []:
    if isinstance(item, dict) and item.get("errorCode") == "UNREGISTERED":
      return True
  return False

from __future__ import annotations

import json

import httpx
import pytest

from recipehub.notifications.contracts import InvalidDeviceTokenError, PushDeliveryError, PushMessage
from recipehub.notifications.push_sender import FcmPushSender


def _message() -> PushMessage:
  return PushMessage(token="device-1", title="New recipe from Ana", body="Tarta", data={"type": "new_recipe", "recipe_id": "R9", "author_id": "A1"})


def _sender(handler) -> FcmPushSender:
  return FcmPushSender(project_id="recipehub-test", timeout_seconds=5.0, transport=httpx.MockTransport(handler))


@pytest.mark.anyio
async def test_send_posts_fcm_v1_payload_with_bearer_token():
  captured: list[httpx.Request] = []

  def _ok(request: httpx.Request) -> httpx.Response:
    captured.append(request)
    return httpx.Response(200, json={"name": "projects/recipehub-test/messages/1"})

  sender = _sender(_ok)
  async with sender.build_client() as client:
    await sender.send(client, _message(), access_token="ya29.abc")

  request = captured[0]
  assert str(request.url) == "https://fcm.googleapis.com/v1/projects/recipehub-test/messages:send"
  assert request.headers["authorization"] == "Bearer ya29.abc"
  assert json.loads(request.content) == {
    "message": {"token": "device-1", "notification": {"title": "New recipe from Ana", "body": "Tarta"}, "data": {"type": "new_recipe", "recipe_id": "R9", "author_id": "A1"}},
    "android": {"priority": "high"},
  }


@pytest.mark.anyio
async def test_server_error_raises_delivery_error_with_status():
  sender = _sender(lambda request: httpx.Response(503, text="unavailable"))

  async with sender.build_client() as client:
    with pytest.raises(PushDeliveryError) as excinfo:
      await sender.send(client, _message(), access_token="ya29.abc")

  assert not isinstance(excinfo.value, InvalidDeviceTokenError)
  assert excinfo.value.status_code == 503
  assert excinfo.value.token == "device-1"
  assert excinfo.value.detail == "unavailable"


@pytest.mark.anyio
async def test_not_found_is_reported_as_invalid_token():
  sender = _sender(lambda request: httpx.Response(404, json={"error": {"code": 404, "status": "NOT_FOUND"}}))

  async with sender.build_client() as client:
    with pytest.raises(InvalidDeviceTokenError):
      await sender.send(client, _message(), access_token="ya29.abc")


@pytest.mark.anyio
async def test_unregistered_error_code_is_reported_as_invalid_token():
  body = {"error": {"code": 400, "status": "INVALID_ARGUMENT", "details": [{"@type": "type.googleapis.com/google.firebase.fcm.v1.FcmError", "errorCode": "UNREGISTERED"}]}}
  sender = _sender(lambda request: httpx.Response(400, json=body))

  async with sender.build_client() as client:
    with pytest.raises(InvalidDeviceTokenError) as excinfo:
      await sender.send(client, _message(), access_token="ya29.abc")

  assert excinfo.value.status_code == 400


@pytest.mark.anyio
async def test_transport_error_raises_delivery_error():
  def _timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)

  sender = _sender(_timeout)

  async with sender.build_client() as client:
    with pytest.raises(PushDeliveryError) as excinfo:
      await sender.send(client, _message(), access_token="ya29.abc")

  assert excinfo.value.status_code is None
  assert "ReadTimeout" in str(excinfo.value)


@pytest.mark.anyio
async def test_client_bounds_requests_but_not_pool_waits():
  sender = FcmPushSender(project_id="recipehub-test", timeout_seconds=5.0)

  async with sender.build_client() as client:
    assert client.timeout.pool is None
    assert client.timeout.connect == client.timeout.read == client.timeout.write == 5.0

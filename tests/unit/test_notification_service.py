from __future__ import annotations

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from recipehub.notifications.contracts import NewRecipeNotification
from recipehub.notifications.service import FollowerNotifier, drain_background_tasks, notify_followers_new_recipe, schedule_new_recipe_notification

NOTIFICATION = NewRecipeNotification(author_id="A1", author_name="Ana", recipe_id="R9", recipe_title="Tarta")


@pytest.fixture
def audience():
  resolver = AsyncMock()
  resolver.resolve_device_tokens.return_value = ["T1", "T2"]
  return resolver


@pytest.fixture
def token_provider():
  provider = AsyncMock()
  provider.get_access_token.return_value = "ya29.abc"
  return provider


@pytest.fixture
def dispatcher():
  return AsyncMock()


@pytest.fixture
def notifier(audience, service_account, token_provider, dispatcher):
  return FollowerNotifier(audience=audience, credentials=service_account, token_provider=token_provider, dispatcher=dispatcher)


@pytest.mark.anyio
async def test_round_dispatches_to_resolved_tokens(notifier, audience, token_provider, dispatcher):
  await notifier.notify_followers_new_recipe(NOTIFICATION)

  audience.resolve_device_tokens.assert_awaited_once_with("A1")
  token_provider.get_access_token.assert_awaited_once()
  dispatcher.dispatch.assert_awaited_once_with(["T1", "T2"], NOTIFICATION, "ya29.abc")


@pytest.mark.anyio
async def test_missing_store_skips_everything(service_account, token_provider, dispatcher, caplog):
  notifier = FollowerNotifier(audience=None, credentials=service_account, token_provider=token_provider, dispatcher=dispatcher)

  with caplog.at_level(logging.WARNING, logger="recipehub.notifications.service"):
    await notifier.notify_followers_new_recipe(NOTIFICATION)

  assert not notifier.enabled
  token_provider.get_access_token.assert_not_awaited()
  dispatcher.dispatch.assert_not_awaited()
  assert "RECIPEHUB_PG_DSN is not configured. Skipping follower push notifications." in caplog.text


@pytest.mark.anyio
async def test_missing_service_account_skips_store_queries(audience, caplog):
  notifier = FollowerNotifier(audience=audience, credentials=None, token_provider=None, dispatcher=None)

  with caplog.at_level(logging.WARNING, logger="recipehub.notifications.service"):
    await notifier.notify_followers_new_recipe(NOTIFICATION)

  audience.resolve_device_tokens.assert_not_awaited()
  assert "Missing FIREBASE_PROJECT_ID/FIREBASE_CLIENT_EMAIL/FIREBASE_PRIVATE_KEY" in caplog.text


@pytest.mark.anyio
async def test_empty_audience_never_requests_token_or_dispatches(notifier, audience, token_provider, dispatcher):
  audience.resolve_device_tokens.return_value = []

  await notifier.notify_followers_new_recipe(NOTIFICATION)

  token_provider.get_access_token.assert_not_awaited()
  dispatcher.dispatch.assert_not_awaited()


@pytest.mark.anyio
async def test_missing_access_token_ends_round(notifier, token_provider, dispatcher):
  token_provider.get_access_token.return_value = None

  await notifier.notify_followers_new_recipe(NOTIFICATION)

  dispatcher.dispatch.assert_not_awaited()


@pytest.mark.anyio
async def test_unexpected_error_never_reaches_caller(notifier, dispatcher, caplog):
  dispatcher.dispatch.side_effect = RuntimeError("event loop closed")

  with caplog.at_level(logging.ERROR, logger="recipehub.notifications.service"):
    await notifier.notify_followers_new_recipe(NOTIFICATION)

  assert "Follower push notification round failed recipe_id=R9" in caplog.text


@pytest.mark.anyio
async def test_scheduled_round_runs_in_background(notifier, dispatcher):
  task = schedule_new_recipe_notification(notifier, NOTIFICATION)

  assert isinstance(task, asyncio.Task)
  await task
  dispatcher.dispatch.assert_awaited_once()
  assert await drain_background_tasks(timeout_seconds=1.0) == 0


@pytest.mark.anyio
async def test_drain_reports_rounds_still_running(notifier, dispatcher):
  release = asyncio.Event()

  async def _slow_dispatch(*args, **kwargs):
    await release.wait()

  dispatcher.dispatch.side_effect = _slow_dispatch
  task = schedule_new_recipe_notification(notifier, NOTIFICATION)

  assert await drain_background_tasks(timeout_seconds=0.01) == 1

  release.set()
  await task


@pytest.mark.anyio
async def test_module_entry_point_uses_process_notifier(monkeypatch):
  process_notifier = MagicMock()
  process_notifier.notify_followers_new_recipe = AsyncMock()
  monkeypatch.setattr("recipehub.notifications.factory.get_follower_notifier", lambda: process_notifier)

  await notify_followers_new_recipe(author_id="A1", author_name="Ana", recipe_id="R9", recipe_title="Tarta")

  process_notifier.notify_followers_new_recipe.assert_awaited_once_with(NOTIFICATION)


@pytest.mark.anyio
async def test_module_entry_point_swallows_invalid_settings(monkeypatch, caplog):
  from recipehub.config import get_settings
  from recipehub.notifications.factory import reset_follower_notifier

  monkeypatch.setenv("RECIPEHUB_PUSH_TIMEOUT_SECONDS", "ten")
  get_settings.cache_clear()
  reset_follower_notifier()
  try:
    with caplog.at_level(logging.ERROR, logger="recipehub.notifications.service"):
      await notify_followers_new_recipe(author_id="A1", author_name="Ana", recipe_id="R9", recipe_title="Tarta")
  finally:
    get_settings.cache_clear()
    reset_follower_notifier()

  assert "Follower notifier unavailable recipe_id=R9" in caplog.text


@pytest.mark.anyio
async def test_module_entry_point_swallows_notifier_build_errors(monkeypatch, caplog):
  def _broken_notifier():
    raise ValueError("invalid literal for int() with base 10: 'notaport'")

  monkeypatch.setattr("recipehub.notifications.factory.get_follower_notifier", _broken_notifier)

  with caplog.at_level(logging.ERROR, logger="recipehub.notifications.service"):
    await notify_followers_new_recipe(author_id="A1", author_name="Ana", recipe_id="R9", recipe_title="Tarta")

  assert "notaport" in caplog.text

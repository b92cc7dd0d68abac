from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from recipehub.notifications import factory
from recipehub.notifications.factory import build_follower_notifier, get_follower_notifier, reset_follower_notifier


@pytest.fixture
def session_factory(monkeypatch):
  fake = MagicMock(name="session_factory")
  monkeypatch.setattr(factory, "get_session_factory", lambda: fake)
  return fake


def test_fully_configured_notifier_is_enabled(make_settings, session_factory):
  notifier = build_follower_notifier(make_settings())

  assert notifier.enabled
  assert notifier._dispatcher._token_cleanup is None


def test_missing_dsn_leaves_audience_unset(make_settings, session_factory):
  notifier = build_follower_notifier(make_settings(pg_dsn=None))

  assert not notifier.enabled
  assert notifier._audience is None
  assert notifier._token_provider is not None


def test_incomplete_service_account_leaves_gateway_unset(make_settings, session_factory):
  notifier = build_follower_notifier(make_settings(firebase_private_key=None))

  assert not notifier.enabled
  assert notifier._audience is not None
  assert notifier._credentials is None
  assert notifier._token_provider is None
  assert notifier._dispatcher is None


def test_invalid_token_cleanup_is_opt_in(make_settings, session_factory):
  notifier = build_follower_notifier(make_settings(push_deactivate_invalid_tokens=True))

  cleanup = notifier._dispatcher._token_cleanup
  assert cleanup is not None
  assert cleanup.__self__ is notifier._audience._repository


def test_process_notifier_is_cached_until_reset(monkeypatch, make_settings, session_factory):
  monkeypatch.setattr(factory, "get_settings", lambda: make_settings())
  reset_follower_notifier()
  try:
    first = get_follower_notifier()
    assert get_follower_notifier() is first
    reset_follower_notifier()
    assert get_follower_notifier() is not first
  finally:
    reset_follower_notifier()

"""Factory helpers for the follower notifier."""

from __future__ import annotations

from functools import lru_cache

import httpx

from recipehub.config import Settings, get_settings
from recipehub.core.database import get_session_factory
from recipehub.notifications.audience import AudienceResolver, FollowerAudienceRepository
from recipehub.notifications.credentials import ServiceAccountCredentials
from recipehub.notifications.dispatcher import FanOutDispatcher
from recipehub.notifications.push_sender import FcmPushSender
from recipehub.notifications.service import FollowerNotifier
from recipehub.notifications.token_cache import AccessTokenCache, GoogleAccessTokenProvider


def build_follower_notifier(settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None, token_cache: AccessTokenCache | None = None) -> FollowerNotifier:
  """Construct a notifier from configuration, leaving unconfigured stages empty."""
  # Read followers and device tokens only with the privileged store connection.
  session_factory = get_session_factory() if settings.pg_dsn else None
  repository = FollowerAudienceRepository(session_factory=session_factory) if session_factory is not None else None
  audience = AudienceResolver(repository=repository) if repository is not None else None

  credentials = ServiceAccountCredentials.from_settings(settings)
  if credentials is None:
    return FollowerNotifier(audience=audience, credentials=None, token_provider=None, dispatcher=None)

  token_provider = GoogleAccessTokenProvider(credentials=credentials, cache=token_cache or AccessTokenCache(), timeout_seconds=settings.push_timeout_seconds, transport=transport)
  sender = FcmPushSender(project_id=credentials.project_id, timeout_seconds=settings.push_timeout_seconds, transport=transport)

  # Token cleanup is opt-in; without it unregistered tokens are only logged.
  token_cleanup = repository.deactivate_device_tokens if (repository is not None and settings.push_deactivate_invalid_tokens) else None
  dispatcher = FanOutDispatcher(sender=sender, token_cleanup=token_cleanup)
  return FollowerNotifier(audience=audience, credentials=credentials, token_provider=token_provider, dispatcher=dispatcher)


@lru_cache(maxsize=1)
def get_follower_notifier() -> FollowerNotifier:
  """Return the process-wide notifier so every round shares one token cache."""
  return build_follower_notifier(get_settings())


def reset_follower_notifier() -> None:
  """Drop the cached notifier, e.g. after settings change in tests."""
  get_follower_notifier.cache_clear()

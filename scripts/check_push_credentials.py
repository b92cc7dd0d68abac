"""Exchange the configured Firebase service account for an FCM access token."""

from __future__ import annotations

import asyncio
import logging
import sys

from recipehub.config import get_settings
from recipehub.core.logging import initialize_logging
from recipehub.notifications.credentials import ServiceAccountCredentials
from recipehub.notifications.token_cache import AccessTokenCache, GoogleAccessTokenProvider

logger = logging.getLogger("scripts.check_push_credentials")


async def check_push_credentials() -> bool:
  """Return True when the token endpoint accepts the configured service account."""
  settings = get_settings()
  credentials = ServiceAccountCredentials.from_settings(settings)
  if credentials is None:
    logger.error("Missing FIREBASE_PROJECT_ID/FIREBASE_CLIENT_EMAIL/FIREBASE_PRIVATE_KEY.")
    return False

  cache = AccessTokenCache()
  provider = GoogleAccessTokenProvider(credentials=credentials, cache=cache, timeout_seconds=settings.push_timeout_seconds)
  token = await provider.get_access_token()
  if token is None:
    # The provider already logged the endpoint's reason.
    return False

  # Never print the token itself.
  expires_at_ms = cache.entry.expires_at_ms if cache.entry else None
  logger.info("Service account OK project_id=%s client_email=%s expires_at_ms=%s", credentials.project_id, credentials.client_email, expires_at_ms)
  return True


if __name__ == "__main__":
  initialize_logging(get_settings())
  sys.exit(0 if asyncio.run(check_push_credentials()) else 1)

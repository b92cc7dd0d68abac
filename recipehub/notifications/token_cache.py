"""Access-token cache and OAuth exchange for the FCM HTTP v1 API."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from recipehub.notifications.contracts import SigningError, TokenExchangeError
from recipehub.notifications.credentials import GOOGLE_TOKEN_URL, ServiceAccountCredentials, build_service_account_assertion

logger = logging.getLogger(__name__)

JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600
EXPIRY_SKEW_MS = 60_000


@dataclass(frozen=True)
class CachedAccessToken:
  """An access token with its absolute expiry in epoch milliseconds."""

  token: str
  expires_at_ms: int

  def is_fresh(self, now_ms: int) -> bool:
    """Tokens stop being served one minute before they actually expire."""
    return self.expires_at_ms - EXPIRY_SKEW_MS > now_ms


class AccessTokenCache:
  """Single-slot token cache with an injectable clock (epoch seconds)."""

  def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
    self._clock = clock
    self._entry: CachedAccessToken | None = None

  def now_ms(self) -> int:
    return int(self._clock() * 1000)

  def get(self) -> str | None:
    """Return the cached token if it is still fresh."""
    entry = self._entry
    if entry is not None and entry.is_fresh(self.now_ms()):
      return entry.token
    return None

  def store(self, token: str, *, expires_at_ms: int) -> CachedAccessToken:
    """Replace the cached entry; the last writer wins."""
    entry = CachedAccessToken(token=token, expires_at_ms=expires_at_ms)
    self._entry = entry
    return entry

  def clear(self) -> None:
    self._entry = None

  @property
  def entry(self) -> CachedAccessToken | None:
    return self._entry


class GoogleAccessTokenProvider:
  """Exchange service-account assertions for short-lived FCM access tokens."""

  def __init__(self, *, credentials: ServiceAccountCredentials, cache: AccessTokenCache, timeout_seconds: float = 10.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
    self._credentials = credentials
    self._cache = cache
    self._timeout_seconds = timeout_seconds
    self._transport = transport
    self._refresh_lock = asyncio.Lock()

  @property
  def cache(self) -> AccessTokenCache:
    return self._cache

  async def get_access_token(self) -> str | None:
    """Return a cached or freshly exchanged token, or None when the exchange fails."""
    cached = self._cache.get()
    if cached is not None:
      return cached

    # Single-flight: concurrent rounds wait for one exchange instead of racing.
    async with self._refresh_lock:
      cached = self._cache.get()
      if cached is not None:
        return cached

      try:
        return await self._refresh()
      except SigningError as exc:
        logger.error("FCM access token unavailable; assertion signing failed: %s", exc)
      except TokenExchangeError as exc:
        logger.warning("Failed to obtain Google OAuth access token for FCM: %s", exc)
      except httpx.RequestError as exc:
        logger.error("Unexpected error requesting Google OAuth token: %s", exc, exc_info=True)
      return None

  async def _refresh(self) -> str:
    started_ms = self._cache.now_ms()
    assertion = build_service_account_assertion(client_email=self._credentials.client_email, private_key=self._credentials.private_key, issued_at=started_ms // 1000)
    form = {"grant_type": JWT_BEARER_GRANT_TYPE, "assertion": assertion}

    async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout_seconds, trust_env=False) as client:
      response = await client.post(GOOGLE_TOKEN_URL, data=form)

    if not response.is_success:
      raise TokenExchangeError(f"token endpoint returned status={response.status_code} body={response.text[:500]}")

    try:
      payload = response.json()
    except ValueError as exc:
      raise TokenExchangeError("token endpoint returned a non-JSON body") from exc

    access_token = payload.get("access_token") if isinstance(payload, dict) else None
    if not isinstance(access_token, str) or not access_token:
      raise TokenExchangeError("token response did not include access_token")

    expires_in = payload.get("expires_in")
    if expires_in is None:
      expires_in = DEFAULT_TOKEN_LIFETIME_SECONDS
    try:
      lifetime_ms = int(float(expires_in) * 1000)
    except (TypeError, ValueError, OverflowError) as exc:
      raise TokenExchangeError(f"token response had an invalid expires_in={expires_in!r}") from exc

    entry = self._cache.store(access_token, expires_at_ms=started_ms + lifetime_ms)
    logger.info("Obtained FCM access token expires_at_ms=%s", entry.expires_at_ms)
    return access_token

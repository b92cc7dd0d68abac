"""Service-account assertions for the Google OAuth JWT-bearer grant."""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from recipehub.config import Settings
from recipehub.notifications.contracts import SigningError

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
FCM_MESSAGING_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"
ASSERTION_LIFETIME_SECONDS = 3600


@dataclass(frozen=True)
class ServiceAccountCredentials:
  """Firebase service-account identity used to mint FCM access tokens."""

  project_id: str
  client_email: str
  private_key: str = field(repr=False)

  @classmethod
  def from_settings(cls, settings: Settings) -> ServiceAccountCredentials | None:
    """Return credentials when all three service-account values are configured."""
    if not settings.push_configured:
      return None
    return cls(project_id=settings.firebase_project_id or "", client_email=settings.firebase_client_email or "", private_key=settings.firebase_private_key or "")


def _b64url(raw: bytes) -> str:
  return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _json_segment(value: dict[str, object]) -> str:
  return _b64url(json.dumps(value, separators=(",", ":")).encode("utf-8"))


def _load_rsa_key(private_key: str) -> rsa.RSAPrivateKey:
  """Parse a PKCS#1 or PKCS#8 PEM key, rejecting anything that is not RSA."""
  try:
    key = serialization.load_pem_private_key(private_key.encode("utf-8"), password=None)
  except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
    raise SigningError(f"Service-account private key could not be loaded: {type(exc).__name__}") from exc

  if not isinstance(key, rsa.RSAPrivateKey):
    raise SigningError(f"Service-account private key must be RSA, got {type(key).__name__}")
  return key


def build_service_account_assertion(*, client_email: str, private_key: str, issued_at: int) -> str:
  """Build a signed RS256 JWT asserting `client_email` for the FCM scope.

  The assertion is valid for one hour from `issued_at` (epoch seconds). This is a
  pure function: callers supply the clock, and nothing is cached or sent.
  """
  header = {"alg": "RS256", "typ": "JWT"}
  claims = {"iss": client_email, "sub": client_email, "aud": GOOGLE_TOKEN_URL, "scope": FCM_MESSAGING_SCOPE, "iat": issued_at, "exp": issued_at + ASSERTION_LIFETIME_SECONDS}
  signing_input = f"{_json_segment(header)}.{_json_segment(claims)}"

  key = _load_rsa_key(private_key)
  try:
    signature = key.sign(signing_input.encode("ascii"), padding.PKCS1v15(), hashes.SHA256())
  except (ValueError, TypeError) as exc:
    raise SigningError(f"Service-account assertion signing failed: {exc}") from exc

  return f"{signing_input}.{_b64url(signature)}"

"""Contracts for follower push notifications."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

NEW_RECIPE_NOTIFICATION_TYPE = "new_recipe"


@dataclass(frozen=True)
class NewRecipeNotification:
  """A publish event for one recipe, consumed once by the follower fan-out."""

  author_id: str
  author_name: str
  recipe_id: str
  recipe_title: str


@dataclass(frozen=True)
class PushMessage:
  """Represents a single FCM message addressed to one device token."""

  token: str
  title: str
  body: str
  data: dict[str, str] = field(default_factory=dict)

  def to_fcm_payload(self) -> dict[str, object]:
    """Build the FCM HTTP v1 request body."""
    return {"message": {"token": self.token, "notification": {"title": self.title, "body": self.body}, "data": dict(self.data)}, "android": {"priority": "high"}}


class NotificationError(Exception):
  """Base class for all push fan-out failures."""


class PushConfigurationError(NotificationError):
  """Raised when the data store or push gateway credentials are not configured."""


class AudienceQueryError(NotificationError):
  """Raised when follower or device-token lookups fail."""


class SigningError(NotificationError):
  """Raised when the service-account assertion cannot be signed."""


class TokenExchangeError(NotificationError):
  """Raised when the OAuth token endpoint does not return a usable access token."""


class PushDeliveryError(NotificationError):
  """Raised when FCM rejects or never receives a single message."""

  def __init__(self, message: str, *, token: str, status_code: int | None = None, detail: str | None = None) -> None:
    super().__init__(message)
    self.token = token
    self.status_code = status_code
    self.detail = detail


class InvalidDeviceTokenError(PushDeliveryError):
  """Raised when FCM reports the device token as unregistered."""


class AudienceRepository(Protocol):
  """Read access to the social graph and device registrations."""

  async def list_follower_ids(self, author_id: str) -> list[str]:
    """Return the ids of users following `author_id`."""

  async def list_active_device_tokens(self, follower_ids: list[str]) -> list[str]:
    """Return active device tokens owned by the given users."""

  async def deactivate_device_tokens(self, tokens: list[str]) -> int:
    """Mark device tokens inactive and return how many rows changed."""


class AccessTokenProvider(Protocol):
  """Source of bearer tokens for the push gateway."""

  async def get_access_token(self) -> str | None:
    """Return a usable access token, or None when none can be obtained."""

"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from recipehub.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)


@dataclass(frozen=True)
class Settings:
  """Typed settings for the RecipeHub push fan-out service."""

  environment: str
  debug: bool
  log_level: str
  log_dir: str | None
  log_max_bytes: int
  log_backup_count: int
  pg_dsn: str | None
  pg_connect_timeout: int
  firebase_project_id: str | None
  firebase_client_email: str | None
  firebase_private_key: str | None
  push_timeout_seconds: float
  push_deactivate_invalid_tokens: bool

  @property
  def push_configured(self) -> bool:
    """Return True when every service-account value needed for FCM is present."""
    return bool(self.firebase_project_id and self.firebase_client_email and self.firebase_private_key)


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _unescape_private_key(raw: str | None) -> str | None:
  """Restore real newlines in a PEM key stored as a single escaped line."""
  value = _optional_str(raw)
  if value is None:
    return None
  # Quoted .env values arrive with literal backslash-n sequences.
  return value.replace("\\n", "\n")


def _pg_dsn() -> str | None:
  # Support fallback to DATABASE_URL for hosted Postgres providers.
  return _optional_str(os.getenv("RECIPEHUB_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))


def _pg_connect_timeout() -> int:
  pg_connect_timeout = int(os.getenv("RECIPEHUB_PG_CONNECT_TIMEOUT", "5"))
  if pg_connect_timeout <= 0:
    raise ValueError("RECIPEHUB_PG_CONNECT_TIMEOUT must be a positive integer.")
  return pg_connect_timeout


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("RECIPEHUB_ENV", "development").lower()
  debug = _parse_bool(os.getenv("RECIPEHUB_DEBUG"))

  log_level = (os.getenv("RECIPEHUB_LOG_LEVEL") or "INFO").strip().upper()
  if log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
    raise ValueError("RECIPEHUB_LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL.")

  log_max_bytes = int(os.getenv("RECIPEHUB_LOG_MAX_BYTES", "5242880"))  # 5MB default
  if log_max_bytes <= 0:
    raise ValueError("RECIPEHUB_LOG_MAX_BYTES must be a positive integer.")

  log_backup_count = int(os.getenv("RECIPEHUB_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("RECIPEHUB_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # Bound every gateway call so one slow response cannot stall a whole round.
  push_timeout_seconds = float(os.getenv("RECIPEHUB_PUSH_TIMEOUT_SECONDS", "10"))
  if push_timeout_seconds <= 0:
    raise ValueError("RECIPEHUB_PUSH_TIMEOUT_SECONDS must be a positive number.")

  return Settings(
    environment=environment,
    debug=debug,
    log_level=log_level,
    log_dir=_optional_str(os.getenv("RECIPEHUB_LOG_DIR")),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    pg_dsn=_pg_dsn(),
    pg_connect_timeout=_pg_connect_timeout(),
    firebase_project_id=_optional_str(os.getenv("FIREBASE_PROJECT_ID")),
    firebase_client_email=_optional_str(os.getenv("FIREBASE_CLIENT_EMAIL")),
    firebase_private_key=_unescape_private_key(os.getenv("FIREBASE_PRIVATE_KEY")),
    push_timeout_seconds=push_timeout_seconds,
    push_deactivate_invalid_tokens=_parse_bool(os.getenv("RECIPEHUB_PUSH_DEACTIVATE_INVALID_TOKENS")),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring the push gateway configuration."""
  return DatabaseSettings(debug=_parse_bool(os.getenv("RECIPEHUB_DEBUG")), pg_dsn=_pg_dsn(), pg_connect_timeout=_pg_connect_timeout())

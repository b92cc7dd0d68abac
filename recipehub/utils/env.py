"""Minimal .env loader so local runs pick up service-account settings."""

from __future__ import annotations

import os
from pathlib import Path


def default_env_path() -> Path:
  """Return the .env path at the repository root."""

  return Path(__file__).resolve().parents[2] / ".env"


def _strip_quotes(value: str) -> str:
  if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
    return value[1:-1]
  return value


def parse_env_lines(lines: list[str]) -> dict[str, str]:
  """Parse KEY=VALUE lines, skipping comments, blanks and malformed entries."""
  parsed: dict[str, str] = {}
  for raw_line in lines:
    line = raw_line.strip()
    if not line or line.startswith("#"):
      continue
    line = line.removeprefix("export ").lstrip()
    key, sep, value = line.partition("=")
    key = key.strip()
    if not sep or not key:
      continue
    # Escaped PEM newlines are kept verbatim; Settings unescapes them.
    parsed[key] = _strip_quotes(value.strip())
  return parsed


def load_env_file(path: Path, *, override: bool = False) -> int:
  """Load a .env file into os.environ and return how many keys were set."""

  if not path.is_file():
    return 0

  loaded = 0
  for key, value in parse_env_lines(path.read_text(encoding="utf-8").splitlines()).items():
    if not override and key in os.environ:
      continue
    os.environ[key] = value
    loaded += 1
  return loaded

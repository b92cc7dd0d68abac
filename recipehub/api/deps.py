"""FastAPI dependencies exposed to the recipe routes."""

from __future__ import annotations

from fastapi import Request

from recipehub.notifications.factory import get_follower_notifier
from recipehub.notifications.service import FollowerNotifier


def get_follower_notifier_dependency(request: Request) -> FollowerNotifier:
  """Return the notifier attached at startup, falling back to the process notifier."""
  notifier = getattr(request.app.state, "follower_notifier", None)
  if isinstance(notifier, FollowerNotifier):
    return notifier
  return get_follower_notifier()

"""Follower audience resolution for new-recipe pushes."""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from recipehub.notifications.contracts import AudienceQueryError, AudienceRepository
from recipehub.schema.social import Follow, PushToken

logger = logging.getLogger(__name__)


class FollowerAudienceRepository:
  """Read followers and their active device tokens from Postgres."""

  def __init__(self, *, session_factory: async_sessionmaker[AsyncSession]) -> None:
    self._session_factory = session_factory

  async def list_follower_ids(self, author_id: str) -> list[str]:
    """List the ids of every user following `author_id`."""
    async with self._session_factory() as session:
      result = await session.execute(select(Follow.follower_id).where(Follow.followed_id == author_id))
      return [str(follower_id) for follower_id in result.scalars().all() if follower_id]

  async def list_active_device_tokens(self, follower_ids: list[str]) -> list[str]:
    """List active device tokens owned by any of `follower_ids`."""
    if not follower_ids:
      return []

    async with self._session_factory() as session:
      stmt = select(PushToken.device_token).where(PushToken.is_active.is_(True), PushToken.user_id.in_(follower_ids))
      result = await session.execute(stmt)
      return list(result.scalars().all())

  async def deactivate_device_tokens(self, tokens: list[str]) -> int:
    """Flag tokens FCM reported as unregistered so later rounds skip them."""
    if not tokens:
      return 0

    async with self._session_factory() as session:
      result = await session.execute(update(PushToken).where(PushToken.device_token.in_(tokens), PushToken.is_active.is_(True)).values(is_active=False))
      await session.commit()
      return int(result.rowcount or 0)


def dedupe_tokens(tokens: list[str]) -> list[str]:
  """Drop blank and repeated token strings, keeping first-seen order."""
  return list(dict.fromkeys(token for token in tokens if token))


class AudienceResolver:
  """Resolve an author to the device tokens of their followers."""

  def __init__(self, *, repository: AudienceRepository) -> None:
    self._repository = repository

  async def resolve_device_tokens(self, author_id: str) -> list[str]:
    """Return unique active device tokens for the author's followers.

    Store failures are logged and resolve to an empty audience so the caller's
    round simply ends.
    """
    try:
      return await self._resolve(author_id)
    except AudienceQueryError as exc:
      logger.error("%s author_id=%s", exc, author_id, exc_info=exc.__cause__ is not None)
      return []

  async def _resolve(self, author_id: str) -> list[str]:
    try:
      follower_ids = await self._repository.list_follower_ids(author_id)
    except Exception as exc:  # noqa: BLE001
      raise AudienceQueryError("Failed to load followers") from exc

    if not follower_ids:
      logger.debug("No followers to notify author_id=%s", author_id)
      return []

    try:
      tokens = await self._repository.list_active_device_tokens(follower_ids)
    except Exception as exc:  # noqa: BLE001
      raise AudienceQueryError("Failed to load follower push tokens") from exc

    unique_tokens = dedupe_tokens(tokens)
    logger.debug("Resolved push audience author_id=%s followers=%d tokens=%d", author_id, len(follower_ids), len(unique_tokens))
    return unique_tokens

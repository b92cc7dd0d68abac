"""SQLAlchemy models for the social graph and device registrations read by push fan-out."""

from __future__ import annotations

import datetime

from sqlalchemy import Boolean, DateTime, Index, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from recipehub.core.database import Base


class Follow(Base):
  """A directed follow edge: `follower_id` follows `followed_id`."""

  __tablename__ = "follows"
  __table_args__ = (UniqueConstraint("follower_id", "followed_id", name="uq_follows_pair"), Index("ix_follows_followed_id", "followed_id"))

  follower_id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
  followed_id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class PushToken(Base):
  """A device registration for FCM delivery owned by one user."""

  __tablename__ = "push_tokens"
  __table_args__ = (Index("ix_push_tokens_user_id_active", "user_id", "is_active"),)

  id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, server_default=func.gen_random_uuid())
  user_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False)
  device_token: Mapped[str] = mapped_column(Text, nullable=False)
  platform: Mapped[str | None] = mapped_column(Text, nullable=True)
  is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

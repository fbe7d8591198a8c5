"""Barrier ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class Barrier(Base):
    __tablename__ = "barriers"
    __table_args__ = (
        Index("ix_barriers_user_id", "user_id"),
        Index("ix_barriers_goal_id", "goal_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    goal_id = Column(UUID(as_uuid=True), ForeignKey("goals.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(length=100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

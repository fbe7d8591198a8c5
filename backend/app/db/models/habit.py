"""Habit ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class Habit(Base):
    __tablename__ = "habits"
    __table_args__ = (
        Index("ix_habits_user_id", "user_id"),
        Index("ix_habits_plan_id", "plan_id"),
        CheckConstraint("phase BETWEEN 1 AND 4", name="ck_habits_phase"),
        CheckConstraint("priority BETWEEN 1 AND 10", name="ck_habits_priority"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    goal_id = Column(UUID(as_uuid=True), ForeignKey("goals.id", ondelete="CASCADE"), nullable=False)
    plan_id = Column(UUID(as_uuid=True), ForeignKey("habit_plans.id", ondelete="CASCADE"), nullable=False)
    # Only set for barrier-targeting habits.
    barrier_id = Column(
        UUID(as_uuid=True),
        ForeignKey("barriers.id", ondelete="SET NULL"),
        nullable=True,
    )
    title = Column(String(length=255), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(length=50), nullable=False)
    phase = Column(Integer, nullable=False)
    frequency = Column(String(length=100), nullable=False, default="")
    duration = Column(Integer, nullable=True)
    priority = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

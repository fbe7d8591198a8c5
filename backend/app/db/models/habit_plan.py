"""HabitPlan ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class HabitPlan(Base):
    __tablename__ = "habit_plans"
    __table_args__ = (
        Index("ix_habit_plans_user_id", "user_id"),
        Index("ix_habit_plans_goal_id", "goal_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    goal_id = Column(UUID(as_uuid=True), ForeignKey("goals.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    # Derived from the phase of each generated habit; never edited on their own.
    phase1_count = Column(Integer, nullable=False, server_default=sa_text("0"))
    phase2_count = Column(Integer, nullable=False, server_default=sa_text("0"))
    phase3_count = Column(Integer, nullable=False, server_default=sa_text("0"))
    phase4_count = Column(Integer, nullable=False, server_default=sa_text("0"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

"""PlanPhase ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Index, Integer, String, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base

PHASE_STATUSES = ("pending", "active", "completed", "skipped")


class PlanPhase(Base):
    __tablename__ = "plan_phases"
    __table_args__ = (
        Index("ix_plan_phases_plan_id", "plan_id"),
        CheckConstraint("phase_number BETWEEN 1 AND 4", name="ck_plan_phases_phase_number"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    plan_id = Column(UUID(as_uuid=True), ForeignKey("habit_plans.id", ondelete="CASCADE"), nullable=False)
    phase_number = Column(Integer, nullable=False)
    status = Column(String(length=20), nullable=False, server_default=sa_text("'pending'"))
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

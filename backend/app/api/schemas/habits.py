"""Schemas for habit generation and plan retrieval."""
from __future__ import annotations

from datetime import date
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

HabitCategoryLiteral = Literal["foundational", "goal-specific", "barrier-targeting"]
PlanPhaseStatusLiteral = Literal["pending", "active", "completed", "skipped"]


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys while keeping snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BarrierInput(CamelModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: Optional[str] = Field(None, max_length=100)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Barrier title is required")
        return cleaned


class GenerateHabitsRequest(CamelModel):
    goal_title: str = Field(..., min_length=1)
    goal_description: Optional[str] = None
    goal_category: Optional[str] = Field(None, max_length=100)
    barriers: List[BarrierInput] = Field(..., min_length=1)

    @field_validator("goal_title")
    @classmethod
    def trim_goal_title(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Goal title is required")
        if len(cleaned) > 200:
            raise ValueError("Goal title must be at most 200 characters after trimming")
        return cleaned


class GeneratedHabit(BaseModel):
    """Strict shape a generation result must satisfy before it is persisted."""

    title: str = Field(..., min_length=1)
    description: str
    category: HabitCategoryLiteral
    phase: int = Field(..., ge=1, le=4)
    frequency: str
    duration: Optional[int] = None
    priority: int = Field(..., ge=1, le=10)


class HabitGeneration(BaseModel):
    habits: List[GeneratedHabit] = Field(..., min_length=1)


class HabitResponse(CamelModel):
    id: UUID
    title: str
    description: str
    category: HabitCategoryLiteral
    phase: int
    frequency: str
    duration: Optional[int] = None
    priority: int


class HabitSummary(CamelModel):
    foundational_count: int
    goal_specific_count: int
    barrier_targeting_count: int
    total_count: int


class GenerateHabitsResponse(CamelModel):
    plan_id: UUID
    goal_id: UUID
    habits: List[HabitResponse]
    summary: HabitSummary


class PhaseCounts(BaseModel):
    phase1: int
    phase2: int
    phase3: int
    phase4: int


class PlanPhaseDetail(CamelModel):
    id: UUID
    phase_number: int
    status: PlanPhaseStatusLiteral
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class HabitPlanDetails(CamelModel):
    plan_id: UUID
    goal_id: UUID
    title: Optional[str] = None
    description: Optional[str] = None
    phase_counts: PhaseCounts
    phases: List[PlanPhaseDetail]
    habits: List[HabitResponse]

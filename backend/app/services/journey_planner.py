"""Display-time journey built by spreading habit layers over four weekly phases."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Literal, Optional
from uuid import uuid4

from pydantic import Field

from app.api.schemas.habits import CamelModel

PHASE_LENGTH_DAYS = 7
DEFAULT_JOURNEY_NAME = "Your Journey"

JOURNEY_PHASES: List[Dict[str, str]] = [
    {
        "id": "reset-rebuild",
        "name": "Reset & Rebuild",
        "summary": "Foundation building and habit establishment",
    },
    {
        "id": "build-momentum",
        "name": "Build Momentum",
        "summary": "Strengthening routines and overcoming obstacles",
    },
    {
        "id": "polish-prepare",
        "name": "Polish & Prepare",
        "summary": "Refining habits and preparing for next level",
    },
    {
        "id": "ready-window",
        "name": "Ready Window",
        "summary": "Peak performance and goal achievement",
    },
]

# Share of each layer placed in the earlier of its two phases.
FOUNDATIONAL_EARLY_PERCENT = 60
GOAL_SPECIFIC_EARLY_PERCENT = 70
BARRIER_TARGETING_EARLY_PERCENT = 80

JourneyPhaseStatus = Literal["locked", "current", "completed"]


class LayerHabit(CamelModel):
    id: str
    title: str
    description: str = ""
    frequency: Optional[str] = None


class HabitLayers(CamelModel):
    foundational: List[LayerHabit] = Field(default_factory=list)
    goal_specific: List[LayerHabit] = Field(default_factory=list)
    barrier_targeting: List[LayerHabit] = Field(default_factory=list)

    def total(self) -> int:
        return len(self.foundational) + len(self.goal_specific) + len(self.barrier_targeting)


class JourneyPhase(CamelModel):
    id: str
    name: str
    summary: str
    status: JourneyPhaseStatus
    start_date: datetime
    end_date: datetime
    habit_count: int
    habits: List[LayerHabit] = Field(default_factory=list)


class JourneyPlan(CamelModel):
    id: str
    name: str
    start_date: datetime
    phases: List[JourneyPhase]


def ceil_share(count: int, percent: int) -> int:
    """``ceil(count * percent / 100)`` in integer arithmetic."""
    return -(-count * percent // 100)


def build_journey(goal_name: str, habits: HabitLayers, now: Optional[datetime] = None) -> JourneyPlan:
    """
    Spread the three habit layers across the four journey phases.

    Phase 0 gets the first 60% of foundational habits; phase 1 the rest of them plus
    the first 70% of goal-specific ones; phase 2 the remaining goal-specific plus the
    first 80% of barrier-targeting; phase 3 whatever barrier-targeting habits remain.
    Every phase lasts a week, starting at ``now``. Empty layers still yield four phases.
    """
    start = now or datetime.now(timezone.utc)

    foundational = list(habits.foundational)
    goal_specific = list(habits.goal_specific)
    barrier_targeting = list(habits.barrier_targeting)

    foundational_cut = ceil_share(len(foundational), FOUNDATIONAL_EARLY_PERCENT)
    goal_cut = ceil_share(len(goal_specific), GOAL_SPECIFIC_EARLY_PERCENT)
    barrier_cut = ceil_share(len(barrier_targeting), BARRIER_TARGETING_EARLY_PERCENT)

    buckets = [
        foundational[:foundational_cut],
        foundational[foundational_cut:] + goal_specific[:goal_cut],
        goal_specific[goal_cut:] + barrier_targeting[:barrier_cut],
        barrier_targeting[barrier_cut:],
    ]

    phases = [
        JourneyPhase(
            **template,
            status="current" if index == 0 else "locked",
            start_date=start + timedelta(days=PHASE_LENGTH_DAYS * index),
            end_date=start + timedelta(days=PHASE_LENGTH_DAYS * (index + 1)),
            habit_count=len(bucket),
            habits=bucket,
        )
        for index, (template, bucket) in enumerate(zip(JOURNEY_PHASES, buckets))
    ]

    return JourneyPlan(
        id=str(uuid4()),
        name=goal_name.strip() or DEFAULT_JOURNEY_NAME,
        start_date=start,
        phases=phases,
    )


def current_phase(journey: JourneyPlan) -> Optional[JourneyPhase]:
    return next((phase for phase in journey.phases if phase.status == "current"), None)

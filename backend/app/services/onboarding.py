"""Onboarding flow: goal entry, barrier selection, then plan generation and display."""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import Field, ValidationError

from app.api.schemas.habits import BarrierInput, CamelModel, GenerateHabitsRequest
from app.services import habit_generation_gateway
from app.services.habit_normalizer import HabitCategory, categorize
from app.services.journey_planner import HabitLayers, JourneyPlan, LayerHabit, build_journey
from app.services.onboarding_storage import KeyValueStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "@onboarding_state"
FIRST_STEP, LAST_STEP = 1, 3
PLAN_STEP = LAST_STEP
MIN_GOAL_LENGTH, MAX_GOAL_LENGTH = 3, 200
MAX_BARRIERS = 10
GENERATION_FAILED_MESSAGE = "Failed to generate habits"

PRESET_BARRIERS = (
    "Sleep",
    "Focus",
    "Stress",
    "Time Management",
    "Motivation",
    "Energy",
)

LAYER_ID_PREFIXES = {
    HabitCategory.FOUNDATIONAL: "f",
    HabitCategory.GOAL_SPECIFIC: "g",
    HabitCategory.BARRIER_TARGETING: "b",
}

PERSISTED_FIELDS = {
    "step",
    "north_star_goal",
    "barriers",
    "custom_barriers",
    "habits",
    "journey",
    "is_onboarding_complete",
}

HabitSource = Callable[[str, List[str]], HabitLayers]


class OnboardingState(CamelModel):
    step: int = Field(FIRST_STEP, ge=FIRST_STEP, le=LAST_STEP)
    north_star_goal: str = ""
    barriers: List[str] = Field(default_factory=list)
    custom_barriers: List[str] = Field(default_factory=list)
    is_loading: bool = False
    error: Optional[str] = None
    habits: Optional[HabitLayers] = None
    journey: Optional[JourneyPlan] = None
    is_onboarding_complete: bool = False


def validate_north_star_goal(goal: str) -> Optional[str]:
    """Return a user-facing message when the goal is unusable, else None."""
    trimmed = goal.strip()
    if not trimmed:
        return "Please share your goal with us"
    if len(trimmed) < MIN_GOAL_LENGTH:
        return f"Your goal should be at least {MIN_GOAL_LENGTH} characters"
    if len(trimmed) > MAX_GOAL_LENGTH:
        return f"Your goal is too long. Please keep it under {MAX_GOAL_LENGTH} characters"
    return None


def validate_barriers(barriers: List[str], custom_barriers: List[str]) -> Optional[str]:
    total = len(barriers) + len(custom_barriers)
    if total == 0:
        return "Please select at least one barrier"
    if total > MAX_BARRIERS:
        return f"Please select no more than {MAX_BARRIERS} barriers"
    return None


def generate_habit_layers(
    goal: str,
    barriers: List[str],
    generator: Optional[Callable[..., Dict[str, Any]]] = None,
) -> HabitLayers:
    """Run the goal and barrier names through the generation gateway and group by category."""
    problem = validate_north_star_goal(goal) or validate_barriers(barriers, [])
    if problem:
        raise ValueError(problem)

    generator = generator or habit_generation_gateway.generate_habits
    try:
        request = GenerateHabitsRequest(
            goal_title=goal,
            barriers=[BarrierInput(title=barrier) for barrier in barriers],
        )
    except ValidationError as exc:
        raise ValueError("Please check your goal and barriers") from exc

    result = generator(request)
    grouped: Dict[HabitCategory, List[LayerHabit]] = defaultdict(list)
    for habit in result.get("habits", []):
        category = categorize(habit.get("category"))
        bucket = grouped[category]
        bucket.append(
            LayerHabit(
                id=f"{LAYER_ID_PREFIXES[category]}{len(bucket) + 1}",
                title=habit.get("title") or "",
                description=habit.get("description") or "",
                frequency=habit.get("frequency") or None,
            )
        )

    return HabitLayers(
        foundational=grouped[HabitCategory.FOUNDATIONAL],
        goal_specific=grouped[HabitCategory.GOAL_SPECIFIC],
        barrier_targeting=grouped[HabitCategory.BARRIER_TARGETING],
    )


class OnboardingStateMachine:
    """
    Holds onboarding state and applies transitions to it.

    Every mutation is written through to ``storage`` under ``storage_key``; loading
    and error flags are transient and never persisted. Storage problems are logged
    and otherwise ignored so the flow keeps working offline.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        habit_source: Optional[HabitSource] = None,
        storage_key: str = STORAGE_KEY,
    ) -> None:
        self.storage = storage
        self.habit_source = habit_source or generate_habit_layers
        self.storage_key = storage_key
        self.state = OnboardingState()

    def set_step(self, step: int) -> None:
        self.state.step = max(FIRST_STEP, min(LAST_STEP, step))
        self.save_to_storage()
        if self.state.step == PLAN_STEP:
            self.enter_plan_step()

    def set_north_star_goal(self, goal: str) -> None:
        self.state.north_star_goal = goal
        self.state.error = None
        self.save_to_storage()

    def toggle_barrier(self, barrier: str) -> None:
        if barrier in self.state.barriers:
            self.state.barriers = [item for item in self.state.barriers if item != barrier]
        else:
            self.state.barriers = [*self.state.barriers, barrier]
        self.save_to_storage()

    def add_custom_barrier(self, barrier: str) -> None:
        cleaned = barrier.strip()
        if not cleaned or cleaned in self.state.custom_barriers:
            return
        self.state.custom_barriers = [*self.state.custom_barriers, cleaned]
        self.save_to_storage()

    def remove_custom_barrier(self, barrier: str) -> None:
        self.state.custom_barriers = [item for item in self.state.custom_barriers if item != barrier]
        self.save_to_storage()

    def next_step(self) -> None:
        if self.state.step >= LAST_STEP:
            return
        self.state.step += 1
        self.save_to_storage()
        if self.state.step == PLAN_STEP:
            self.enter_plan_step()

    def prev_step(self) -> None:
        self.state.error = None
        if self.state.step > FIRST_STEP:
            self.state.step -= 1
        self.save_to_storage()

    def enter_plan_step(self) -> bool:
        """Start generation unless a plan, a pending request, or an error is already present."""
        state = self.state
        if state.habits is not None or state.is_loading or state.error is not None:
            return False
        self.submit_onboarding()
        return True

    def retry(self) -> None:
        self.submit_onboarding()

    def submit_onboarding(self) -> None:
        all_barriers = [*self.state.barriers, *self.state.custom_barriers]
        self.state.is_loading = True
        self.state.error = None

        try:
            habits = self.habit_source(self.state.north_star_goal, all_barriers)
        except Exception as exc:
            logger.warning("Habit generation failed during onboarding: %s", exc, exc_info=True)
            self.state.error = str(exc) or GENERATION_FAILED_MESSAGE
            self.state.is_loading = False
            return

        self.state.habits = habits
        self.state.is_loading = False
        self.save_to_storage()

    def complete_onboarding(self, now: Optional[datetime] = None) -> Optional[JourneyPlan]:
        if self.state.habits is None:
            return None
        journey = build_journey(self.state.north_star_goal, self.state.habits, now=now)
        self.state.journey = journey
        self.state.is_onboarding_complete = True
        self.save_to_storage()
        return journey

    def load_from_storage(self) -> None:
        try:
            stored = self.storage.get_item(self.storage_key)
            if not stored:
                return
            loaded = OnboardingState.model_validate_json(stored)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to load onboarding state: %s", exc)
            return
        self.state = loaded.model_copy(update={"is_loading": self.state.is_loading, "error": self.state.error})
        # A run interrupted mid-generation leaves step 3 saved without habits.
        if self.state.step == PLAN_STEP:
            self.enter_plan_step()

    def save_to_storage(self) -> None:
        try:
            self.storage.set_item(self.storage_key, self.serialize())
        except OSError as exc:
            logger.warning("Failed to save onboarding state: %s", exc)

    def serialize(self) -> str:
        return self.state.model_dump_json(by_alias=True, include=PERSISTED_FIELDS)

    def reset(self) -> None:
        self.state = OnboardingState()
        try:
            self.storage.remove_item(self.storage_key)
        except OSError as exc:
            logger.warning("Failed to clear onboarding state: %s", exc)

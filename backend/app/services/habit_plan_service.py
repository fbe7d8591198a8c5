"""Assemble generated habits into a persisted plan, and read plans back."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Union
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.schemas.habits import (
    GenerateHabitsRequest,
    GenerateHabitsResponse,
    HabitGeneration,
    HabitPlanDetails,
    HabitResponse,
    HabitSummary,
    PhaseCounts,
    PlanPhaseDetail,
)
from app.core.errors import PlanAssemblyError, PlanNotFoundError
from app.db.models.barrier import Barrier
from app.db.models.goal import Goal
from app.db.models.habit import Habit
from app.db.models.habit_plan import HabitPlan
from app.db.models.plan_phase import PlanPhase
from app.observability.tracing import annotate, trace
from app.services import habit_generation_gateway
from app.services.habit_normalizer import HabitCategory, NormalizedHabit, count_by_phase, normalize_habits
from app.services.user_service import upsert_user

logger = logging.getLogger(__name__)

HabitGenerator = Callable[..., Dict[str, Any]]


@dataclass(frozen=True)
class HabitGenerationContext:
    user_id: UUID
    user_email: Optional[str] = None
    request_id: Optional[str] = None


@contextmanager
def _persistence_step(step: str, failure_message: str, **log_context: Any) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("%s (step=%s, context=%s)", failure_message, step, log_context, exc_info=True)
        raise PlanAssemblyError(step, failure_message) from exc


def generate_habit_plan(
    db: Session,
    request: GenerateHabitsRequest,
    context: HabitGenerationContext,
    generator: Optional[HabitGenerator] = None,
) -> GenerateHabitsResponse:
    """
    Persist a goal, its barriers, and a freshly generated habit plan.

    Steps run strictly in order inside one transaction; a failure in any step
    rolls every earlier write back and surfaces a PlanAssemblyError naming it.
    """
    generator = generator or habit_generation_gateway.generate_habits
    metadata = {"goal_title": request.goal_title, "barrier_count": len(request.barriers)}

    with trace(
        "habits.plan.assemble",
        metadata=metadata,
        user_id=str(context.user_id),
        request_id=context.request_id,
    ) as span:
        try:
            with _persistence_step("upsert_user", "Failed to upsert user", user_id=str(context.user_id)):
                upsert_user(db, context.user_id, context.user_email)

            goal = _create_goal(db, context.user_id, request)
            barriers = _create_barriers(db, context.user_id, goal.id, request)

            ai_response = generator(request, request_id=context.request_id)
            try:
                validated = HabitGeneration.model_validate(ai_response)
            except ValidationError as exc:
                logger.error("Generated habits failed validation: %s", exc)
                raise PlanAssemblyError("validate_generation", "Generated habits failed validation") from exc

            normalized = normalize_habits(habit.model_dump() for habit in validated.habits)

            plan = _create_habit_plan(db, context.user_id, goal.id, request.goal_title, count_by_phase(normalized))
            _create_plan_phases(db, plan.id)
            habit_rows = _create_habits(db, context.user_id, goal.id, plan.id, normalized, barriers)

            with _persistence_step("commit", "Failed to save habit plan", plan_id=str(plan.id)):
                db.commit()
        except Exception:
            db.rollback()
            raise

        summary = build_habit_summary(habit_rows)
        annotate(span, {**metadata, "plan_id": str(plan.id), "habit_count": summary.total_count})

    logger.info(
        "Habits generated successfully (plan_id=%s, goal_id=%s, habit_count=%s)",
        plan.id,
        goal.id,
        summary.total_count,
    )
    return GenerateHabitsResponse(
        plan_id=plan.id,
        goal_id=goal.id,
        habits=[habit_to_response(row) for row in habit_rows],
        summary=summary,
    )


def get_habit_plan(db: Session, plan_id: Union[UUID, str], user_id: UUID) -> HabitPlanDetails:
    """Load a plan owned by ``user_id``; any miss, including a foreign owner, is a 404."""
    try:
        plan_uuid = plan_id if isinstance(plan_id, UUID) else UUID(str(plan_id))
    except ValueError:
        raise PlanNotFoundError() from None

    with _persistence_step("load_plan", "Failed to load habit plan", plan_id=str(plan_uuid)):
        plan = (
            db.query(HabitPlan)
            .filter(HabitPlan.id == plan_uuid, HabitPlan.user_id == user_id)
            .one_or_none()
        )
        if plan is None:
            raise PlanNotFoundError()

        phases = (
            db.query(PlanPhase)
            .filter(PlanPhase.plan_id == plan.id)
            .order_by(PlanPhase.phase_number.asc())
            .all()
        )
        habits = (
            db.query(Habit)
            .filter(Habit.plan_id == plan.id, Habit.user_id == user_id)
            .order_by(Habit.phase.asc(), Habit.priority.desc())
            .all()
        )

    return HabitPlanDetails(
        plan_id=plan.id,
        goal_id=plan.goal_id,
        title=plan.title,
        description=plan.description,
        phase_counts=PhaseCounts(
            phase1=plan.phase1_count,
            phase2=plan.phase2_count,
            phase3=plan.phase3_count,
            phase4=plan.phase4_count,
        ),
        phases=[
            PlanPhaseDetail(
                id=phase.id,
                phase_number=phase.phase_number,
                status=phase.status,
                start_date=phase.start_date,
                end_date=phase.end_date,
            )
            for phase in phases
        ],
        habits=[habit_to_response(habit) for habit in habits],
    )


def build_habit_summary(habits: List[Habit]) -> HabitSummary:
    return HabitSummary(
        foundational_count=sum(1 for habit in habits if habit.category == HabitCategory.FOUNDATIONAL.value),
        goal_specific_count=sum(1 for habit in habits if habit.category == HabitCategory.GOAL_SPECIFIC.value),
        barrier_targeting_count=sum(1 for habit in habits if habit.category == HabitCategory.BARRIER_TARGETING.value),
        total_count=len(habits),
    )


def habit_to_response(habit: Habit) -> HabitResponse:
    return HabitResponse(
        id=habit.id,
        title=habit.title,
        description=habit.description or "",
        category=habit.category,
        phase=habit.phase,
        frequency=habit.frequency or "",
        duration=habit.duration,
        priority=habit.priority,
    )


def assign_barrier_ids(habits: List[NormalizedHabit], barrier_ids: List[UUID]) -> List[Optional[UUID]]:
    """
    Pick a barrier for each barrier-targeting habit.

    The index is the habit's position in the full list, not among barrier-targeting
    habits only, so the spread across barriers is not strictly even.
    """
    assigned: List[Optional[UUID]] = []
    for index, habit in enumerate(habits):
        if habit.category is HabitCategory.BARRIER_TARGETING and barrier_ids:
            assigned.append(barrier_ids[index % len(barrier_ids)])
        else:
            assigned.append(None)
    return assigned


def _create_goal(db: Session, user_id: UUID, request: GenerateHabitsRequest) -> Goal:
    with _persistence_step("create_goal", "Failed to create goal", user_id=str(user_id)):
        goal = Goal(
            user_id=user_id,
            title=request.goal_title,
            description=request.goal_description,
            category=request.goal_category,
        )
        db.add(goal)
        db.flush()
    return goal


def _create_barriers(db: Session, user_id: UUID, goal_id: UUID, request: GenerateHabitsRequest) -> List[Barrier]:
    with _persistence_step("create_barriers", "Failed to create barriers", goal_id=str(goal_id)):
        barriers = [
            Barrier(
                user_id=user_id,
                goal_id=goal_id,
                title=barrier.title,
                description=barrier.description,
                type=barrier.type,
            )
            for barrier in request.barriers
        ]
        db.add_all(barriers)
        db.flush()
    return barriers


def _create_habit_plan(
    db: Session,
    user_id: UUID,
    goal_id: UUID,
    goal_title: str,
    phase_counts: Dict[int, int],
) -> HabitPlan:
    with _persistence_step("create_plan", "Failed to create habit plan", goal_id=str(goal_id)):
        plan = HabitPlan(
            user_id=user_id,
            goal_id=goal_id,
            title=f"{goal_title} - Habit Plan",
            description=None,
            phase1_count=phase_counts[1],
            phase2_count=phase_counts[2],
            phase3_count=phase_counts[3],
            phase4_count=phase_counts[4],
        )
        db.add(plan)
        db.flush()
    return plan


def _create_plan_phases(db: Session, plan_id: UUID) -> List[PlanPhase]:
    with _persistence_step("create_plan_phases", "Failed to create plan phases", plan_id=str(plan_id)):
        phases = [
            PlanPhase(plan_id=plan_id, phase_number=number, status="active" if number == 1 else "pending")
            for number in range(1, 5)
        ]
        db.add_all(phases)
        db.flush()
    return phases


def _create_habits(
    db: Session,
    user_id: UUID,
    goal_id: UUID,
    plan_id: UUID,
    habits: List[NormalizedHabit],
    barriers: List[Barrier],
) -> List[Habit]:
    barrier_ids = assign_barrier_ids(habits, [barrier.id for barrier in barriers])
    with _persistence_step("create_habits", "Failed to create habits", plan_id=str(plan_id)):
        rows = [
            Habit(
                user_id=user_id,
                goal_id=goal_id,
                plan_id=plan_id,
                barrier_id=barrier_id,
                title=habit.title,
                description=habit.description,
                category=habit.category.value,
                phase=habit.phase,
                frequency=habit.frequency,
                duration=habit.duration,
                priority=habit.priority,
            )
            for habit, barrier_id in zip(habits, barrier_ids)
        ]
        db.add_all(rows)
        db.flush()
    return rows

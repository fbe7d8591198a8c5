"""Habit generation and plan retrieval routes."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.api.schemas.habits import GenerateHabitsRequest, GenerateHabitsResponse, HabitPlanDetails
from app.core.auth import AuthenticatedUser, get_current_user
from app.db.deps import get_db
from app.observability.metrics import log_metric
from app.services.habit_plan_service import HabitGenerationContext, generate_habit_plan, get_habit_plan

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/habits", tags=["habits"])


@router.post("/generate", response_model=GenerateHabitsResponse, status_code=status.HTTP_201_CREATED)
def generate_habits_endpoint(
    payload: GenerateHabitsRequest,
    http_request: Request,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> GenerateHabitsResponse:
    """Generate a phased habit plan for the caller's goal and barriers."""
    request_id = getattr(http_request.state, "request_id", None)
    logger.info(
        "Generating habits (user_id=%s, goal_title=%s, barrier_count=%s)",
        current_user.user_id,
        payload.goal_title,
        len(payload.barriers),
    )

    success = False
    habit_count = 0
    try:
        result = generate_habit_plan(
            db,
            payload,
            HabitGenerationContext(
                user_id=current_user.user_id,
                user_email=current_user.email,
                request_id=request_id,
            ),
        )
        success = True
        habit_count = result.summary.total_count
    finally:
        metric_metadata = {"user_id": str(current_user.user_id)}
        log_metric("habits.generate.success", 1 if success else 0, metadata=metric_metadata)
        log_metric("habits.generate.habit_count", habit_count, metadata=metric_metadata)

    return result


@router.get("/plan/{plan_id}", response_model=HabitPlanDetails)
def get_plan_endpoint(
    plan_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> HabitPlanDetails:
    """Return a plan with its phases and habits when it belongs to the caller."""
    details = get_habit_plan(db, plan_id, current_user.user_id)
    log_metric("habits.plan.get.success", 1, metadata={"user_id": str(current_user.user_id)})
    return details

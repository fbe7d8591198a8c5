"""LLM-backed habit generation with a deterministic fallback set."""
from __future__ import annotations

import json
import logging
import re
from threading import Lock
from typing import Any, Dict, List, Optional

import openai
from pydantic import BaseModel, ValidationError

from app.api.schemas.habits import GenerateHabitsRequest
from app.core.config import settings
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.habit_normalizer import GATEWAY_DEFAULT_DURATION, HabitCategory, normalize_habits

logger = logging.getLogger(__name__)

JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

FALLBACK_HABITS: Dict[HabitCategory, List[Dict[str, Any]]] = {
    HabitCategory.FOUNDATIONAL: [
        {
            "title": "Morning Reflection",
            "description": "Spend 5 minutes reflecting on your goals and intentions for the day",
            "frequency": "daily",
            "duration": 5,
            "priority": 8,
        },
        {
            "title": "Evening Review",
            "description": "Review your day and track progress towards your goal",
            "frequency": "daily",
            "duration": 5,
            "priority": 7,
        },
        {
            "title": "Weekly Planning",
            "description": "Plan out the week ahead with specific actions",
            "frequency": "weekly",
            "duration": 30,
            "priority": 9,
        },
    ],
    HabitCategory.GOAL_SPECIFIC: [
        {
            "title": "Goal-Aligned Action",
            "description": "Take one meaningful action directly aligned with your goal",
            "frequency": "daily",
            "duration": 30,
            "priority": 10,
        },
        {
            "title": "Learning Session",
            "description": "Learn something new that supports your goal",
            "frequency": "daily",
            "duration": 20,
            "priority": 8,
        },
    ],
    HabitCategory.BARRIER_TARGETING: [
        {
            "title": "Obstacle Mitigation",
            "description": "Actively work on overcoming identified barriers",
            "frequency": "daily",
            "duration": 15,
            "priority": 9,
        },
    ],
}

# category -> (split index, phase before the split, phase from the split on)
FALLBACK_PHASES: Dict[HabitCategory, tuple[int, int, int]] = {
    HabitCategory.FOUNDATIONAL: (2, 1, 2),
    HabitCategory.GOAL_SPECIFIC: (1, 2, 3),
    HabitCategory.BARRIER_TARGETING: (1, 3, 4),
}


class RawCandidateHabit(BaseModel):
    """Loose shape of one habit in model output; only phase and priority are mandatory."""

    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    phase: float
    frequency: Optional[str] = None
    duration: Optional[float] = None
    priority: float


class RawHabitGeneration(BaseModel):
    habits: List[RawCandidateHabit]


_client: Optional["openai.OpenAI"] = None
_client_lock = Lock()
_client_init_attempted = False


def get_openai_client() -> Optional["openai.OpenAI"]:
    """Build the OpenAI client once; None means generation runs in mock mode."""
    global _client, _client_init_attempted

    if settings.use_mock_ai or not settings.openai_enabled or not settings.openai_api_key:
        return None

    with _client_lock:
        if _client is not None or _client_init_attempted:
            return _client
        _client_init_attempted = True
        try:
            _client = openai.OpenAI(
                api_key=settings.openai_api_key,
                timeout=settings.openai_timeout_seconds,
                max_retries=settings.openai_max_retries,
            )
        except Exception as exc:
            logger.warning("Failed to initialize OpenAI client, falling back to mock: %s", exc)
            _client = None
    return _client


def reset_openai_client() -> None:
    global _client, _client_init_attempted
    with _client_lock:
        _client = None
        _client_init_attempted = False


def generate_habits(
    request: GenerateHabitsRequest,
    client: Optional[Any] = None,
    request_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Return ``{"habits": [...]}`` for the goal and barriers in ``request``.

    Never raises for external-service problems: mock mode, a missing client,
    unparsable output, and API errors all yield the deterministic fallback set.
    """
    client = client if client is not None else get_openai_client()
    if client is None:
        logger.info("Using mock habit generation")
        return generate_fallback_habits()

    trace_metadata = {
        "model": settings.openai_model,
        "barrier_count": len(request.barriers),
        "goal_category": request.goal_category or "general",
    }
    try:
        with trace("habits.generate.llm", metadata=trace_metadata, request_id=request_id):
            completion = client.chat.completions.create(
                model=settings.openai_model,
                max_tokens=settings.openai_max_tokens,
                messages=[{"role": "user", "content": build_prompt(request)}],
            )
        response_text = completion.choices[0].message.content or ""
    except Exception:
        logger.exception("OpenAI API error, falling back to mock")
        return _fallback_with_metric("api_error")

    parsed = parse_habit_generation(response_text)
    if parsed is None:
        return _fallback_with_metric("unparsable")

    normalized = normalize_habits(
        [_with_default_title(habit) for habit in parsed.habits],
        default_duration=GATEWAY_DEFAULT_DURATION,
        check_coverage=False,
    )
    return {"habits": [habit.to_dict() for habit in normalized]}


def parse_habit_generation(response_text: str) -> Optional[RawHabitGeneration]:
    """Pull the JSON object out of free text; None when nothing usable is found."""
    match = JSON_OBJECT_PATTERN.search(response_text or "")
    if not match:
        logger.warning("Could not parse OpenAI response, using mock")
        return None
    try:
        parsed = RawHabitGeneration.model_validate(json.loads(match.group(0)))
    except (ValueError, ValidationError) as exc:
        logger.warning("OpenAI response was not a valid habit payload, using mock: %s", exc)
        return None
    if not parsed.habits:
        logger.warning("OpenAI response contained no habits, using mock")
        return None
    return parsed


def build_prompt(request: GenerateHabitsRequest) -> str:
    barriers_text = "\n".join(
        f"- {barrier.title}: {barrier.description or 'N/A'} ({barrier.type or 'general'})"
        for barrier in request.barriers
    )
    return (
        "You are a habit formation expert. Create a comprehensive habit architecture plan "
        "for someone with the following goal.\n\n"
        f"Goal: {request.goal_title}\n"
        f"Description: {request.goal_description or 'Not provided'}\n"
        f"Category: {request.goal_category or 'general'}\n\n"
        "Barriers to overcome:\n"
        f"{barriers_text}\n\n"
        "Please generate a structured habit plan in JSON format with the following structure:\n"
        "{\n"
        '  "habits": [\n'
        "    {\n"
        '      "title": "Habit name",\n'
        '      "description": "What this habit involves and why it helps",\n'
        '      "category": "foundational|goal-specific|barrier-targeting",\n'
        '      "phase": 1-4,\n'
        '      "frequency": "daily|weekly|specific pattern",\n'
        '      "duration": number in minutes,\n'
        '      "priority": 1-10\n'
        "    }\n"
        "  ]\n"
        "}\n\n"
        "Requirements:\n"
        "- Generate 3-4 foundational habits (core daily practices)\n"
        "- Generate 2-3 goal-specific habits (directly aligned with the goal)\n"
        "- Generate 2-3 barrier-targeting habits (address identified obstacles)\n"
        "- Distribute habits across 4 phases (introduction, building, reinforcement, mastery)\n"
        "- Ensure phase 1 has simpler, shorter-duration habits\n"
        "- Phase 4 should have more challenging habits\n"
        "- All habits should be specific and actionable\n"
        "- Return ONLY the JSON object, no additional text"
    )


def generate_fallback_habits() -> Dict[str, Any]:
    """Deterministic habit set covering every category across the four phases."""
    habits: List[Dict[str, Any]] = []
    for category, templates in FALLBACK_HABITS.items():
        split, early_phase, late_phase = FALLBACK_PHASES[category]
        for index, template in enumerate(templates):
            habits.append(
                {
                    **template,
                    "category": category.value,
                    "phase": early_phase if index < split else late_phase,
                }
            )
    return {"habits": habits}


def _fallback_with_metric(reason: str) -> Dict[str, Any]:
    log_metric("habits.generation.fallback_used", 1, metadata={"reason": reason})
    return generate_fallback_habits()


def _with_default_title(habit: RawCandidateHabit) -> Dict[str, Any]:
    payload = habit.model_dump()
    payload["title"] = habit.title or "Untitled Habit"
    return payload

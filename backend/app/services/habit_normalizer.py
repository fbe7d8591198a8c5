"""Normalization and categorization of generated habit candidates."""
from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from app.observability.metrics import log_metric

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 1000
MAX_FREQUENCY_LENGTH = 100
MIN_PHASE, MAX_PHASE = 1, 4
MIN_PRIORITY, MAX_PRIORITY = 1, 10
GATEWAY_DEFAULT_DURATION = 15
# Minutes; one day at most.
MIN_DURATION, MAX_DURATION = 1, 1440


class HabitCategory(str, Enum):
    FOUNDATIONAL = "foundational"
    GOAL_SPECIFIC = "goal-specific"
    BARRIER_TARGETING = "barrier-targeting"


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    WEEKENDS = "weekends"
    WEEKDAYS = "weekdays"


# Checked in order; first match wins.
CATEGORY_KEYWORDS = [
    (HabitCategory.GOAL_SPECIFIC, ("goal", "specific")),
    (HabitCategory.BARRIER_TARGETING, ("barrier", "target")),
]

FREQUENCY_KEYWORDS = [
    (Frequency.DAILY, ("daily", "every day")),
    (Frequency.WEEKLY, ("weekly", "once a week")),
    (Frequency.WEEKENDS, ("weekend",)),
    (Frequency.WEEKDAYS, ("weekday",)),
]


@dataclass
class NormalizedHabit:
    title: str
    description: str
    category: HabitCategory
    phase: int
    frequency: str
    priority: int
    duration: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["category"] = self.category.value
        return payload


def categorize(raw_category: Optional[str]) -> HabitCategory:
    """Map free-text category signals onto one of the three canonical categories."""
    lowered = (raw_category or "").lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return HabitCategory.FOUNDATIONAL


def normalize_frequency(raw_frequency: Optional[str]) -> str:
    text = raw_frequency or ""
    lowered = text.lower()
    for frequency, keywords in FREQUENCY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return frequency.value
    return text[:MAX_FREQUENCY_LENGTH]


def clamp_int(value: Any, low: int, high: int) -> int:
    """Floor ``value`` and clamp it into ``[low, high]``; non-finite input lands on a bound."""
    number = float(value)
    if math.isnan(number):
        return low
    if math.isinf(number):
        return high if number > 0 else low
    return max(low, min(high, math.floor(number)))


def normalize_duration(value: Any, default: Optional[int] = None) -> Optional[int]:
    # Zero counts as "not provided", matching how the generator treats it.
    if value is None or isinstance(value, bool):
        return default
    number = float(value)
    if math.isnan(number) or number == 0:
        return default
    if math.isinf(number):
        return MIN_DURATION if number < 0 else default
    return max(MIN_DURATION, min(MAX_DURATION, math.floor(number)))


def normalize_habit(raw: Mapping[str, Any], *, default_duration: Optional[int] = None) -> NormalizedHabit:
    return NormalizedHabit(
        title=str(raw.get("title") or "")[:MAX_TITLE_LENGTH],
        description=str(raw.get("description") or "")[:MAX_DESCRIPTION_LENGTH],
        category=categorize(_as_text(raw.get("category"))),
        phase=clamp_int(raw.get("phase"), MIN_PHASE, MAX_PHASE),
        frequency=normalize_frequency(_as_text(raw.get("frequency"))),
        duration=normalize_duration(raw.get("duration"), default_duration),
        priority=clamp_int(raw.get("priority"), MIN_PRIORITY, MAX_PRIORITY),
    )


def normalize_habits(
    raw_habits: Iterable[Mapping[str, Any]],
    *,
    default_duration: Optional[int] = None,
    check_coverage: bool = True,
) -> List[NormalizedHabit]:
    """
    Normalize raw candidates into canonical habits.

    ``default_duration`` is None on the persistence path (an absent duration stays
    absent) and ``GATEWAY_DEFAULT_DURATION`` when cleaning model output.
    """
    normalized = [normalize_habit(raw, default_duration=default_duration) for raw in raw_habits]
    if check_coverage:
        report_category_coverage(normalized)
    return normalized


def report_category_coverage(habits: List[NormalizedHabit]) -> List[HabitCategory]:
    """Log and count categories with no members. Never alters the habits."""
    present = {habit.category for habit in habits}
    missing = [category for category in HabitCategory if category not in present]
    if missing:
        logger.warning(
            "Incomplete habit categorization; missing categories: %s",
            ", ".join(category.value for category in missing),
        )
        log_metric(
            "habits.generation.category_missing",
            len(missing),
            metadata={"missing": [category.value for category in missing], "habit_count": len(habits)},
        )
    return missing


def count_by_phase(habits: Iterable[NormalizedHabit]) -> Dict[int, int]:
    counts = {phase: 0 for phase in range(MIN_PHASE, MAX_PHASE + 1)}
    for habit in habits:
        counts[habit.phase] += 1
    return counts


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""

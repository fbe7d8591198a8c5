from __future__ import annotations

import logging

import pytest

from app.services.habit_normalizer import (
    HabitCategory,
    categorize,
    clamp_int,
    count_by_phase,
    normalize_duration,
    normalize_frequency,
    normalize_habit,
    normalize_habits,
    report_category_coverage,
)


def _raw(**overrides):
    habit = {
        "title": "Morning Run",
        "description": "Run for 30 minutes",
        "category": "foundational",
        "phase": 1,
        "frequency": "daily",
        "duration": 30,
        "priority": 8,
    }
    habit.update(overrides)
    return habit


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Goal-Specific Routine", HabitCategory.GOAL_SPECIFIC),
        ("targets my barrier", HabitCategory.BARRIER_TARGETING),
        ("", HabitCategory.FOUNDATIONAL),
        (None, HabitCategory.FOUNDATIONAL),
        ("foundational", HabitCategory.FOUNDATIONAL),
        ("something else entirely", HabitCategory.FOUNDATIONAL),
        ("BARRIER-TARGETING", HabitCategory.BARRIER_TARGETING),
        ("Specific practice", HabitCategory.GOAL_SPECIFIC),
        # "goal" wins over "barrier" when both appear.
        ("goal barrier", HabitCategory.GOAL_SPECIFIC),
    ],
)
def test_categorize(text, expected):
    assert categorize(text) is expected


@pytest.mark.parametrize(
    ("raw_phase", "expected"),
    [(0, 1), (5, 4), (2.9, 2), (-3, 1), (-0.5, 1), (4, 4), (1, 1), (float("nan"), 1), (float("inf"), 4)],
)
def test_phase_is_floored_and_clamped(raw_phase, expected):
    assert normalize_habit(_raw(phase=raw_phase)).phase == expected


@pytest.mark.parametrize(
    ("raw_priority", "expected"),
    [(0, 1), (11, 10), (7.8, 7), (-100, 1), (float("-inf"), 1), (float("nan"), 1)],
)
def test_priority_is_floored_and_clamped(raw_priority, expected):
    assert normalize_habit(_raw(priority=raw_priority)).priority == expected


def test_clamp_int_accepts_numeric_strings():
    assert clamp_int("3.7", 1, 4) == 3


def test_text_fields_are_truncated():
    habit = normalize_habit(_raw(title="t" * 300, description="d" * 1200, frequency="x" * 150))

    assert len(habit.title) == 255
    assert len(habit.description) == 1000
    assert len(habit.frequency) == 100


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Daily", "daily"),
        ("every day after lunch", "daily"),
        ("Weekly", "weekly"),
        ("once a week", "weekly"),
        ("weekends only", "weekends"),
        ("on weekdays", "weekdays"),
        ("3x per week", "3x per week"),
        ("", ""),
    ],
)
def test_normalize_frequency(raw, expected):
    assert normalize_frequency(raw) == expected


def test_duration_unset_stays_unset_on_persistence_path():
    habit = normalize_habit(_raw(duration=None))
    assert habit.duration is None


def test_duration_defaults_on_gateway_path():
    habit = normalize_habit(_raw(duration=None), default_duration=15)
    assert habit.duration == 15


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(12.7, 12), (0.4, 1), (-5, 1), (0, None), (None, None), (1440, 1440), (1e12, 1440), (float("-inf"), 1)],
)
def test_normalize_duration(raw, expected):
    assert normalize_duration(raw) == expected


def test_normalize_habits_preserves_order_and_count():
    raws = [_raw(title="A"), _raw(title="B", category="goal"), _raw(title="C", category="barrier")]
    normalized = normalize_habits(raws)

    assert [habit.title for habit in normalized] == ["A", "B", "C"]
    assert [habit.category for habit in normalized] == [
        HabitCategory.FOUNDATIONAL,
        HabitCategory.GOAL_SPECIFIC,
        HabitCategory.BARRIER_TARGETING,
    ]


def test_missing_category_is_logged_but_output_unchanged(caplog):
    raws = [_raw(title="A"), _raw(title="B")]

    with caplog.at_level(logging.WARNING, logger="app.services.habit_normalizer"):
        normalized = normalize_habits(raws)

    assert len(normalized) == 2
    assert all(habit.category is HabitCategory.FOUNDATIONAL for habit in normalized)
    assert "Incomplete habit categorization" in caplog.text


def test_full_coverage_reports_nothing():
    habits = normalize_habits(
        [_raw(category="foundational"), _raw(category="goal-specific"), _raw(category="barrier-targeting")],
        check_coverage=False,
    )
    assert report_category_coverage(habits) == []


def test_count_by_phase_sums_to_total():
    habits = normalize_habits([_raw(phase=phase) for phase in (1, 1, 2, 3, 4, 9, -1)], check_coverage=False)
    counts = count_by_phase(habits)

    assert counts == {1: 3, 2: 1, 3: 1, 4: 2}
    assert sum(counts.values()) == len(habits)


def test_to_dict_uses_plain_category_string():
    payload = normalize_habit(_raw(category="goal")).to_dict()
    assert payload["category"] == "goal-specific"

from __future__ import annotations

import json
from types import SimpleNamespace

import pytest

from app.api.schemas.habits import BarrierInput, GenerateHabitsRequest, HabitGeneration
from app.services import habit_generation_gateway as gateway


class _FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class _FakeClient:
    def __init__(self, content=None, error=None):
        self.completions = _FakeCompletions(content=content, error=error)
        self.chat = SimpleNamespace(completions=self.completions)


def _request(**overrides) -> GenerateHabitsRequest:
    payload = {
        "goal_title": "Get Fit",
        "barriers": [BarrierInput(title="Lack of time", description="Busy work schedule", type="time-based")],
    }
    payload.update(overrides)
    return GenerateHabitsRequest(**payload)


@pytest.fixture(autouse=True)
def _reset_client():
    gateway.reset_openai_client()
    yield
    gateway.reset_openai_client()


def test_fallback_covers_every_category_and_validates():
    result = gateway.generate_fallback_habits()
    habits = result["habits"]

    assert len(habits) == 6
    assert [habit["category"] for habit in habits].count("foundational") == 3
    assert [habit["category"] for habit in habits].count("goal-specific") == 2
    assert [habit["category"] for habit in habits].count("barrier-targeting") == 1
    assert [habit["phase"] for habit in habits] == [1, 1, 2, 2, 3, 3]
    assert [habit["title"] for habit in habits][:2] == ["Morning Reflection", "Evening Review"]
    HabitGeneration.model_validate(result)


def test_mock_mode_returns_fallback_without_calling_client(monkeypatch):
    monkeypatch.setattr(gateway.settings, "use_mock_ai", True)

    assert gateway.get_openai_client() is None
    assert gateway.generate_habits(_request()) == gateway.generate_fallback_habits()


def test_missing_api_key_means_no_client(monkeypatch):
    monkeypatch.setattr(gateway.settings, "use_mock_ai", False)
    monkeypatch.setattr(gateway.settings, "openai_api_key", None)

    assert gateway.get_openai_client() is None


def test_client_is_built_once_with_timeout_and_no_retries(monkeypatch):
    built = []

    def _fake_openai(**kwargs):
        built.append(kwargs)
        return object()

    monkeypatch.setattr(gateway.settings, "use_mock_ai", False)
    monkeypatch.setattr(gateway.settings, "openai_enabled", True)
    monkeypatch.setattr(gateway.settings, "openai_api_key", "sk-test")
    monkeypatch.setattr(gateway.openai, "OpenAI", _fake_openai)

    first = gateway.get_openai_client()
    second = gateway.get_openai_client()

    assert first is second
    assert len(built) == 1
    assert built[0]["api_key"] == "sk-test"
    assert built[0]["max_retries"] == 0
    assert built[0]["timeout"] == gateway.settings.openai_timeout_seconds


def test_client_construction_failure_falls_back_to_mock(monkeypatch):
    def _broken_openai(**kwargs):
        raise RuntimeError("bad config")

    monkeypatch.setattr(gateway.settings, "use_mock_ai", False)
    monkeypatch.setattr(gateway.settings, "openai_enabled", True)
    monkeypatch.setattr(gateway.settings, "openai_api_key", "sk-test")
    monkeypatch.setattr(gateway.openai, "OpenAI", _broken_openai)

    assert gateway.get_openai_client() is None
    assert gateway.generate_habits(_request()) == gateway.generate_fallback_habits()


def test_response_with_surrounding_prose_is_normalized():
    body = {
        "habits": [
            {
                "description": "Walk after lunch",
                "category": "Goal Specific",
                "phase": 7,
                "frequency": "Every day",
                "priority": 0,
            },
            {
                "title": "Protect focus time",
                "description": "Block calendar",
                "category": "barrier-targeting",
                "phase": 2.6,
                "frequency": "weekly",
                "duration": 25.9,
                "priority": 12,
            },
        ]
    }
    client = _FakeClient(content=f"Here is your plan:\n{json.dumps(body)}\nGood luck!")

    result = gateway.generate_habits(_request(), client=client)
    first, second = result["habits"]

    assert first == {
        "title": "Untitled Habit",
        "description": "Walk after lunch",
        "category": "goal-specific",
        "phase": 4,
        "frequency": "daily",
        "duration": 15,
        "priority": 1,
    }
    assert second["phase"] == 2
    assert second["duration"] == 25
    assert second["priority"] == 10
    assert second["category"] == "barrier-targeting"
    HabitGeneration.model_validate(result)


def test_request_carries_model_tokens_and_prompt(monkeypatch):
    monkeypatch.setattr(gateway.settings, "openai_model", "gpt-test")
    monkeypatch.setattr(gateway.settings, "openai_max_tokens", 512)
    client = _FakeClient(content=json.dumps({"habits": [{"title": "x", "phase": 1, "priority": 5}]}))

    gateway.generate_habits(_request(), client=client)

    call = client.completions.calls[0]
    assert call["model"] == "gpt-test"
    assert call["max_tokens"] == 512
    assert "Goal: Get Fit" in call["messages"][0]["content"]


@pytest.mark.parametrize(
    "content",
    [
        "I cannot help with that.",
        "{not json at all}",
        json.dumps({"habits": [{"title": "Missing priority", "phase": 1}]}),
        json.dumps({"habits": []}),
        json.dumps({"plan": "wrong shape"}),
        "",
        None,
    ],
)
def test_unusable_output_falls_back(content):
    client = _FakeClient(content=content)

    assert gateway.generate_habits(_request(), client=client) == gateway.generate_fallback_habits()


def test_api_error_falls_back():
    client = _FakeClient(error=TimeoutError("request timed out"))

    assert gateway.generate_habits(_request(), client=client) == gateway.generate_fallback_habits()


def test_fallback_records_reason_metric(monkeypatch):
    recorded = []
    monkeypatch.setattr(gateway, "log_metric", lambda name, value, metadata=None: recorded.append((name, metadata)))

    gateway.generate_habits(_request(), client=_FakeClient(content="no json here"))
    gateway.generate_habits(_request(), client=_FakeClient(error=RuntimeError("down")))

    assert recorded == [
        ("habits.generation.fallback_used", {"reason": "unparsable"}),
        ("habits.generation.fallback_used", {"reason": "api_error"}),
    ]


def test_prompt_lists_barriers_and_defaults():
    request = _request(
        barriers=[
            BarrierInput(title="Lack of time", description="Busy work schedule", type="time-based"),
            BarrierInput(title="Low energy"),
        ]
    )
    prompt = gateway.build_prompt(request)

    assert "- Lack of time: Busy work schedule (time-based)" in prompt
    assert "- Low energy: N/A (general)" in prompt
    assert "Description: Not provided" in prompt
    assert "Category: general" in prompt
    assert "Return ONLY the JSON object" in prompt


def test_parse_spans_first_open_to_last_close_brace():
    text = 'prefix {"habits": [{"title": "A", "phase": 1, "priority": 3}]} suffix'
    parsed = gateway.parse_habit_generation(text)

    assert parsed is not None
    assert parsed.habits[0].title == "A"

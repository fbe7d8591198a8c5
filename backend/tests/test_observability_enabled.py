from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core import auth as auth_module
from app.db.base import Base
from app.db.deps import get_db
from app.main import app
from app.observability import client as client_module
from app.services import habit_generation_gateway as gateway


class _DummyTrace:
    def __init__(self, name, metadata=None, **kwargs):
        self.name = name
        self.metadata = metadata or {}
        self.ended = False

    def update(self, metadata=None, **kwargs):
        if metadata:
            self.metadata = metadata

    def end(self):
        self.ended = True


class _DummyOpik:
    def __init__(self, *args, **kwargs):
        self.traces = []

    def trace(self, name=None, **kwargs):
        trace = _DummyTrace(name, metadata=kwargs.get("metadata"))
        self.traces.append(trace)
        return trace


@pytest.fixture()
def sqlite_override():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_fk(conn, record):  # pragma: no cover - sqlite setup
        cursor = conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    return override_get_db


def test_habit_generation_records_traces_when_opik_enabled(monkeypatch, sqlite_override):
    monkeypatch.setattr(client_module, "Opik", _DummyOpik)
    monkeypatch.setattr(client_module.settings, "opik_enabled", True)
    monkeypatch.setattr(client_module.settings, "opik_api_key", "test-key")
    monkeypatch.setattr(auth_module.settings, "auth_jwt_secret", "test-secret")
    monkeypatch.setattr(gateway.settings, "use_mock_ai", True)
    client_module.reset_opik()

    token = auth_module.create_access_token(uuid4(), email="traced@example.com")
    app.dependency_overrides[get_db] = sqlite_override
    try:
        with TestClient(app) as test_client:
            assert test_client.get("/health").status_code == 200
            resp = test_client.post(
                "/habits/generate",
                json={"goalTitle": "Read more books", "barriers": [{"title": "Screen time"}]},
                headers={"Authorization": f"Bearer {token}"},
            )
            assert resp.status_code == 201

        opik = client_module.get_opik_client()
        names = [trace.name for trace in opik.traces]
        assert "http.health_check" in names
        assert "habits.plan.assemble" in names
        assert "metric:habits.generate.success" in names
        assert all(trace.ended for trace in opik.traces)

        assemble = next(trace for trace in opik.traces if trace.name == "habits.plan.assemble")
        assert assemble.metadata["habit_count"] == 6
    finally:
        app.dependency_overrides.clear()
        client_module.reset_opik()

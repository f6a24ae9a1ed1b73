"""
Contract/behavior tests for src/api.py.

These tests swap the PostgreSQL-backed engine and goal store for in-memory
ones and validate:
- analysis payload shape (status, summary, insufficient-data gate)
- request validation (window bounds, bad ref_date, goals without targets)
- early warnings and nutrition trend payloads
- goal upsert / listing
"""
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

import api as api_mod
from correlation_engine import CorrelationEngine
from stores import InMemoryGoalStore, InMemoryMealLogStore, InMemoryMoodLogStore

REF = date(2026, 3, 31)


def _entries(n):
    return [
        {"date": REF - timedelta(days=i), "time_of_day": "08:00", "mood_score": 6 + i % 2,
         "energy_level": 6, "productivity_score": 6, "stress_level": 4,
         "sleep_quality": 7, "exercise_completed": i % 2 == 0}
        for i in range(n)
    ]


def _meals(n):
    return [
        {"date": REF - timedelta(days=n - 1 - i), "sodium": 1800.0 + 80.0 * i, "fiber": 30.0}
        for i in range(n)
    ]


@pytest.fixture
def goal_store():
    return InMemoryGoalStore()


@pytest.fixture
def state():
    return {"entries": _entries(14), "meals": _meals(14)}


@pytest.fixture
def client(monkeypatch, goal_store, state):
    def fake_engine():
        return CorrelationEngine(
            InMemoryMealLogStore(state["meals"]),
            InMemoryMoodLogStore(state["entries"]),
            goal_store=goal_store,
        )

    monkeypatch.setattr(api_mod, "_engine", fake_engine)
    monkeypatch.setattr(api_mod, "_goal_store", lambda: goal_store)
    return TestClient(api_mod.app)


def test_root(client):
    assert client.get("/").json()["status"] == "ok"


def test_analysis_payload(client):
    resp = client.post("/api/v1/analysis", json={"user_id": "u1", "ref_date": REF.isoformat()})
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] in ("success", "degraded")
    assert body["window_days"] == 30
    assert 0.0 <= body["confidence"] <= 0.95
    assert 0 <= body["health_score"] <= 100
    assert body["summary"].count("\n") == 2
    assert "audit_id" not in body
    assert {"trends", "correlations", "patterns", "warnings", "recommendations"} <= set(body)


def test_analysis_insufficient(client, state):
    state["entries"] = _entries(2)
    body = client.post("/api/v1/analysis", json={"user_id": "u1", "ref_date": REF.isoformat()}).json()
    assert body["status"] == "insufficient_data"
    assert body["current_entries"] == 2
    assert body["required_entries"] == 5


def test_analysis_persist(client, monkeypatch):
    calls = []

    def fake_persist(result, conn_str=None):
        calls.append(result.user_id)
        return 42

    monkeypatch.setattr(api_mod, "persist_analysis", fake_persist)
    body = client.post("/api/v1/analysis",
                       json={"user_id": "u1", "ref_date": REF.isoformat(), "persist": True}).json()
    assert body["audit_id"] == 42
    assert calls == ["u1"]


def test_analysis_validation(client):
    assert client.post("/api/v1/analysis", json={"user_id": "u1", "window_days": 120}).status_code == 422
    assert client.post("/api/v1/analysis", json={"user_id": "u1", "ref_date": "not-a-date"}).status_code == 400


def test_analysis_engine_failure_is_500(client, monkeypatch):
    def broken():
        raise RuntimeError("POSTGRES_CONNECTION_STRING is not set")

    monkeypatch.setattr(api_mod, "_engine", broken)
    resp = client.post("/api/v1/analysis", json={"user_id": "u1"})
    assert resp.status_code == 500


def test_early_warnings(client):
    body = client.get("/api/v1/warnings/early",
                      params={"user_id": "u1", "ref_date": REF.isoformat()}).json()
    assert [w["metric"] for w in body["warnings"]] == ["sodium"]
    assert body["warnings"][0]["type"] == "early_warning"
    assert body["risk_assessment"]["health_score"] <= 100
    assert body["preventive_actions"][0]["metric"] == "sodium"


def test_nutrition_trends(client):
    body = client.get("/api/v1/trends/nutrition",
                      params={"user_id": "u1", "days": 14, "nutrients": "sodium,fiber",
                              "ref_date": REF.isoformat()}).json()
    assert body["window_days"] == 14
    sodium = body["trends"]["sodium"]
    assert sodium["direction"] == "increasing"
    assert sodium["slope"] == pytest.approx(80.0)
    assert len(sodium["values"]) == 14
    assert body["trends"]["fiber"]["direction"] == "stable"


def test_goals_roundtrip(client, goal_store):
    resp = client.post("/api/v1/goals", json={"user_id": "u1", "nutrient": "iron", "target_value": 18})
    assert resp.json()["created"] is True
    resp = client.post("/api/v1/goals", json={"user_id": "u1", "nutrient": "iron", "target_percentage": 80})
    assert resp.json()["created"] is False
    goals = client.get("/api/v1/goals", params={"user_id": "u1"}).json()["goals"]
    assert len(goals) == 1
    assert goals[0]["target_percentage"] == 80


def test_goal_without_target_rejected(client):
    resp = client.post("/api/v1/goals", json={"user_id": "u1", "nutrient": "iron"})
    assert resp.status_code == 422

"""
Tests for the collaborator stores.

PostgreSQL stores are exercised with fetch_all monkeypatched; the in-memory
stores are checked for windowing and per-day summing.
"""
from datetime import date

import stores as stores_mod
from models import Goal
from stores import (
    InMemoryGoalStore,
    InMemoryMealLogStore,
    InMemoryMicronutrientStore,
    InMemoryMoodLogStore,
    PostgresGoalStore,
    PostgresMealLogStore,
    PostgresMoodLogStore,
)

START, END = date(2026, 3, 1), date(2026, 3, 31)


class TestPostgresStores:

    def test_meal_totals_are_long_rows(self, monkeypatch):
        seen = {}

        def fake_fetch(query, params=None, conn_str=None):
            seen["query"] = query
            return [{"date": date(2026, 3, 2), "sugar": 42.0, "sodium": None}]

        monkeypatch.setattr(stores_mod, "fetch_all", fake_fetch)
        rows = PostgresMealLogStore("postgresql://x").get_daily_totals(
            "u1", ["sugar", "sodium", "caffeine"], START, END)
        assert "SUM(total_sugar) AS sugar" in seen["query"]
        assert "caffeine" not in seen["query"]
        assert rows == [
            {"date": date(2026, 3, 2), "metric": "sugar", "value": 42.0},
            {"date": date(2026, 3, 2), "metric": "sodium", "value": 0.0},
        ]

    def test_meal_totals_skip_query_for_unknown_metrics(self, monkeypatch):
        def fail(*a, **kw):
            raise AssertionError("should not query")

        monkeypatch.setattr(stores_mod, "fetch_all", fail)
        assert PostgresMealLogStore().get_daily_totals("u1", ["mood"], START, END) == []

    def test_mood_symptoms_parsed(self, monkeypatch):
        monkeypatch.setattr(stores_mod, "fetch_all", lambda *a, **kw: [
            {"date": date(2026, 3, 2), "mood_score": 6, "physical_symptoms": '["headache"]'},
            {"date": date(2026, 3, 3), "mood_score": 7, "physical_symptoms": "{broken"},
        ])
        rows = PostgresMoodLogStore().get_entries("u1", START, END)
        assert rows[0]["physical_symptoms"] == ["headache"]
        assert rows[1]["physical_symptoms"] == []

    def test_goals_built_from_rows(self, monkeypatch):
        monkeypatch.setattr(stores_mod, "fetch_all", lambda *a, **kw: [
            {"nutrient": "iron", "target_value": 18.0, "target_percentage": None,
             "timeframe": "weekly", "priority": "high"},
        ])
        goals = PostgresGoalStore().get_goals("u1")
        assert goals == [Goal("iron", 18.0, None, "weekly", "high")]


class TestInMemoryStores:

    def test_meals_summed_per_day_inside_window(self):
        store = InMemoryMealLogStore([
            {"date": date(2026, 3, 2), "sugar": 10},
            {"date": date(2026, 3, 2), "sugar": 15},
            {"date": date(2026, 2, 20), "sugar": 99},
        ])
        assert store.get_daily_totals("u1", ["sugar"], START, END) == [
            {"date": date(2026, 3, 2), "metric": "sugar", "value": 25.0},
        ]

    def test_mood_entries_sorted(self):
        store = InMemoryMoodLogStore([
            {"date": date(2026, 3, 3), "time_of_day": "08:00"},
            {"date": date(2026, 3, 2), "time_of_day": "20:00"},
            {"date": date(2026, 3, 2), "time_of_day": "07:00"},
        ])
        rows = store.get_entries("u1", START, END)
        assert [(r["date"].day, r["time_of_day"]) for r in rows] == [(2, "07:00"), (2, "20:00"), (3, "08:00")]

    def test_micronutrient_window(self):
        store = InMemoryMicronutrientStore({"iron": [
            {"date": date(2026, 4, 1), "value": 5},
            {"date": date(2026, 3, 5), "value": 8},
        ]})
        assert store.get_daily("u1", "iron", START, END) == [{"date": date(2026, 3, 5), "value": 8}]
        assert store.get_daily("u1", "zinc", START, END) == []

    def test_goal_upsert(self):
        store = InMemoryGoalStore()
        assert store.upsert_goal("u1", Goal("iron", target_value=18)) is True
        assert store.upsert_goal("u1", Goal("iron", target_value=20)) is False
        assert store.get_goals("u1")[0].target_value == 20
        assert store.get_goals("u2") == []

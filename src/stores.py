"""
Collaborator stores consumed by the analysis engine.

Each store exposes one read method; the engine never writes through them.
PostgreSQL implementations fetch rows with psycopg2; the in-memory ones back
tests and offline runs.

Row shapes:
  meal totals   {date, metric, value}            ascending, no synthetic zeros
  mood entries  {date, time_of_day, mood_score, energy_level,
                 productivity_score, stress_level, sleep_quality,
                 exercise_completed, physical_symptoms}
  micronutrient {date, value}
"""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

import psycopg2

from constants import NUTRITION_METRICS
from db_utils import fetch_all, get_conn_str
from models import Goal

log = logging.getLogger("stores")

# meals table column for each nutrition metric
MEAL_COLUMNS = {m: f"total_{m}" for m in NUTRITION_METRICS}


# ─── PostgreSQL ─────────────────────────────────────────────

class PostgresMealLogStore:
    def __init__(self, conn_str: Optional[str] = None):
        self.conn_str = conn_str

    def get_daily_totals(self, user_id, metric_names: Sequence[str],
                         start: date, end: date) -> List[Dict[str, Any]]:
        metrics = [m for m in metric_names if m in MEAL_COLUMNS]
        if not metrics:
            return []
        sums = ", ".join(f"SUM({MEAL_COLUMNS[m]}) AS {m}" for m in metrics)
        rows = fetch_all(
            f"SELECT DATE(created_at) AS date, {sums} FROM meals "
            "WHERE user_id = %s AND DATE(created_at) BETWEEN %s AND %s "
            "GROUP BY DATE(created_at) ORDER BY date ASC",
            (user_id, start, end),
            conn_str=self.conn_str,
        )
        out: List[Dict[str, Any]] = []
        for row in rows:
            for m in metrics:
                out.append({"date": row["date"], "metric": m, "value": float(row.get(m) or 0.0)})
        return out


class PostgresMoodLogStore:
    def __init__(self, conn_str: Optional[str] = None):
        self.conn_str = conn_str

    def get_entries(self, user_id, start: date, end: date) -> List[Dict[str, Any]]:
        rows = fetch_all(
            "SELECT date, time_of_day, mood_score, energy_level, productivity_score, "
            "stress_level, sleep_quality, exercise_completed, physical_symptoms "
            "FROM enhanced_mood_tracking "
            "WHERE user_id = %s AND date BETWEEN %s AND %s "
            "ORDER BY date, time_of_day",
            (user_id, start, end),
            conn_str=self.conn_str,
        )
        for row in rows:
            symptoms = row.get("physical_symptoms")
            if isinstance(symptoms, str):
                try:
                    row["physical_symptoms"] = json.loads(symptoms or "[]")
                except ValueError:
                    log.warning("Unparseable physical_symptoms on %s", row.get("date"))
                    row["physical_symptoms"] = []
        return rows


class PostgresMicronutrientStore:
    def __init__(self, conn_str: Optional[str] = None):
        self.conn_str = conn_str

    def get_daily(self, user_id, nutrient: str, start: date, end: date) -> List[Dict[str, Any]]:
        rows = fetch_all(
            "SELECT date, value FROM micronutrient_tracking "
            "WHERE user_id = %s AND nutrient = %s AND date BETWEEN %s AND %s "
            "ORDER BY date ASC",
            (user_id, nutrient, start, end),
            conn_str=self.conn_str,
        )
        return [{"date": r["date"], "value": float(r["value"] or 0.0)} for r in rows]


class PostgresGoalStore:
    def __init__(self, conn_str: Optional[str] = None):
        self.conn_str = conn_str

    def get_goals(self, user_id) -> List[Goal]:
        rows = fetch_all(
            "SELECT nutrient, target_value, target_percentage, timeframe, priority "
            "FROM micronutrient_goals WHERE user_id = %s ORDER BY nutrient",
            (user_id,),
            conn_str=self.conn_str,
        )
        return [Goal(**row) for row in rows]

    def upsert_goal(self, user_id, goal: Goal) -> bool:
        """Insert or update the user's goal for a nutrient. Returns True if created."""
        conn = psycopg2.connect(get_conn_str(self.conn_str))
        try:
            with conn, conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO micronutrient_goals
                        (user_id, nutrient, target_value, target_percentage, timeframe, priority)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    ON CONFLICT (user_id, nutrient) DO UPDATE SET
                        target_value = EXCLUDED.target_value,
                        target_percentage = EXCLUDED.target_percentage,
                        timeframe = EXCLUDED.timeframe,
                        priority = EXCLUDED.priority,
                        updated_at = CURRENT_TIMESTAMP
                    RETURNING (xmax = 0) AS created
                    """,
                    (user_id, goal.nutrient, goal.target_value, goal.target_percentage,
                     goal.timeframe, goal.priority),
                )
                return bool(cur.fetchone()[0])
        finally:
            conn.close()


# ─── In-memory ──────────────────────────────────────────────

def _in_window(d: date, start: date, end: date) -> bool:
    return start <= d <= end


class InMemoryMealLogStore:
    """Per-meal rows {date, <metric>: value, ...} summed per day on read."""

    def __init__(self, meals: Iterable[Dict[str, Any]] = ()):
        self.meals = list(meals)

    def get_daily_totals(self, user_id, metric_names, start, end):
        totals: Dict[date, Dict[str, float]] = {}
        for meal in self.meals:
            d = meal["date"]
            if not _in_window(d, start, end):
                continue
            day = totals.setdefault(d, {})
            for m in metric_names:
                if m in MEAL_COLUMNS:
                    day[m] = day.get(m, 0.0) + float(meal.get(m) or 0.0)
        out = []
        for d in sorted(totals):
            for m, v in totals[d].items():
                out.append({"date": d, "metric": m, "value": v})
        return out


class InMemoryMoodLogStore:
    def __init__(self, entries: Iterable[Dict[str, Any]] = ()):
        self.entries = list(entries)

    def get_entries(self, user_id, start, end):
        rows = [dict(e) for e in self.entries if _in_window(e["date"], start, end)]
        rows.sort(key=lambda e: (e["date"], e.get("time_of_day") or ""))
        return rows


class InMemoryMicronutrientStore:
    """{nutrient: [{date, value}, ...]}"""

    def __init__(self, daily: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.daily = daily or {}

    def get_daily(self, user_id, nutrient, start, end):
        rows = [r for r in self.daily.get(nutrient, []) if _in_window(r["date"], start, end)]
        return sorted(rows, key=lambda r: r["date"])


class InMemoryGoalStore:
    def __init__(self, goals: Optional[Dict[Any, List[Goal]]] = None):
        self.goals = goals or {}

    def get_goals(self, user_id):
        return list(self.goals.get(user_id, []))

    def upsert_goal(self, user_id, goal: Goal) -> bool:
        existing = self.goals.setdefault(user_id, [])
        for i, g in enumerate(existing):
            if g.nutrient == goal.nutrient:
                existing[i] = goal
                return False
        existing.append(goal)
        return True

"""
Shared helpers for API routes.
Contains: engine/store factories, DB ping, small coercion helpers.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from correlation_engine import CorrelationEngine
from db_utils import fetch_all, get_conn_str
from stores import (
    PostgresGoalStore,
    PostgresMealLogStore,
    PostgresMicronutrientStore,
    PostgresMoodLogStore,
)

load_dotenv()

log = logging.getLogger("api")


# ─── Factories ──────────────────────────────────────────────

def _conn_str() -> str:
    return get_conn_str()


def _goal_store() -> PostgresGoalStore:
    return PostgresGoalStore(_conn_str())


def _engine() -> CorrelationEngine:
    """Engine wired to the PostgreSQL stores."""
    cs = _conn_str()
    return CorrelationEngine(
        PostgresMealLogStore(cs),
        PostgresMoodLogStore(cs),
        PostgresMicronutrientStore(cs),
        goal_store=PostgresGoalStore(cs),
    )


def _ping() -> bool:
    rows = fetch_all("SELECT 1 AS ok")
    return bool(rows)


# ─── Coercion ───────────────────────────────────────────────

def _parse_ref_date(value: Optional[str]) -> Optional[date]:
    """ISO date string -> date; empty -> None (today). Raises ValueError on junk."""
    if not value:
        return None
    return date.fromisoformat(value[:10])


def _split_csv(value: Optional[str]) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def _trend_payload(trends: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten nutrition_trends() output for JSON."""
    out: Dict[str, Any] = {}
    for nutrient, item in trends.items():
        if item.get("status") != "success":
            out[nutrient] = item
            continue
        t = item["trend"]
        out[nutrient] = {
            "status": "success",
            "direction": t.direction,
            "slope": round(t.slope, 4),
            "volatility": round(t.volatility, 4),
            "average": round(t.average, 3),
            "predicted_next": round(t.predicted_next, 3),
            "sample_size": t.sample_size,
            "values": item["values"],
            "projection": item["projection"],
        }
    return out

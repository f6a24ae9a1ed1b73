"""
FastAPI surface for the nutrition / mood correlation engine.

Route handlers are defined here; shared utilities live in routes/helpers.py.
No authentication: callers pass the user id explicitly.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

import config
from models import AnalysisConfig, Goal
from pipeline.audit_store import persist_analysis
from pipeline.migrations import schema_audit
from pipeline.summary_builder import build_concise_summary
from routes.helpers import (
    _conn_str, _engine, _goal_store, _ping,
    _parse_ref_date, _split_csv, _trend_payload,
)

log = logging.getLogger("api")


# ─── App setup ─────────────────────────────────────────────

app = FastAPI(title="NutriMood Analytics API", version="1.0.0")

_origin_env = os.getenv("FRONTEND_ORIGINS", "")
_origins = [o.strip() for o in _origin_env.split(",") if o.strip()] or [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


class AnalysisRequest(BaseModel):
    user_id: str
    window_days: int = Field(default=config.DEFAULT_WINDOW_DAYS, ge=1, le=config.MAX_WINDOW_DAYS)
    focus_metrics: List[str] = Field(default_factory=lambda: ["mood", "energy", "productivity"])
    include_nutrition: bool = True
    include_exercise: bool = True
    include_sleep: bool = True
    ref_date: Optional[str] = None
    persist: bool = False


class GoalRequest(BaseModel):
    user_id: str
    nutrient: str
    target_value: Optional[float] = Field(default=None, gt=0)
    target_percentage: Optional[float] = Field(default=None, gt=0)
    timeframe: str = "monthly"
    priority: str = "medium"


def _ref_date_or_400(value: Optional[str]):
    try:
        return _parse_ref_date(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"invalid ref_date: {value!r}")


# ─── Routes ────────────────────────────────────────────────

@app.get("/")
def root() -> Dict[str, Any]:
    return {"service": "nutrimood-analytics-api", "status": "ok"}


@app.get("/health-check")
def health_check() -> JSONResponse:
    try:
        _ping()
        return JSONResponse({"status": "Online", "message": "Online"})
    except Exception as e:
        return JSONResponse(
            status_code=200,
            content={
                "status": "Waking up",
                "message": f"Service starting or DB unavailable: {e}",
            },
        )


@app.post("/api/v1/analysis")
def run_analysis(body: AnalysisRequest) -> Dict[str, Any]:
    ref = _ref_date_or_400(body.ref_date)
    cfg = AnalysisConfig(
        window_days=body.window_days,
        focus_metrics=list(body.focus_metrics),
        include_nutrition=body.include_nutrition,
        include_exercise=body.include_exercise,
        include_sleep=body.include_sleep,
    )
    try:
        result = _engine().analyze(body.user_id, cfg, ref_date=ref)
    except Exception as e:
        log.exception("Analysis failed for user %s", body.user_id)
        raise HTTPException(status_code=500, detail=str(e))

    out = result.to_dict()
    out["summary"] = build_concise_summary(out)
    if body.persist:
        try:
            out["audit_id"] = persist_analysis(result, _conn_str())
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"failed to persist analysis: {e}")
    return out


@app.get("/api/v1/warnings/early")
def early_warnings(
    user_id: str = Query(...),
    ref_date: Optional[str] = Query(default=None),
) -> Dict[str, Any]:
    ref = _ref_date_or_400(ref_date)
    try:
        out = _engine().early_warnings(user_id, ref_date=ref)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    return jsonable_encoder(out)


@app.get("/api/v1/trends/nutrition")
def nutrition_trends(
    user_id: str = Query(...),
    days: int = Query(default=config.DEFAULT_WINDOW_DAYS, ge=1, le=config.MAX_WINDOW_DAYS),
    nutrients: Optional[str] = Query(default=None, description="comma-separated"),
    ref_date: Optional[str] = Query(default=None),
) -> Dict[str, Any]:
    ref = _ref_date_or_400(ref_date)
    try:
        trends = _engine().nutrition_trends(user_id, days, _split_csv(nutrients) or None, ref_date=ref)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"user_id": user_id, "window_days": days, "trends": _trend_payload(trends)}


@app.get("/api/v1/goals")
def list_goals(user_id: str = Query(...)) -> Dict[str, Any]:
    try:
        goals = _goal_store().get_goals(user_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"user_id": user_id, "goals": jsonable_encoder(goals)}


@app.post("/api/v1/goals")
def upsert_goal(body: GoalRequest) -> Dict[str, Any]:
    try:
        goal = Goal(
            nutrient=body.nutrient,
            target_value=body.target_value,
            target_percentage=body.target_percentage,
            timeframe=body.timeframe,
            priority=body.priority,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    try:
        created = _goal_store().upsert_goal(body.user_id, goal)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"created": created, "goal": jsonable_encoder(goal)}


@app.get("/api/v1/admin/migration-audit")
def migration_audit() -> Dict[str, Any]:
    try:
        return schema_audit(_conn_str())
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))

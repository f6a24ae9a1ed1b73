"""Idempotent DDL for the analysis audit tables, plus a schema audit."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import psycopg2

from db_utils import get_conn_str

log = logging.getLogger("pipeline.migrations")

DDL = [
    """
    CREATE TABLE IF NOT EXISTS analysis_audit (
        id SERIAL PRIMARY KEY,
        user_id TEXT NOT NULL,
        status TEXT NOT NULL,
        window_days INTEGER NOT NULL,
        confidence DOUBLE PRECISION,
        health_score INTEGER,
        risk_level TEXT,
        current_entries INTEGER,
        degraded_reasons JSONB,
        result_json JSONB,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS analysis_patterns (
        id SERIAL PRIMARY KEY,
        audit_id INTEGER NOT NULL REFERENCES analysis_audit(id) ON DELETE CASCADE,
        pattern_type TEXT NOT NULL,
        significance TEXT NOT NULL,
        description TEXT,
        confidence DOUBLE PRECISION,
        evidence JSONB
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS analysis_warnings (
        id SERIAL PRIMARY KEY,
        audit_id INTEGER NOT NULL REFERENCES analysis_audit(id) ON DELETE CASCADE,
        warning_type TEXT NOT NULL,
        severity TEXT NOT NULL,
        metric TEXT,
        message TEXT,
        recommendation TEXT,
        details JSONB
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS analysis_trends (
        id SERIAL PRIMARY KEY,
        audit_id INTEGER NOT NULL REFERENCES analysis_audit(id) ON DELETE CASCADE,
        metric TEXT NOT NULL,
        direction TEXT NOT NULL,
        slope DOUBLE PRECISION,
        volatility DOUBLE PRECISION,
        average DOUBLE PRECISION,
        predicted_next DOUBLE PRECISION,
        sample_size INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS micronutrient_goals (
        id SERIAL PRIMARY KEY,
        user_id TEXT NOT NULL,
        nutrient TEXT NOT NULL,
        target_value DOUBLE PRECISION,
        target_percentage DOUBLE PRECISION,
        timeframe TEXT DEFAULT 'monthly',
        priority TEXT DEFAULT 'medium',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (user_id, nutrient)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_analysis_audit_user ON analysis_audit(user_id, created_at DESC)",
]

REQUIRED_COLUMNS: Dict[str, List[str]] = {
    "analysis_audit": ["user_id", "status", "window_days", "confidence", "health_score", "result_json"],
    "analysis_patterns": ["audit_id", "pattern_type", "significance"],
    "analysis_warnings": ["audit_id", "warning_type", "severity"],
    "analysis_trends": ["audit_id", "metric", "direction", "slope"],
    "micronutrient_goals": ["user_id", "nutrient", "target_value", "target_percentage"],
}


def ensure_schema(conn_str: str | None = None) -> None:
    """Create the audit and goal tables if they do not exist."""
    cs = get_conn_str(conn_str)
    if not cs:
        raise RuntimeError("POSTGRES_CONNECTION_STRING (or DATABASE_URL) is not configured")

    conn = psycopg2.connect(cs)
    conn.autocommit = True
    try:
        with conn.cursor() as cur:
            for stmt in DDL:
                cur.execute(stmt)
    finally:
        conn.close()

    log.info("Schema migrations completed.")


def schema_audit(conn_str: str | None = None) -> Dict[str, Any]:
    """Return table/column audit data for runtime inspection."""
    cs = get_conn_str(conn_str)
    if not cs:
        return {
            "ok": False,
            "error": "POSTGRES_CONNECTION_STRING (or DATABASE_URL) is not configured",
            "tables": {},
            "missing_tables": [],
        }

    out: Dict[str, Any] = {"ok": True, "tables": {}, "missing_tables": []}
    conn = psycopg2.connect(cs)
    try:
        with conn.cursor() as cur:
            for table, expected in REQUIRED_COLUMNS.items():
                cur.execute(
                    """
                    SELECT column_name
                    FROM information_schema.columns
                    WHERE table_schema = 'public' AND table_name = %s
                    ORDER BY ordinal_position
                    """,
                    (table,),
                )
                cols = [r[0] for r in cur.fetchall()]
                if not cols:
                    out["missing_tables"].append(table)
                out["tables"][table] = {
                    "exists": bool(cols),
                    "columns": cols,
                    "missing_columns": [c for c in expected if c not in cols] if cols else list(expected),
                }

        out["ok"] = not out["missing_tables"] and not any(
            info["missing_columns"] for info in out["tables"].values()
        )
        return out
    finally:
        conn.close()

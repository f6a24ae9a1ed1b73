"""Persist an AnalysisResult as an audit header plus typed child rows.

The engine never writes; callers hand the finished result to
persist_analysis() once analyze() has returned.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import psycopg2
from psycopg2.extras import RealDictCursor

from db_utils import get_conn_str
from models import AnalysisResult

log = logging.getLogger("pipeline.audit_store")


def persist_analysis(result: AnalysisResult, conn_str: str | None = None) -> int:
    """Write header + patterns + warnings + trends in one transaction.

    Returns the new analysis_audit id.
    """
    cs = get_conn_str(conn_str)
    if not cs:
        raise RuntimeError("POSTGRES_CONNECTION_STRING (or DATABASE_URL) is not configured")

    payload = result.to_dict()
    conn = psycopg2.connect(cs)
    try:
        with conn, conn.cursor() as cur:
            cur.execute(
                """INSERT INTO analysis_audit
                   (user_id, status, window_days, confidence, health_score,
                    risk_level, current_entries, degraded_reasons, result_json)
                   VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                   RETURNING id""",
                (
                    str(result.user_id), result.status, result.window_days,
                    result.confidence, result.health_score, result.risk_level,
                    result.current_entries,
                    json.dumps(result.degraded_reasons),
                    json.dumps(payload),
                ),
            )
            audit_id = cur.fetchone()[0]

            for p in result.patterns:
                cur.execute(
                    """INSERT INTO analysis_patterns
                       (audit_id, pattern_type, significance, description, confidence, evidence)
                       VALUES (%s, %s, %s, %s, %s, %s)""",
                    (audit_id, p.type, p.significance, p.description, p.confidence,
                     json.dumps(p.evidence)),
                )
            for w in result.warnings:
                cur.execute(
                    """INSERT INTO analysis_warnings
                       (audit_id, warning_type, severity, metric, message, recommendation, details)
                       VALUES (%s, %s, %s, %s, %s, %s, %s)""",
                    (audit_id, w.type, w.severity, w.metric, w.message, w.recommendation,
                     json.dumps(w.details)),
                )
            for t in result.trends.values():
                cur.execute(
                    """INSERT INTO analysis_trends
                       (audit_id, metric, direction, slope, volatility, average,
                        predicted_next, sample_size)
                       VALUES (%s, %s, %s, %s, %s, %s, %s, %s)""",
                    (audit_id, t.metric, t.direction, t.slope, t.volatility, t.average,
                     t.predicted_next, t.sample_size),
                )
    finally:
        conn.close()

    log.info("   Stored analysis_audit #%s (%d patterns, %d warnings, %d trends)",
             audit_id, len(result.patterns), len(result.warnings), len(result.trends))
    return audit_id


def load_analysis(audit_id: int, conn_str: str | None = None) -> Optional[Dict[str, Any]]:
    """Read one audit header with its child rows, or None if it does not exist."""
    cs = get_conn_str(conn_str)
    if not cs:
        raise RuntimeError("POSTGRES_CONNECTION_STRING (or DATABASE_URL) is not configured")

    conn = psycopg2.connect(cs)
    try:
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute("SELECT * FROM analysis_audit WHERE id = %s", (audit_id,))
            header = cur.fetchone()
            if header is None:
                return None
            out = dict(header)
            for key, table in (("patterns", "analysis_patterns"),
                               ("warnings", "analysis_warnings"),
                               ("trends", "analysis_trends")):
                cur.execute(f"SELECT * FROM {table} WHERE audit_id = %s ORDER BY id", (audit_id,))
                out[key] = [dict(r) for r in cur.fetchall()]
            return out
    finally:
        conn.close()

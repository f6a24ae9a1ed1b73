"""
Shared database utilities.
Single source of truth for PostgreSQL connection-string resolution and
dict-row fetching.
"""

from __future__ import annotations

import os
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import psycopg2
from psycopg2.extras import RealDictCursor


def get_conn_str(conn_str: str | None = None) -> str:
    """Return PostgreSQL connection string.

    An explicit *conn_str* wins.  Otherwise checks POSTGRES_CONNECTION_STRING
    first, falls back to DATABASE_URL (Heroku standard).  Normalises
    postgres:// to postgresql:// for psycopg2.
    """
    url = (
        conn_str
        or os.getenv("POSTGRES_CONNECTION_STRING")
        or os.getenv("DATABASE_URL")
        or ""
    ).strip()
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url


def _coerce(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.date()
    return value


def fetch_all(query: str, params: Optional[tuple] = None,
              conn_str: str | None = None) -> List[Dict[str, Any]]:
    """Run *query* and return rows as plain dicts (Decimal -> float)."""
    cs = get_conn_str(conn_str)
    if not cs:
        raise RuntimeError("POSTGRES_CONNECTION_STRING is not set")
    conn = psycopg2.connect(cs)
    try:
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(query, params or ())
            return [{k: _coerce(v) for k, v in dict(row).items()} for row in cur.fetchall()]
    finally:
        conn.close()

"""
NutriMood Analysis Runner
=========================
Runs one correlation analysis against PostgreSQL and prints the result as JSON.

Usage:
    python run_analysis.py --user 1                 # 30-day analysis
    python run_analysis.py --user 1 --days 60       # wider window
    python run_analysis.py --user 1 --persist       # also write the audit rows
    python run_analysis.py --migrate                # create audit/goal tables only
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger("run_analysis")

import config
from models import AnalysisConfig
from pipeline.audit_store import persist_analysis
from pipeline.migrations import ensure_schema
from pipeline.summary_builder import build_concise_summary
from routes.helpers import _engine, _parse_ref_date


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Nutrition / mood correlation analysis")
    parser.add_argument("--user", help="User id to analyse")
    parser.add_argument("--days", type=int, default=config.DEFAULT_WINDOW_DAYS,
                        help=f"Window in days (default: {config.DEFAULT_WINDOW_DAYS}, max {config.MAX_WINDOW_DAYS})")
    parser.add_argument("--ref-date", default=None,
                        help="Last day of the window, YYYY-MM-DD (default: today)")
    parser.add_argument("--focus", default="mood,energy,productivity",
                        help="Comma-separated wellness metrics")
    parser.add_argument("--no-nutrition", action="store_true", help="Skip nutrition correlations")
    parser.add_argument("--no-exercise", action="store_true", help="Skip exercise comparison")
    parser.add_argument("--no-sleep", action="store_true", help="Skip sleep correlations")
    parser.add_argument("--persist", action="store_true", help="Write the result to analysis_audit")
    parser.add_argument("--migrate", action="store_true", help="Create audit/goal tables and exit")
    parser.add_argument("--summary", action="store_true", help="Print the 3-bullet summary instead of JSON")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.migrate:
        ensure_schema()
        if not args.user:
            return 0
    if not args.user:
        log.error("--user is required")
        return 2

    cfg = AnalysisConfig(
        window_days=args.days,
        focus_metrics=[m.strip() for m in args.focus.split(",") if m.strip()],
        include_nutrition=not args.no_nutrition,
        include_exercise=not args.no_exercise,
        include_sleep=not args.no_sleep,
    )
    result = _engine().analyze(args.user, cfg, ref_date=_parse_ref_date(args.ref_date))
    out = result.to_dict()

    if args.persist:
        out["audit_id"] = persist_analysis(result)
        log.info("Persisted analysis as audit #%s", out["audit_id"])

    if args.summary:
        print(build_concise_summary(out))
    else:
        print(json.dumps(out, indent=2, ensure_ascii=False))
    return 0 if result.status != "insufficient_data" else 1


if __name__ == "__main__":
    sys.exit(main())

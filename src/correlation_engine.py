"""
Correlation & Predictive-Trend Engine
=====================================
Relates per-day nutrition, wellness, micronutrient and exercise signals and
returns one structured AnalysisResult per request.

Architecture (layers, each a pure function of the previous outputs):
  Layer 0 - Aggregate:  mood log gate (minimum entries), per-metric daily
            series with the zero-fill / no-fill policy.
  Layer 1 - Trends:     direction, OLS slope, volatility, next-day prediction.
  Layer 2 - Correlate:  date-aligned Pearson for nutrition × wellness and
            sleep × wellness pairs, bucketed sugar × mood.
  Layer 3 - Patterns:   grouped comparisons (exercise vs rest, weekday,
            time of day) + thresholds + rule-table confidence.
  Layer 4 - Risk:       slope early warnings, chronic deficiency, mood
            alerts, average-intake factors, health score, risk level.
  Layer 5 - Goals:      micronutrient goal progress.
  Layer 6 - Guidance:   recommendations, insights, next steps.

The engine never writes.  Persisting an audit of the result is the caller's
job (pipeline/audit_store.py), done after analyze() returns.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

import config
from analytics import correlation_layer, trend_layer
from constants import (
    DEFICIENCY_NUTRIENTS,
    EXERCISE_METRIC,
    MICRONUTRIENT_METRICS,
    NUTRITION_METRICS,
    RDA_TABLE,
    SLOPE_RULES,
    SUGAR_BUCKETS,
)
from data_aggregator import DataAggregator, align_series, values_of
from models import (
    AnalysisConfig,
    AnalysisResult,
    CorrelationResult,
    InsufficientData,
    Series,
    TrendResult,
)
from pattern_detector import (
    PatternDetector,
    exercise_comparison,
    score_confidence,
    sleep_correlations,
    time_of_day_means,
    weekday_means,
)
from pipeline.summary_builder import build_insights, build_next_steps
from recommendations import synthesize
from risk_engine import RiskEngine, average_risk_factors, mood_alerts, preventive_actions, risk_predictions

log = logging.getLogger("correlation_engine")


# ═══════════════════════════════════════════════════════════════
#  CONSTANTS
# ═══════════════════════════════════════════════════════════════

# (x, y) pairs correlated when nutrition is included
NUTRITION_PAIRS = [
    ("protein", "energy"),
    ("carbs", "mood"),
    ("sugar", "mood"),
    ("calories", "energy"),
]

# Micronutrient links worth checking against wellness scores
MICRONUTRIENT_PAIRS = [
    ("vitamin_d", "mood"),
    ("iron", "energy"),
    ("magnesium", "stress"),
]

SLEEP_PAIRS = [
    ("sleep_quality", "mood"),
    ("sleep_quality", "energy"),
    ("sleep_quality", "productivity"),
]


# ═══════════════════════════════════════════════════════════════
#  ENGINE
# ═══════════════════════════════════════════════════════════════

class CorrelationEngine:
    """
    Orchestrates all layers of the analysis.
    Reads only through the injected stores; no I/O of its own.
    """

    def __init__(self, meal_store, mood_store, micro_store=None, goal_store=None,
                 rda: Optional[Dict[str, float]] = None,
                 min_samples: int = config.MIN_SAMPLES,
                 deficiency_min_days: int = config.DEFICIENCY_MIN_DAYS,
                 early_warning_min_days: int = config.EARLY_WARNING_MIN_DAYS,
                 lookback_days: int = config.EARLY_WARNING_LOOKBACK_DAYS):
        self.aggregator = DataAggregator(meal_store, mood_store, micro_store, min_samples=min_samples)
        self.goal_store = goal_store
        self.min_samples = min_samples
        self.lookback_days = lookback_days
        self.detector = PatternDetector()
        self.risk = RiskEngine(rda or RDA_TABLE, deficiency_min_days, early_warning_min_days)

    # ─── MAIN ENTRY ─────────────────────────────────────────────

    def analyze(self, user_id, analysis_config: Optional[AnalysisConfig] = None,
                ref_date: Optional[date] = None) -> AnalysisResult:
        """Run layers 0-6 and return the structured result."""
        cfg = analysis_config or AnalysisConfig()
        ref = ref_date or date.today()
        window = max(1, min(int(cfg.window_days), config.MAX_WINDOW_DAYS))
        log.info("Correlation engine - user %s, %d-day window ending %s", user_id, window, ref)

        # Layer 0
        entries = self.aggregator.mood_entries(user_id, window, ref)
        if len(entries) < self.min_samples:
            log.info("   Not enough mood entries for analysis (%d < %d).", len(entries), self.min_samples)
            return AnalysisResult(
                status="insufficient_data",
                user_id=user_id,
                window_days=window,
                current_entries=len(entries),
                required_entries=self.min_samples,
                degraded_reasons=["insufficient_mood_entries"],
            )

        metrics = self._requested_metrics(cfg)
        raw = self.aggregator.aggregate(user_id, metrics, window, ref, mood_entries=entries)
        series: Dict[str, Series] = {}
        insufficient: List[InsufficientData] = []
        for m, s in raw.items():
            if isinstance(s, InsufficientData):
                insufficient.append(s)
            else:
                series[m] = s

        result = AnalysisResult(
            status="success",
            user_id=user_id,
            window_days=window,
            insufficient_metrics=insufficient,
            current_entries=len(entries),
            required_entries=self.min_samples,
        )

        # Layer 1
        result.trends = self._layer1_trends(series)

        # Layer 2
        result.correlations = self._layer2_correlations(series, cfg)

        # Layer 3
        exercise = exercise_comparison(entries, self.min_samples) if cfg.include_exercise else {}
        weekly = weekday_means(entries)
        by_time = time_of_day_means(entries)
        sleep = sleep_correlations(entries, self.min_samples) if cfg.include_sleep else {}
        result.time_patterns = {
            "weekly": weekly,
            "time_of_day": by_time,
            "exercise": exercise,
            "sleep": sleep,
            "mood_trend": trend_layer.mood_trend(values_of(series.get("mood", []))),
        }
        result.patterns = self.detector.detect(result.trends, result.correlations, exercise, weekly)

        has_nutrition = any(
            c.metric_a in NUTRITION_METRICS or c.metric_a in MICRONUTRIENT_METRICS
            for c in result.correlations
        )
        has_exercise = bool(exercise) and not exercise.get("insufficient_data")
        has_sleep = bool(sleep) and not sleep.get("insufficient_data")
        result.confidence = score_confidence({
            "samples": len(entries),
            "patterns": len(result.patterns),
            "nutrition_source": int(has_nutrition),
            "exercise_source": int(has_exercise),
            "sleep_source": int(has_sleep),
        })

        if cfg.include_nutrition and not has_nutrition:
            result.degraded_reasons.append("no_nutrition_data")
        if cfg.include_exercise and not has_exercise:
            result.degraded_reasons.append("no_exercise_data")
        if cfg.include_sleep and not has_sleep:
            result.degraded_reasons.append("no_sleep_data")

        # Layer 4
        self._layer4_risk(result, user_id, entries, cfg, ref)

        # Layer 5
        if self.goal_store is not None:
            result.goal_progress = self._layer5_goals(user_id, window, ref)

        # Layer 6
        result.recommendations = synthesize(result.patterns, result.warnings, weekly)
        result.insights = build_insights(result.patterns, exercise, by_time)
        result.next_steps = build_next_steps(result.confidence, has_nutrition, result.patterns)

        if result.degraded_reasons:
            result.status = "degraded"
            log.warning("Analysis degraded (%s)", ", ".join(result.degraded_reasons))

        log.info(
            "\n   COMPUTATION DIGEST (user %s, %d entries)\n"
            "   Layer 0 Aggregate   : %d series, %d insufficient\n"
            "   Layer 1 Trends      : %d\n"
            "   Layer 2 Correlations: %d\n"
            "   Layer 3 Patterns    : %d (confidence %.2f)\n"
            "   Layer 4 Warnings    : %d (score %d, risk %s)\n"
            "   Layer 5 Goals       : %d\n"
            "   Layer 6 Guidance    : %d recommendations",
            user_id, len(entries),
            len(series), len(insufficient),
            len(result.trends),
            len(result.correlations),
            len(result.patterns), result.confidence,
            len(result.warnings), result.health_score, result.risk_level,
            len(result.goal_progress),
            len(result.recommendations),
        )
        return result

    # ─── Side entry points ──────────────────────────────────────

    def nutrition_trends(self, user_id, window_days: int = config.DEFAULT_WINDOW_DAYS,
                         nutrients: Optional[Sequence[str]] = None,
                         ref_date: Optional[date] = None) -> Dict[str, Any]:
        """Per-nutrient trend plus 30/90-day projection."""
        wanted = [n for n in (nutrients or NUTRITION_METRICS) if n in NUTRITION_METRICS]
        raw = self.aggregator.aggregate(user_id, wanted, window_days, ref_date)
        out: Dict[str, Any] = {}
        for n in wanted:
            s = raw.get(n)
            if s is None or isinstance(s, InsufficientData):
                out[n] = {"status": "insufficient_data",
                          "current_entries": getattr(s, "current_entries", 0),
                          "required_entries": self.min_samples}
                continue
            values = values_of(s)
            trend = trend_layer.analyze_trend(n, values)
            out[n] = {
                "status": "success",
                "trend": trend,
                "values": values,
                "projection": trend_layer.project(trend),
            }
        return out

    def early_warnings(self, user_id, ref_date: Optional[date] = None) -> Dict[str, Any]:
        """Warnings, risk assessment and preventive actions over the lookback window."""
        ref = ref_date or date.today()
        span = self.aggregator.logged_span(user_id, list(NUTRITION_METRICS), self.lookback_days, ref)
        warnings = self._nutrition_warnings(user_id, ref, span)
        recent = self.aggregator.mood_entries(user_id, config.ALERT_LOOKBACK_DAYS, ref)
        warnings.extend(mood_alerts(recent))

        averages = {
            m: float(np.mean(values_of(s))) for m, (s, logged) in span.items()
            if logged >= self.min_samples
        }
        factors = average_risk_factors(averages)
        assessment = self.risk.assess(warnings, factors)
        return {
            "warnings": warnings,
            "risk_factors": factors,
            "risk_assessment": assessment,
            "preventive_actions": preventive_actions(warnings),
        }

    # ─── Layers ─────────────────────────────────────────────────

    def _requested_metrics(self, cfg: AnalysisConfig) -> List[str]:
        metrics: List[str] = []

        def add(m: str) -> None:
            if m not in metrics:
                metrics.append(m)

        add("mood")
        for m in cfg.focus_metrics:
            add(m)
        if cfg.include_nutrition:
            for x, y in NUTRITION_PAIRS + MICRONUTRIENT_PAIRS:
                add(x)
                add(y)
        if cfg.include_sleep:
            for x, y in SLEEP_PAIRS:
                add(x)
                add(y)
        if cfg.include_exercise:
            add(EXERCISE_METRIC)
        return metrics

    def _layer1_trends(self, series: Dict[str, Series]) -> Dict[str, TrendResult]:
        log.info("   Layer 1: trends...")
        trends: Dict[str, TrendResult] = {}
        for m, s in series.items():
            if m == EXERCISE_METRIC:
                continue
            trends[m] = trend_layer.analyze_trend(m, values_of(s))
        return trends

    def _layer2_correlations(self, series: Dict[str, Series],
                             cfg: AnalysisConfig) -> List[CorrelationResult]:
        log.info("   Layer 2: correlations...")
        pairs: List[Tuple[str, str]] = []
        if cfg.include_nutrition:
            pairs += NUTRITION_PAIRS + MICRONUTRIENT_PAIRS
        if cfg.include_sleep:
            pairs += SLEEP_PAIRS

        results: List[CorrelationResult] = []
        for x, y in pairs:
            if x not in series or y not in series:
                continue
            xs, _, _ = align_series(series[x], series[y])
            if len(xs) < self.min_samples:
                continue
            results.append(correlation_layer.correlate(x, series[x], y, series[y]))

        if cfg.include_nutrition and "sugar" in series and "mood" in series:
            xs, _, _ = align_series(series["sugar"], series["mood"])
            if len(xs) >= self.min_samples:
                results.append(correlation_layer.correlate_bucketed(
                    "sugar", series["sugar"], "mood", series["mood"], SUGAR_BUCKETS))

        log.info("   %d correlations", len(results))
        return results

    def _nutrition_warnings(self, user_id, ref: date,
                            span: Optional[Dict[str, Tuple[Series, int]]] = None) -> List:
        nutrients = list(SLOPE_RULES)
        micro = list(DEFICIENCY_NUTRIENTS)
        # leading unlogged days would read as a rise from zero
        if span is None:
            span = self.aggregator.logged_span(user_id, nutrients, self.lookback_days, ref)
        nutrition = {m: values_of(span[m][0]) for m in nutrients if m in span}
        logged = {m: span[m][1] for m in nutrients if m in span}
        raw = self.aggregator.aggregate(user_id, micro, self.lookback_days, ref)
        micros = {
            m: values_of(raw[m]) for m in micro
            if m in raw and not isinstance(raw[m], InsufficientData)
        }
        return self.risk.early_warnings(nutrition, logged) + self.risk.deficiencies(micros)

    def _layer4_risk(self, result: AnalysisResult, user_id, entries: List[Dict[str, Any]],
                     cfg: AnalysisConfig, ref: date) -> None:
        log.info("   Layer 4: risk...")
        warnings = self._nutrition_warnings(user_id, ref) if cfg.include_nutrition else []
        alert_start = ref - timedelta(days=config.ALERT_LOOKBACK_DAYS - 1)
        warnings.extend(mood_alerts(e for e in entries if e["date"] >= alert_start))

        averages = {m: t.average for m, t in result.trends.items() if m in NUTRITION_METRICS}
        factors = average_risk_factors(averages) + risk_predictions(result.trends)
        assessment = self.risk.assess(warnings, factors)

        result.warnings = warnings
        result.risk_factors = factors
        result.health_score = assessment["health_score"]
        result.risk_level = assessment["risk_level"]

    def _layer5_goals(self, user_id, window: int, ref: date) -> List:
        goals = self.goal_store.get_goals(user_id)
        if not goals:
            return []
        wanted = sorted({g.nutrient for g in goals})
        raw = self.aggregator.aggregate(user_id, wanted, window, ref)
        intake = {
            n: values_of(s) for n, s in raw.items()
            if not isinstance(s, InsufficientData)
        }
        return self.risk.goal_progress(goals, intake)

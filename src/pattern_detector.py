"""
Pattern Detector
================
Turns trend / correlation results and grouped wellness comparisons into a
short list of significant, confidence-tagged findings.

Rules (magnitudes are heuristic, not hypothesis tests):
  • |pearson r| > 0.5                     -> medium, > 0.7 -> high
                                           (sugar x mood is an impact only when r < 0)
  • bucketed sugar x mood negative         -> sugar_mood_impact, high
                                           (lowest and highest buckets non-empty)
  • exercise-day mood boost > 1.0 point    -> exercise_mood_boost, high
  • weekday mood range > 2.0 points        -> weekly_mood_variation, medium
  • mood trend decreasing (> 5% drop)      -> mood_decline, low

Exercise uses three-state logic: an entry whose exercise flag was never
logged (None) is excluded from both groups, not counted as a rest day.

Analysis confidence comes from a declarative rule table consumed by
score_confidence(), so the policy is data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np

from analytics.correlation_layer import pearson
from constants import (
    GROUP_DIFF_THRESHOLD,
    STRONG_CORRELATION,
    VERY_STRONG_CORRELATION,
    WEEKDAY_NAMES,
    WEEKLY_RANGE_THRESHOLD,
)
from models import CorrelationResult, Pattern, TrendResult

log = logging.getLogger("pattern_detector")

MAX_CONFIDENCE = 0.95

# (metric_a, metric_b) -> pattern type; lookup is order-insensitive
PAIR_PATTERN_TYPES = {
    ("sugar", "mood"): "sugar_mood_impact",
    ("sleep_quality", "mood"): "sleep_mood_correlation",
    ("sleep_quality", "energy"): "sleep_energy_correlation",
    ("sleep_quality", "productivity"): "sleep_productivity_correlation",
    ("protein", "energy"): "protein_energy_link",
    ("carbs", "mood"): "carb_mood_link",
    ("calories", "energy"): "calorie_energy_link",
    ("vitamin_d", "mood"): "vitamin_d_mood_link",
    ("iron", "energy"): "iron_energy_link",
    ("magnesium", "stress"): "magnesium_stress_link",
}

# Types that claim harm; a positive r falls back to the generic name
NEGATIVE_ONLY_TYPES = {"sugar_mood_impact"}

# Per-pattern base confidence, scaled down for small samples
PATTERN_BASE_CONFIDENCE = {
    "weekly_mood_variation": 0.8,
    "exercise_mood_boost": 0.85,
    "sleep_mood_correlation": 0.7,
    "sugar_mood_impact": 0.75,
    "mood_decline": 0.6,
}
DEFAULT_BASE_CONFIDENCE = 0.7
FULL_CONFIDENCE_SAMPLES = 10


def pattern_type_for(metric_a: str, metric_b: str) -> str:
    return (
        PAIR_PATTERN_TYPES.get((metric_a, metric_b))
        or PAIR_PATTERN_TYPES.get((metric_b, metric_a))
        or f"{metric_a}_{metric_b}_correlation"
    )


def _end_buckets_filled(counts: Dict[str, int]) -> bool:
    """Lowest and highest buckets both hold days; an empty one would compare against 0."""
    if len(counts) < 2:
        return False
    labels = list(counts)
    return counts[labels[0]] > 0 and counts[labels[-1]] > 0


def _pattern_confidence(pattern_type: str, sample_size: int) -> float:
    base = PATTERN_BASE_CONFIDENCE.get(pattern_type, DEFAULT_BASE_CONFIDENCE)
    scale = min(1.0, max(0, sample_size) / FULL_CONFIDENCE_SAMPLES)
    return round(max(0.0, min(MAX_CONFIDENCE, base * scale)), 3)


# ─── Grouped comparisons ───────────────────────────────────

def _mean(entries: Sequence[Dict[str, Any]], field: str, skip_zero: bool = False) -> Optional[float]:
    vals = [e.get(field) for e in entries]
    vals = [float(v) for v in vals if v is not None and not (skip_zero and v <= 0)]
    if not vals:
        return None
    return float(np.mean(vals))


def exercise_comparison(entries: Iterable[Dict[str, Any]], min_entries: int = 5) -> Dict[str, Any]:
    """Exercise-day vs non-exercise-day mean differences (treatment vs control).

    Only entries with an explicit True/False flag take part.
    """
    logged = [e for e in entries if e.get("exercise_completed") is not None]
    if len(logged) < min_entries:
        return {
            "insufficient_data": True,
            "current_entries": len(logged),
            "required_entries": min_entries,
        }
    done = [e for e in logged if bool(e["exercise_completed"])]
    rest = [e for e in logged if not bool(e["exercise_completed"])]
    out: Dict[str, Any] = {
        "exercise_entries": len(done),
        "rest_entries": len(rest),
        "mood_improvement": 0.0,
        "energy_improvement": 0.0,
        "stress_reduction": 0.0,
        "sleep_improvement": 0.0,
    }
    if not done or not rest:
        return out

    def diff(field: str, skip_zero: bool = False) -> float:
        a = _mean(done, field, skip_zero)
        b = _mean(rest, field, skip_zero)
        if a is None or b is None:
            return 0.0
        return a - b

    out["mood_improvement"] = diff("mood_score")
    out["energy_improvement"] = diff("energy_level")
    # lower stress is better
    out["stress_reduction"] = -diff("stress_level")
    out["sleep_improvement"] = diff("sleep_quality", skip_zero=True)
    return out


def _as_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def weekday_means(entries: Iterable[Dict[str, Any]]) -> Dict[str, Dict[str, float]]:
    """Average mood / energy / stress per weekday (Monday first)."""
    groups: Dict[int, List[Dict[str, Any]]] = {}
    for e in entries:
        groups.setdefault(_as_date(e["date"]).weekday(), []).append(e)
    out: Dict[str, Dict[str, float]] = {}
    for wd in sorted(groups):
        rows = groups[wd]
        out[WEEKDAY_NAMES[wd]] = {
            "avg_mood": _mean(rows, "mood_score") or 0.0,
            "avg_energy": _mean(rows, "energy_level") or 0.0,
            "avg_stress": _mean(rows, "stress_level") or 0.0,
            "count": len(rows),
        }
    return out


def weekly_mood_range(weekly: Dict[str, Dict[str, float]]) -> float:
    if not weekly:
        return 0.0
    moods = [w["avg_mood"] for w in weekly.values()]
    return max(moods) - min(moods)


def _bucket_for_time(value: Any) -> Optional[str]:
    if not value:
        return None
    try:
        hour = int(str(value).split(":")[0])
    except ValueError:
        return None
    if hour < 12:
        return "morning"
    if hour < 18:
        return "afternoon"
    return "evening"


def time_of_day_means(entries: Iterable[Dict[str, Any]]) -> Dict[str, Dict[str, float]]:
    """Morning (<12h) / afternoon (<18h) / evening averages."""
    groups: Dict[str, List[Dict[str, Any]]] = {"morning": [], "afternoon": [], "evening": []}
    for e in entries:
        bucket = _bucket_for_time(e.get("time_of_day"))
        if bucket:
            groups[bucket].append(e)
    return {
        name: {
            "avg_mood": _mean(rows, "mood_score") or 0.0,
            "avg_energy": _mean(rows, "energy_level") or 0.0,
            "avg_productivity": _mean(rows, "productivity_score") or 0.0,
            "count": len(rows),
        }
        for name, rows in groups.items() if rows
    }


def sleep_correlations(entries: Iterable[Dict[str, Any]], min_entries: int = 5) -> Dict[str, Any]:
    """Per-entry sleep quality vs mood / energy / productivity (sleep 0 = unrecorded)."""
    rows = [e for e in entries if (e.get("sleep_quality") or 0) > 0]
    if len(rows) < min_entries:
        return {"insufficient_data": True, "current_entries": len(rows),
                "required_entries": min_entries}
    sleep = [float(e["sleep_quality"]) for e in rows]

    def corr(field: str) -> float:
        pairs = [(s, float(e[field])) for s, e in zip(sleep, rows) if e.get(field) is not None]
        return pearson([p[0] for p in pairs], [p[1] for p in pairs])

    return {
        "sleep_mood": corr("mood_score"),
        "sleep_energy": corr("energy_level"),
        "sleep_productivity": corr("productivity_score"),
        "average_sleep_quality": float(np.mean(sleep)),
        "sample_size": len(rows),
    }


# ─── Detector ──────────────────────────────────────────────

class PatternDetector:
    """Stateless rule evaluator; identical inputs give an identical ordered list."""

    def __init__(self, strong: float = STRONG_CORRELATION,
                 very_strong: float = VERY_STRONG_CORRELATION,
                 group_diff: float = GROUP_DIFF_THRESHOLD,
                 weekly_range: float = WEEKLY_RANGE_THRESHOLD):
        self.strong = strong
        self.very_strong = very_strong
        self.group_diff = group_diff
        self.weekly_range = weekly_range

    def detect(self, trends: Dict[str, TrendResult],
               correlations: Sequence[CorrelationResult],
               exercise: Optional[Dict[str, Any]] = None,
               weekly: Optional[Dict[str, Dict[str, float]]] = None) -> List[Pattern]:
        patterns: List[Pattern] = []
        seen: set = set()

        def emit(p: Pattern) -> None:
            if p.type in seen:
                return
            seen.add(p.type)
            patterns.append(p)

        for c in correlations:
            p = self._from_correlation(c)
            if p:
                emit(p)

        if exercise and not exercise.get("insufficient_data"):
            boost = float(exercise.get("mood_improvement", 0.0))
            if boost > self.group_diff:
                n = int(exercise.get("exercise_entries", 0)) + int(exercise.get("rest_entries", 0))
                emit(Pattern(
                    type="exercise_mood_boost",
                    significance="high",
                    description=f"Mood is {boost:.1f} points higher on exercise days",
                    confidence=_pattern_confidence("exercise_mood_boost", n),
                    evidence={"mood_improvement": round(boost, 3), "sample_size": n},
                ))

        if weekly:
            spread = weekly_mood_range(weekly)
            if spread > self.weekly_range:
                n = sum(int(w.get("count", 0)) for w in weekly.values())
                emit(Pattern(
                    type="weekly_mood_variation",
                    significance="medium",
                    description="Mood varies noticeably across days of the week",
                    confidence=_pattern_confidence("weekly_mood_variation", n),
                    evidence={"mood_range": round(spread, 3), "sample_size": n},
                ))

        mood = trends.get("mood")
        if mood is not None and mood.direction == "decreasing":
            emit(Pattern(
                type="mood_decline",
                significance="low",
                description="Mood scores in the second half of the window are lower than in the first",
                confidence=_pattern_confidence("mood_decline", mood.sample_size),
                evidence={"slope": round(mood.slope, 4), "sample_size": mood.sample_size},
            ))

        log.info("   Pattern detector: %d patterns", len(patterns))
        return patterns

    def _from_correlation(self, c: CorrelationResult) -> Optional[Pattern]:
        ptype = pattern_type_for(c.metric_a, c.metric_b)
        if c.mode == "bucketed_mean":
            negative = c.pattern == "negative_correlation"
            if ptype == "sugar_mood_impact" and negative and _end_buckets_filled(c.bucket_counts):
                return Pattern(
                    type=ptype,
                    significance="high",
                    description="Days with more sugar tend to have lower mood",
                    confidence=_pattern_confidence(ptype, c.sample_size),
                    evidence={"bucket_means": dict(c.bucket_means),
                              "bucket_counts": dict(c.bucket_counts),
                              "sample_size": c.sample_size},
                )
            return None

        r = c.coefficient
        if abs(r) <= self.strong:
            return None
        if ptype in NEGATIVE_ONLY_TYPES and r > 0:
            ptype = f"{c.metric_a}_{c.metric_b}_correlation"
        significance = "high" if abs(r) > self.very_strong else "medium"
        verb = "rises with" if r > 0 else "falls as"
        return Pattern(
            type=ptype,
            significance=significance,
            description=f"{c.metric_b.replace('_', ' ')} {verb} {c.metric_a.replace('_', ' ')} (r={r:.2f})",
            confidence=_pattern_confidence(ptype, c.sample_size),
            evidence={"coefficient": round(r, 4), "sample_size": c.sample_size,
                      "metric_a": c.metric_a, "metric_b": c.metric_b},
        )


# ─── Confidence scoring ────────────────────────────────────

@dataclass(frozen=True)
class ConfidenceRule:
    """Adds *weight* when signals[signal] >= threshold."""
    signal: str
    threshold: float
    weight: float


CONFIDENCE_BASE = 0.3
CONFIDENCE_RULES = (
    ConfidenceRule("samples", 10, 0.2),
    ConfidenceRule("samples", 20, 0.2),
    ConfidenceRule("patterns", 1, 0.2),
    ConfidenceRule("patterns", 3, 0.1),
    ConfidenceRule("nutrition_source", 1, 0.1),
    ConfidenceRule("exercise_source", 1, 0.1),
    ConfidenceRule("sleep_source", 1, 0.1),
)


def score_confidence(signals: Dict[str, float],
                     rules: Sequence[ConfidenceRule] = CONFIDENCE_RULES,
                     base: float = CONFIDENCE_BASE,
                     cap: float = MAX_CONFIDENCE) -> float:
    """Whole-analysis confidence in [0, cap]."""
    score = base
    for rule in rules:
        if float(signals.get(rule.signal, 0)) >= rule.threshold:
            score += rule.weight
    return round(max(0.0, min(cap, score)), 3)

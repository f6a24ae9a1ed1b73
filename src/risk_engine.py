"""
Risk / Early-Warning Engine
===========================
Stateless rule evaluator over trend results and raw daily series.

  • Slope rules        sodium > 50 mg/day, sugar > 5 g/day, fat > 3 g/day
  • Chronic deficiency value < 0.7 × RDA on > 60% of days (needs ≥ 20 days)
  • Mood alerts        ≥ 2 low-mood (≤ 4) or high-stress (≥ 8) entries lately
  • Average intake     sodium / sugar / fiber risk factors
  • Health score       100 − 30·high − 15·medium − 5·low, clamped to [0, 100]
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np

import config
from analytics import trend_layer
from constants import (
    DEFAULT_RDA,
    DEFICIENCY_DAY_SHARE,
    DEFICIENCY_RATIO,
    FOOD_SOURCES,
    RDA_TABLE,
    SEVERITY_PENALTY,
    SLOPE_RULES,
)
from models import GoalProgress, Goal, HealthWarning, RiskFactor, TrendResult

log = logging.getLogger("risk_engine")

SLOPE_MESSAGES = {
    "sodium": ("Gradual increase in sodium intake detected",
               "Consider reducing processed foods and adding more fresh ingredients"),
    "sugar": ("Sugar intake has been gradually increasing",
              "Monitor sugar sources and consider natural alternatives"),
    "fat": ("Fat intake showing upward trend",
            "Focus on healthy fats like avocados, nuts, and olive oil"),
}

# Average-intake risk thresholds: (medium above, high above) or, for floors, (medium below, high below)
AVERAGE_CEILINGS = {
    "sodium": (2000.0, 2500.0, "Elevated sodium intake may increase hypertension risk"),
    "sugar": (50.0, 75.0, "High sugar intake associated with diabetes and obesity risk"),
}
AVERAGE_FLOORS = {
    "fiber": (20.0, 15.0, "Low fiber intake may affect digestive and cardiovascular health"),
}

LOW_MOOD_SCORE = 4
HIGH_STRESS_SCORE = 8
ALERT_MIN_DAYS = 2


def rda_for(nutrient: str, rda: Optional[Mapping[str, float]] = None) -> float:
    return float((rda or RDA_TABLE).get(nutrient, DEFAULT_RDA))


# ─── Warnings ──────────────────────────────────────────────

def slope_warnings(trends: Mapping[str, TrendResult],
                   rules: Mapping[str, tuple] = SLOPE_RULES) -> List[HealthWarning]:
    """Early warnings for nutrients whose daily intake is climbing."""
    warnings: List[HealthWarning] = []
    for nutrient, (threshold, severity, reduction) in rules.items():
        trend = trends.get(nutrient)
        if trend is None or trend.slope <= threshold:
            continue
        message, advice = SLOPE_MESSAGES.get(
            nutrient, (f"{nutrient} intake is trending upward", f"Reduce {nutrient} intake"))
        warnings.append(HealthWarning(
            type="early_warning",
            severity=severity,
            metric=nutrient,
            message=message,
            recommendation=advice,
            details={"slope": round(trend.slope, 3), "trend": "increasing",
                     "target_reduction": reduction},
        ))
    return warnings


def chronic_deficiency(nutrient: str, values: Sequence[float], rda: float,
                       min_days: int = config.DEFICIENCY_MIN_DAYS) -> Optional[HealthWarning]:
    """Deficient on more than 60% of days.  Too few days -> skipped, not warned."""
    total = len(values)
    if total < min_days:
        return None
    cutoff = rda * DEFICIENCY_RATIO
    deficient = sum(1 for v in values if v < cutoff)
    if deficient / total <= DEFICIENCY_DAY_SHARE:
        return None
    label = nutrient.replace("_", " ")
    return HealthWarning(
        type="chronic_deficiency",
        severity="medium",
        metric=nutrient,
        message=f"Consistent {label} deficiency detected over the lookback window",
        recommendation=f"Focus on {label}-rich foods and consider supplementation",
        details={"deficientDays": deficient, "totalDays": total, "rda": rda},
    )


def mood_alerts(entries: Iterable[Dict[str, Any]]) -> List[HealthWarning]:
    """Low-mood and high-stress alerts from the most recent entries."""
    rows = list(entries)
    if len(rows) < 3:
        return []
    warnings: List[HealthWarning] = []
    low = sum(1 for e in rows if e.get("mood_score") is not None and e["mood_score"] <= LOW_MOOD_SCORE)
    if low >= ALERT_MIN_DAYS:
        warnings.append(HealthWarning(
            type="low_mood",
            severity="high",
            metric="mood",
            message="Consistently low mood detected over multiple days",
            recommendation="Consider reaching out to a healthcare provider",
            details={"low_mood_entries": low, "entries": len(rows)},
        ))
    high = sum(1 for e in rows if e.get("stress_level") is not None and e["stress_level"] >= HIGH_STRESS_SCORE)
    if high >= ALERT_MIN_DAYS:
        warnings.append(HealthWarning(
            type="high_stress",
            severity="medium",
            metric="stress",
            message="Elevated stress levels detected",
            recommendation="Implement stress-reduction techniques",
            details={"high_stress_entries": high, "entries": len(rows)},
        ))
    return warnings


# ─── Risk factors & score ──────────────────────────────────

def average_risk_factors(averages: Mapping[str, float]) -> List[RiskFactor]:
    factors: List[RiskFactor] = []
    for nutrient, (medium, high, desc) in AVERAGE_CEILINGS.items():
        avg = averages.get(nutrient)
        if avg is not None and avg > medium:
            factors.append(RiskFactor(f"high_{nutrient}", "high" if avg > high else "medium", desc))
    for nutrient, (medium, high, desc) in AVERAGE_FLOORS.items():
        avg = averages.get(nutrient)
        if avg is not None and avg < medium:
            factors.append(RiskFactor(f"low_{nutrient}", "high" if avg < high else "medium", desc))
    return factors


def risk_predictions(trends: Mapping[str, TrendResult]) -> List[RiskFactor]:
    """Forward-looking factors from rising, already-high trends."""
    out: List[RiskFactor] = []
    sodium = trends.get("sodium")
    if sodium and sodium.direction == "increasing" and sodium.predicted_next > 2500:
        out.append(RiskFactor("cardiovascular_risk", "high",
                              "High sodium intake trend may lead to hypertension"))
    sugar = trends.get("sugar")
    if sugar and sugar.direction == "increasing" and sugar.predicted_next > 75:
        out.append(RiskFactor("metabolic_risk", "medium",
                              "Rising sugar intake may increase diabetes risk"))
    return out


def health_score(severities: Iterable[str]) -> int:
    score = 100
    for s in severities:
        score -= SEVERITY_PENALTY.get(s, SEVERITY_PENALTY["low"])
    return int(max(0, min(100, score)))


def risk_level(severities: Iterable[str]) -> str:
    sev = list(severities)
    n_high = sev.count("high")
    n_medium = sev.count("medium")
    if n_high >= 2:
        return "high"
    if n_high >= 1 or n_medium >= 3:
        return "medium"
    return "low"


# ─── Goals ─────────────────────────────────────────────────

def goal_status(progress_percent: float) -> str:
    if progress_percent >= 90:
        return "on_track"
    if progress_percent >= 70:
        return "needs_attention"
    return "behind"


def nutrient_hints(nutrient: str, progress_percent: float) -> List[str]:
    if progress_percent >= 70:
        return []
    sources = FOOD_SOURCES.get(nutrient, ["nutrient-rich foods"])
    return [f"Increase intake of {' and '.join(sources[:2])} to boost {nutrient.replace('_', ' ')} levels"]


def goal_progress(goals: Iterable[Goal], intake: Mapping[str, float],
                  rda: Optional[Mapping[str, float]] = None) -> List[GoalProgress]:
    """Progress per goal from the average daily intake over the window.

    Value goals compare intake with target_value.  Percentage goals express
    intake as a percentage of RDA and compare that with target_percentage.
    """
    out: List[GoalProgress] = []
    for g in goals:
        current = float(intake.get(g.nutrient, 0.0))
        if g.target_value:
            pct = current / g.target_value * 100
        else:
            of_rda = current / rda_for(g.nutrient, rda) * 100
            pct = of_rda / g.target_percentage * 100 if g.target_percentage else 0.0
        pct = round(pct, 1)
        out.append(GoalProgress(
            nutrient=g.nutrient,
            current_intake=round(current, 3),
            target_value=g.target_value,
            target_percentage=g.target_percentage,
            progress_percent=pct,
            status=goal_status(pct),
            timeframe=g.timeframe,
            priority=g.priority,
            recommendations=nutrient_hints(g.nutrient, pct),
        ))
    return out


def preventive_actions(warnings: Iterable[HealthWarning]) -> List[Dict[str, str]]:
    actions: List[Dict[str, str]] = []
    for w in warnings:
        label = w.metric.replace("_", " ")
        if w.type == "early_warning":
            actions.append({
                "metric": w.metric,
                "immediate": f"Monitor {label} intake daily",
                "short_term": w.recommendation,
                "long_term": f"Establish sustainable eating patterns to maintain healthy {label} levels",
            })
        elif w.type == "chronic_deficiency":
            actions.append({
                "metric": w.metric,
                "immediate": w.recommendation,
                "short_term": f"Track {label} intake for 2 weeks",
                "long_term": "Consider nutritional counseling for persistent deficiencies",
            })
    return actions


# ─── Engine ────────────────────────────────────────────────

class RiskEngine:
    """Bundles the rules with their configuration."""

    def __init__(self, rda: Optional[Mapping[str, float]] = None,
                 deficiency_min_days: int = config.DEFICIENCY_MIN_DAYS,
                 early_warning_min_days: int = config.EARLY_WARNING_MIN_DAYS):
        self.rda = dict(rda or RDA_TABLE)
        self.deficiency_min_days = deficiency_min_days
        self.early_warning_min_days = early_warning_min_days

    def early_warnings(self, nutrition: Mapping[str, Sequence[float]],
                       logged_days: Optional[Mapping[str, int]] = None) -> List[HealthWarning]:
        """Slope rules over daily nutrition values from the first logged day on.

        *logged_days* counts days with a logged meal; zero-filled gaps do not
        count towards the minimum history.  Without it every value counts.
        """
        trends = {}
        for nutrient in SLOPE_RULES:
            values = nutrition.get(nutrient)
            if values is None:
                continue
            history = len(values) if logged_days is None else logged_days.get(nutrient, 0)
            if history < self.early_warning_min_days:
                continue
            trends[nutrient] = trend_layer.analyze_trend(nutrient, values)
        return slope_warnings(trends)

    def deficiencies(self, micronutrients: Mapping[str, Sequence[float]]) -> List[HealthWarning]:
        out: List[HealthWarning] = []
        for nutrient in sorted(micronutrients):
            w = chronic_deficiency(nutrient, micronutrients[nutrient],
                                   rda_for(nutrient, self.rda), self.deficiency_min_days)
            if w:
                out.append(w)
        return out

    def assess(self, warnings: Sequence[HealthWarning],
               factors: Sequence[RiskFactor]) -> Dict[str, Any]:
        severities = [w.severity for w in warnings] + [f.level for f in factors]
        return {
            "health_score": health_score(severities),
            "risk_level": risk_level(severities),
            "n_high": severities.count("high"),
            "n_medium": severities.count("medium"),
            "n_low": severities.count("low"),
        }

    def goal_progress(self, goals: Iterable[Goal],
                      micronutrients: Mapping[str, Sequence[float]]) -> List[GoalProgress]:
        intake = {
            n: float(np.mean(v)) for n, v in micronutrients.items() if len(v)
        }
        return goal_progress(goals, intake, self.rda)

"""Deterministic recommendation lookup for patterns and warnings.

One recommendation per recognised Pattern / HealthWarning type; anything
not in the table is skipped silently.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from models import HealthWarning, Pattern

PATTERN_TABLE: Dict[str, Dict[str, Any]] = {
    "exercise_mood_boost": {
        "category": "exercise",
        "priority": "high",
        "title": "Maintain Regular Exercise",
        "description": "Your mood is {mood_improvement:.1f} points higher on days you exercise",
        "actions": [
            "Continue exercising regularly, especially on days when you feel low",
            "Schedule short walks on rest days",
        ],
    },
    "sleep_mood_correlation": {
        "category": "sleep",
        "priority": "high",
        "title": "Prioritize Sleep Quality",
        "description": "Sleep quality tracks closely with your mood (r={coefficient:.2f})",
        "actions": [
            "Aim for 7-9 hours of quality sleep",
            "Keep a consistent sleep schedule",
        ],
    },
    "sleep_energy_correlation": {
        "category": "sleep",
        "priority": "medium",
        "title": "Protect Sleep for Energy",
        "description": "Better nights are followed by more energetic days (r={coefficient:.2f})",
        "actions": ["Limit screens and caffeine in the evening"],
    },
    "sugar_mood_impact": {
        "category": "nutrition",
        "priority": "medium",
        "title": "Reduce Sugar Intake",
        "description": "High sugar intake appears to negatively affect your mood",
        "actions": [
            "Keep daily sugar intake below 25g",
            "Choose complex carbohydrates over sweets",
        ],
    },
    "protein_energy_link": {
        "category": "nutrition",
        "priority": "medium",
        "title": "Keep Protein Steady",
        "description": "Your energy moves with protein intake (r={coefficient:.2f})",
        "actions": ["Include a protein source with every meal"],
    },
    "weekly_mood_variation": {
        "category": "timing",
        "priority": "medium",
        "title": "Smooth Out Your Week",
        "description": "Your mood swings by {mood_range:.1f} points across the week",
        "actions": [
            "Plan mood-boosting activities for your lowest days",
            "Pay attention to routines that differ between days",
        ],
    },
    "mood_decline": {
        "category": "intervention",
        "priority": "high",
        "title": "Address the Downward Mood Trend",
        "description": "Your mood trend is declining over this window",
        "actions": ["Consider implementing mood-boosting activities"],
    },
}

WARNING_TABLE: Dict[str, Dict[str, Any]] = {
    "early_warning": {
        "category": "prevention",
        "title": "Watch Your {metric_label} Intake",
        "description": "{message}; aim for a {target_reduction} reduction",
        "actions": [
            "Monitor {metric_label} intake daily",
            "{recommendation}",
        ],
    },
    "chronic_deficiency": {
        "category": "nutrition",
        "title": "Correct {metric_label} Deficiency",
        "description": "{metric_label} was below 70% of the daily target on {deficientDays} of {totalDays} days",
        "actions": [
            "{recommendation}",
            "Track {metric_label} intake for 2 weeks",
        ],
    },
    "low_mood": {
        "category": "mental_health",
        "title": "Mood Support",
        "description": "{message}",
        "actions": [
            "Practice deep breathing or meditation",
            "Go for a walk outside",
            "Connect with a friend or family member",
            "Consider professional support if feelings persist",
        ],
    },
    "high_stress": {
        "category": "stress_management",
        "title": "Stress Reduction",
        "description": "{message}",
        "actions": [
            "Try progressive muscle relaxation",
            "Limit caffeine intake",
            "Ensure adequate sleep",
        ],
    },
}


class _Defaults(dict):
    def __missing__(self, key):
        return 0


def _render(template: str, params: Dict[str, Any]) -> str:
    return template.format_map(_Defaults(params))


def for_pattern(pattern: Pattern) -> Optional[Dict[str, Any]]:
    entry = PATTERN_TABLE.get(pattern.type)
    if entry is None:
        return None
    params = dict(pattern.evidence)
    return {
        "source": "pattern",
        "type": pattern.type,
        "category": entry["category"],
        "priority": entry["priority"],
        "title": entry["title"],
        "description": _render(entry["description"], params),
        "actions": [_render(a, params) for a in entry["actions"]],
    }


def for_warning(warning: HealthWarning) -> Optional[Dict[str, Any]]:
    entry = WARNING_TABLE.get(warning.type)
    if entry is None:
        return None
    params: Dict[str, Any] = {"target_reduction": "meaningful"}
    params.update(warning.details)
    params.update({
        "metric": warning.metric,
        "metric_label": warning.metric.replace("_", " ").title(),
        "message": warning.message,
        "recommendation": warning.recommendation,
    })
    return {
        "source": "warning",
        "type": warning.type,
        "category": entry["category"],
        "priority": warning.severity,
        "title": _render(entry["title"], params),
        "description": _render(entry["description"], params),
        "actions": [_render(a, params) for a in entry["actions"]],
    }


def lowest_mood_day(weekly: Dict[str, Dict[str, float]],
                    threshold: float = 6.0) -> Optional[Dict[str, Any]]:
    """Weekday recommendation when the worst day averages below *threshold*."""
    if not weekly:
        return None
    day = min(weekly, key=lambda d: (weekly[d]["avg_mood"], d))
    if weekly[day]["avg_mood"] >= threshold:
        return None
    return {
        "source": "pattern",
        "type": "lowest_mood_day",
        "category": "timing",
        "priority": "medium",
        "title": f"Focus on {day}s",
        "description": f"Your mood tends to be lowest on {day}s",
        "actions": [f"Plan mood-boosting activities for {day}s: exercise, social time, or favorite meals"],
    }


def synthesize(patterns: Iterable[Pattern], warnings: Iterable[HealthWarning],
               weekly: Optional[Dict[str, Dict[str, float]]] = None) -> List[Dict[str, Any]]:
    """Patterns first, then warnings, then the weekday hint; input order kept."""
    out: List[Dict[str, Any]] = []
    for p in patterns:
        rec = for_pattern(p)
        if rec:
            out.append(rec)
    for w in warnings:
        rec = for_warning(w)
        if rec:
            out.append(rec)
    if weekly:
        rec = lowest_mood_day(weekly)
        if rec:
            out.append(rec)
    return out

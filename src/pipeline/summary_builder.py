"""Helpers for building insight text and next steps for UI consumption."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from models import Pattern


def build_insights(patterns: Sequence[Pattern], exercise: Dict[str, Any],
                   time_of_day: Dict[str, Dict[str, float]]) -> List[str]:
    insights: List[str] = []
    if patterns:
        insights.append(f"Found {len(patterns)} significant patterns in your mood data")
    if exercise and not exercise.get("insufficient_data"):
        boost = float(exercise.get("mood_improvement", 0.0))
        if boost > 1:
            insights.append(f"Exercise improves your mood by an average of {boost:.1f} points")
    if time_of_day:
        best = max(sorted(time_of_day), key=lambda t: time_of_day[t]["avg_mood"])
        insights.append(f"Your mood is typically best in the {best}")
    return insights


def build_next_steps(confidence: float, has_nutrition: bool,
                     patterns: Sequence[Pattern]) -> List[str]:
    steps: List[str] = []
    if confidence < 0.7:
        steps.append("Continue logging mood data daily to improve analysis accuracy")
    if not has_nutrition:
        steps.append("Track your meals alongside mood for nutrition-mood correlations")
    if any(p.type == "weekly_mood_variation" for p in patterns):
        steps.append("Pay attention to mood patterns on specific days of the week")
    steps.append("Review and act on personalized recommendations")
    steps.append("Continue monitoring for 2-4 weeks to validate patterns")
    return steps


def build_concise_summary(result: Dict[str, Any]) -> str:
    """Create a strict 3-bullet, human-friendly summary from an analysis dict."""
    result = result or {}

    def clip(s: str, limit: int = 260) -> str:
        s = s.replace("\n", " ").strip()
        if len(s) <= limit:
            return s
        return s[: limit - 3].rstrip() + "..."

    def bullet(label: str, value: str) -> str:
        prefix = f"- {label}: "
        allowed = max(48, 280 - len(prefix))
        return prefix + clip(value, allowed)

    if result.get("status") == "insufficient_data":
        have = result.get("current_entries", 0)
        need = result.get("required_entries", 0)
        return (
            f"{bullet('What changed', f'Not enough data yet ({have} of {need} mood entries).')}\n"
            f"{bullet('Why it matters', 'Patterns need a few more days of logs before they mean anything.')}\n"
            f"{bullet('Next steps', 'Keep logging mood and meals daily.')}"
        )

    patterns = result.get("patterns") or []
    warnings = result.get("warnings") or []
    recs = result.get("recommendations") or []

    if patterns:
        top = sorted(patterns, key=lambda p: {"high": 0, "medium": 1, "low": 2}.get(p.get("significance"), 3))[0]
        what_changed = top.get("description") or top.get("type", "")
    else:
        what_changed = "No strong patterns yet; your signals are stable."

    if warnings:
        worst = sorted(warnings, key=lambda w: {"high": 0, "medium": 1, "low": 2}.get(w.get("severity"), 3))[0]
        why_it_matters = worst.get("message", "")
    else:
        why_it_matters = f"Health score {result.get('health_score', 100)}/100, risk level {result.get('risk_level', 'low')}."

    if recs and recs[0].get("actions"):
        next_steps = recs[0]["actions"][0]
    else:
        next_steps = "Keep logging consistently and review again next week."

    return (
        f"{bullet('What changed', what_changed)}\n"
        f"{bullet('Why it matters', why_it_matters)}\n"
        f"{bullet('Next steps', next_steps)}"
    )

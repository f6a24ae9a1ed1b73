"""Single-series trend statistics: direction, OLS slope, volatility, prediction."""

from __future__ import annotations

from typing import Dict, Sequence

import numpy as np

from constants import TREND_CHANGE_PCT
from models import TrendResult

MAX_PROJECTION_CONFIDENCE = 0.95
MIN_PROJECTION_CONFIDENCE = 0.3


def _arr(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def direction(values: Sequence[float]) -> str:
    """Compare first-half and second-half means.

    change = (second - first) / first;  > +5% increasing, < -5% decreasing.
    A zero first-half mean cannot express a relative change -> stable.
    """
    v = _arr(values)
    if len(v) < 2:
        return "stable"
    mid = len(v) // 2
    first = float(v[:mid].mean())
    second = float(v[mid:].mean())
    if first == 0:
        return "stable"
    change = (second - first) / first * 100
    if change > TREND_CHANGE_PCT:
        return "increasing"
    if change < -TREND_CHANGE_PCT:
        return "decreasing"
    return "stable"


def slope(values: Sequence[float]) -> float:
    """Least-squares slope of v against index 0..n-1.

        slope = (nΣxy − ΣxΣy) / (nΣx² − (Σx)²)
    """
    y = _arr(values)
    n = len(y)
    if n < 2:
        return 0.0
    x = np.arange(n, dtype=np.float64)
    denom = n * float((x * x).sum()) - float(x.sum()) ** 2
    if denom == 0:
        return 0.0
    return (n * float((x * y).sum()) - float(x.sum()) * float(y.sum())) / denom


def volatility(values: Sequence[float]) -> float:
    """Population standard deviation."""
    v = _arr(values)
    if len(v) < 2:
        return 0.0
    return float(v.std(ddof=0))


def predict_next(values: Sequence[float]) -> float:
    """One-step linear extrapolation; fewer than 3 points -> last value."""
    v = _arr(values)
    if len(v) == 0:
        return 0.0
    if len(v) < 3:
        return float(v[-1])
    return float(v[-1]) + slope(v)


def analyze_trend(metric: str, values: Sequence[float]) -> TrendResult:
    v = _arr(values)
    return TrendResult(
        metric=metric,
        direction=direction(v),
        slope=slope(v),
        volatility=volatility(v),
        average=float(v.mean()) if len(v) else 0.0,
        predicted_next=predict_next(v),
        sample_size=int(len(v)),
    )


def project(trend: TrendResult) -> Dict[str, float]:
    """30/90-day linear projections from the window average.

    Confidence shrinks with the coefficient of variation, floored at 0.3.
    """
    if trend.average == 0:
        conf = MIN_PROJECTION_CONFIDENCE
    else:
        conf = 1 - trend.volatility / abs(trend.average)
    conf = max(MIN_PROJECTION_CONFIDENCE, min(MAX_PROJECTION_CONFIDENCE, conf))
    return {
        "in_30_days": trend.average + trend.slope * 30,
        "in_90_days": trend.average + trend.slope * 90,
        "confidence": round(conf, 3),
    }


def mood_trend(values: Sequence[float], min_values: int = 7) -> Dict[str, object]:
    """Half-vs-half trend for 1-10 wellness scores, in absolute points.

    > +0.5 improving, < -0.5 declining.
    """
    v = _arr([x for x in values if x is not None])
    if len(v) < min_values:
        return {"insufficient_data": True, "current_entries": int(len(v)),
                "required_entries": min_values}
    mid = len(v) // 2
    first = float(v[:mid].mean())
    second = float(v[mid:].mean())
    diff = second - first
    if diff > 0.5:
        label = "improving"
    elif diff < -0.5:
        label = "declining"
    else:
        label = "stable"
    return {
        "trend": label,
        "trend_value": round(diff, 2),
        "trend_percentage": round(diff / first * 100, 2) if first else 0.0,
        "first_period_avg": round(first, 2),
        "second_period_avg": round(second, 2),
    }

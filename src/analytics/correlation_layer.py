"""Pairwise statistics: Pearson correlation and bucketed-mean comparison."""

from __future__ import annotations

import math
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
from scipy import stats as sp_stats

from data_aggregator import align_series
from models import CorrelationResult, Series

Bucket = Tuple[str, Optional[float], Optional[float]]


def pearson_test(x: Sequence[float], y: Sequence[float]) -> Tuple[float, Optional[float]]:
    """(r, p) for two equal-length arrays.

    n < 3 or a constant series is a defined degenerate result: r = 0, with
    the p-value of r = 0 (None below 3 points).  Unequal lengths are a caller
    bug and raise ValueError.
    """
    if len(x) != len(y):
        raise ValueError(f"pearson() needs equal-length arrays, got {len(x)} and {len(y)}")
    n = len(x)
    if n < 3:
        return 0.0, None
    xa = np.asarray(x, dtype=np.float64)
    ya = np.asarray(y, dtype=np.float64)
    if np.ptp(xa) == 0 or np.ptp(ya) == 0:
        return 0.0, pearson_p_value(0.0, n)
    r, p = sp_stats.pearsonr(xa, ya)
    return max(-1.0, min(1.0, float(r))), float(p)


def pearson(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson r of two equal-length arrays; see pearson_test()."""
    return pearson_test(x, y)[0]


def pearson_p_value(r: float, n: int) -> Optional[float]:
    """Two-sided t-test p-value for r; descriptive only."""
    if n < 3:
        return None
    if abs(r) >= 1.0:
        return 0.0
    t_stat = r * math.sqrt(n - 2) / math.sqrt(1 - r * r)
    return float(2 * sp_stats.t.sf(abs(t_stat), n - 2))


def _in_bucket(v: float, low: Optional[float], high: Optional[float]) -> bool:
    if low is not None and v < low:
        return False
    if high is not None and v >= high:
        return False
    return True


def bucketed_mean_impact(x: Sequence[float], y: Sequence[float],
                         buckets: Sequence[Bucket]) -> Dict[str, object]:
    """Mean of paired y within each x-range bucket.

    Buckets are ``(label, low, high)`` half-open ranges, ordered from lowest
    to highest x; ``None`` leaves a side unbounded.  An empty bucket reports
    mean 0.  The relationship is ``negative_correlation`` when the lowest
    bucket's mean exceeds the highest bucket's, else ``positive_correlation``.
    """
    if len(x) != len(y):
        raise ValueError(f"bucketed_mean_impact() needs equal-length arrays, got {len(x)} and {len(y)}")
    if len(buckets) < 2:
        raise ValueError("bucketed_mean_impact() needs at least two buckets")

    means: Dict[str, float] = {}
    counts: Dict[str, int] = {}
    for label, low, high in buckets:
        members = [yv for xv, yv in zip(x, y) if _in_bucket(xv, low, high)]
        counts[label] = len(members)
        means[label] = float(np.mean(members)) if members else 0.0

    lowest = buckets[0][0]
    highest = buckets[-1][0]
    if means[lowest] > means[highest]:
        pattern = "negative_correlation"
    else:
        pattern = "positive_correlation"
    return {"means": means, "counts": counts, "pattern": pattern,
            "gap": means[highest] - means[lowest]}


def correlate(metric_a: str, series_a: Series,
              metric_b: str, series_b: Series) -> CorrelationResult:
    """Date-aligned Pearson correlation of two daily series."""
    xs, ys, _ = align_series(series_a, series_b)
    r, p = pearson_test(xs, ys)
    return CorrelationResult(
        metric_a=metric_a,
        metric_b=metric_b,
        coefficient=r,
        sample_size=len(xs),
        mode="pearson",
        p_value=p,
    )


def correlate_bucketed(metric_x: str, series_x: Series,
                       metric_y: str, series_y: Series,
                       buckets: Sequence[Bucket],
                       y_scale: float = 10.0) -> CorrelationResult:
    """Date-aligned bucketed-mean analysis.

    The coefficient is the lowest-to-highest bucket gap divided by the y scale
    (10 for 1-10 wellness scores), clipped into [-1, 1], so its sign agrees
    with the classification.
    """
    xs, ys, _ = align_series(series_x, series_y)
    impact = bucketed_mean_impact(xs, ys, buckets)
    coef = float(impact["gap"]) / y_scale if y_scale else 0.0
    if impact["pattern"] == "negative_correlation":
        coef = -abs(coef)
    else:
        coef = abs(coef)
    return CorrelationResult(
        metric_a=metric_x,
        metric_b=metric_y,
        coefficient=max(-1.0, min(1.0, coef)),
        sample_size=len(xs),
        mode="bucketed_mean",
        bucket_means=dict(impact["means"]),
        bucket_counts=dict(impact["counts"]),
        pattern=str(impact["pattern"]),
    )

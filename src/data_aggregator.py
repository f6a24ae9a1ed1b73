"""
Data Aggregator: builds aligned per-day series from the collaborator stores.

Fill policy (the only place it is decided):
  * nutrition totals   summed per day; every window day without a logged
                       meal is zero ("ate nothing logged").
  * wellness scores    averaged per day; missing days stay missing.
                       sleep_quality 0 means "not recorded" and is dropped.
  * micronutrients     one value per day; missing days stay missing.
  * exercise           three-state per day: 1.0 logged done, 0.0 logged not
                       done, absent when never logged.

Downstream stages must align series by date (align_series), never by index.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

import config
from constants import (
    EXERCISE_METRIC,
    MICRONUTRIENT_METRICS,
    NUTRITION_METRICS,
    WELLNESS_FIELDS,
)
from models import InsufficientData, Series

log = logging.getLogger("data_aggregator")

SeriesOrMarker = Union[Series, InsufficientData]


def resolve_window(window_days: int, ref_date: Optional[date] = None) -> Tuple[date, date]:
    """Inclusive (start, end) for a window of *window_days* ending at *ref_date*."""
    days = max(1, min(int(window_days), config.MAX_WINDOW_DAYS))
    end = ref_date or date.today()
    return end - timedelta(days=days - 1), end


def _to_series(s: pd.Series) -> Series:
    s = s.dropna().sort_index()
    return [(pd.Timestamp(d).date(), float(v)) for d, v in s.items()]


def zero_filled_daily(rows: Iterable[Dict[str, Any]], metric: str,
                      start: Optional[date] = None,
                      end: Optional[date] = None) -> Tuple[Series, int]:
    """Sum *metric* per day and zero-fill every day from *start* to *end*.

    Without bounds only the gaps inside the logged span are filled.
    Nothing logged at all gives an empty series.  Returns (series, logged_days).
    """
    df = pd.DataFrame([r for r in rows if r.get("metric") == metric])
    if df.empty:
        return [], 0
    df["date"] = pd.to_datetime(df["date"])
    daily = df.groupby("date")["value"].sum()
    logged = len(daily)
    if start is not None and end is not None:
        days = pd.date_range(pd.Timestamp(start), pd.Timestamp(end), freq="D")
        daily = daily.reindex(days, fill_value=0.0)
    else:
        daily = daily.asfreq("D").fillna(0.0)
    return _to_series(daily), logged


def daily_wellness(entries: Iterable[Dict[str, Any]], metric: str) -> Series:
    """Average a wellness score per day; no zero-fill."""
    field = WELLNESS_FIELDS[metric]
    vals = []
    for e in entries:
        v = e.get(field)
        if v is None:
            continue
        if metric == "sleep_quality" and v <= 0:
            continue
        vals.append({"date": e["date"], "value": float(v)})
    if not vals:
        return []
    df = pd.DataFrame(vals)
    df["date"] = pd.to_datetime(df["date"])
    return _to_series(df.groupby("date")["value"].mean())


def daily_exercise(entries: Iterable[Dict[str, Any]]) -> Series:
    """1.0 if any entry that day logged exercise, 0.0 if only "not done" was logged."""
    by_day: Dict[date, float] = {}
    for e in entries:
        flag = e.get("exercise_completed")
        if flag is None:
            continue
        done = 1.0 if bool(flag) else 0.0
        by_day[e["date"]] = max(by_day.get(e["date"], 0.0), done)
    return sorted(by_day.items())


def daily_values(rows: Iterable[Dict[str, Any]]) -> Series:
    """One value per day from {date, value} rows; the last row for a day wins."""
    by_day: Dict[date, float] = {}
    for r in rows:
        if r.get("value") is None:
            continue
        by_day[r["date"]] = float(r["value"])
    return sorted(by_day.items())


def align_series(a: Series, b: Series) -> Tuple[List[float], List[float], List[date]]:
    """Pair two series on their date intersection (ascending)."""
    bmap = dict(b)
    xs, ys, dates = [], [], []
    for d, v in sorted(a):
        if d in bmap:
            xs.append(v)
            ys.append(bmap[d])
            dates.append(d)
    return xs, ys, dates


def values_of(series: Series) -> List[float]:
    return [v for _, v in series]


class DataAggregator:
    """Reads the stores and applies the per-metric fill policy."""

    def __init__(self, meal_store, mood_store, micro_store=None,
                 min_samples: int = config.MIN_SAMPLES):
        self.meal_store = meal_store
        self.mood_store = mood_store
        self.micro_store = micro_store
        self.min_samples = min_samples

    def mood_entries(self, user_id, window_days: int,
                     ref_date: Optional[date] = None) -> List[Dict[str, Any]]:
        start, end = resolve_window(window_days, ref_date)
        return list(self.mood_store.get_entries(user_id, start, end))

    def aggregate(self, user_id, metric_names: Sequence[str], window_days: int,
                  ref_date: Optional[date] = None,
                  mood_entries: Optional[List[Dict[str, Any]]] = None) -> Dict[str, SeriesOrMarker]:
        """Build ``metric -> [(date, value), ...]`` or an InsufficientData marker.

        *mood_entries* may be passed when the caller already fetched them for
        the same window.
        """
        start, end = resolve_window(window_days, ref_date)
        out: Dict[str, SeriesOrMarker] = {}

        nutrition = [m for m in metric_names if m in NUTRITION_METRICS]
        wellness = [m for m in metric_names if m in WELLNESS_FIELDS]
        micros = [m for m in metric_names if m in MICRONUTRIENT_METRICS]
        unknown = [
            m for m in metric_names
            if m not in NUTRITION_METRICS and m not in WELLNESS_FIELDS
            and m not in MICRONUTRIENT_METRICS and m != EXERCISE_METRIC
        ]
        if unknown:
            log.warning("   Unknown metrics ignored: %s", ", ".join(unknown))

        if nutrition:
            rows = list(self.meal_store.get_daily_totals(user_id, nutrition, start, end))
            for m in nutrition:
                series, logged = zero_filled_daily(rows, m, start, end)
                out[m] = self._check(m, series, logged)

        if wellness or EXERCISE_METRIC in metric_names:
            if mood_entries is None:
                mood_entries = list(self.mood_store.get_entries(user_id, start, end))
            for m in wellness:
                series = daily_wellness(mood_entries, m)
                out[m] = self._check(m, series, len(series))
            if EXERCISE_METRIC in metric_names:
                series = daily_exercise(mood_entries)
                out[EXERCISE_METRIC] = self._check(EXERCISE_METRIC, series, len(series))

        for m in micros:
            rows = self.micro_store.get_daily(user_id, m, start, end) if self.micro_store else []
            series = daily_values(rows)
            out[m] = self._check(m, series, len(series))

        n_ok = sum(1 for v in out.values() if not isinstance(v, InsufficientData))
        log.info("   Aggregated %d/%d metrics (%s -> %s)", n_ok, len(out), start, end)
        return out

    def logged_span(self, user_id, metrics: Sequence[str], window_days: int,
                    ref_date: Optional[date] = None) -> Dict[str, Tuple[Series, int]]:
        """Nutrition totals from the first to the last logged day of the window.

        Gaps inside that span are zero; unlogged days before the first meal are
        not.  Returns ``metric -> (series, logged_days)`` for the slope rules.
        """
        wanted = [m for m in metrics if m in NUTRITION_METRICS]
        if not wanted:
            return {}
        start, end = resolve_window(window_days, ref_date)
        rows = list(self.meal_store.get_daily_totals(user_id, wanted, start, end))
        return {m: zero_filled_daily(rows, m) for m in wanted}

    def _check(self, metric: str, series: Series, observed: int) -> SeriesOrMarker:
        if observed < self.min_samples:
            return InsufficientData(metric, observed, self.min_samples)
        return series

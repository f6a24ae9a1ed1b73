"""
Tests for the pattern detector and confidence scoring.

Covers: correlation thresholds, bucketed sugar rule, exercise / weekday
group comparisons, de-duplication, and the confidence rule table.
"""
from datetime import date, timedelta

import pytest

from models import CorrelationResult, TrendResult
from pattern_detector import (
    CONFIDENCE_RULES,
    ConfidenceRule,
    PatternDetector,
    exercise_comparison,
    pattern_type_for,
    score_confidence,
    sleep_correlations,
    time_of_day_means,
    weekday_means,
    weekly_mood_range,
)
from recommendations import synthesize

MONDAY = date(2026, 3, 2)


def _corr(a, b, r, n=10, **kw):
    return CorrelationResult(metric_a=a, metric_b=b, coefficient=r, sample_size=n, **kw)


def _trend(metric, direction="stable", n=10):
    return TrendResult(metric, direction, 0.0, 0.0, 5.0, 5.0, n)


class TestPatternTypes:

    def test_order_insensitive(self):
        assert pattern_type_for("mood", "sugar") == "sugar_mood_impact"
        assert pattern_type_for("sugar", "mood") == "sugar_mood_impact"

    def test_default_name(self):
        assert pattern_type_for("fat", "stress") == "fat_stress_correlation"


class TestCorrelationPatterns:

    def test_strong_negative_sugar_is_high(self):
        patterns = PatternDetector().detect({}, [_corr("sugar", "mood", -0.97, n=5)])
        assert len(patterns) == 1
        assert patterns[0].type == "sugar_mood_impact"
        assert patterns[0].significance == "high"

    def test_medium_band(self):
        patterns = PatternDetector().detect({}, [_corr("sleep_quality", "mood", 0.6)])
        assert patterns[0].type == "sleep_mood_correlation"
        assert patterns[0].significance == "medium"

    def test_threshold_is_strict(self):
        assert PatternDetector().detect({}, [_corr("protein", "energy", 0.5)]) == []

    def test_bucketed_negative_sugar(self):
        c = _corr("sugar", "mood", -0.3, mode="bucketed_mean",
                  bucket_means={"low": 8.0, "high": 5.0}, bucket_counts={"low": 4, "high": 3},
                  pattern="negative_correlation")
        patterns = PatternDetector().detect({}, [c])
        assert patterns[0].type == "sugar_mood_impact"
        assert patterns[0].significance == "high"

    def test_bucketed_with_empty_high_bucket_ignored(self):
        # never above 50 g: the high bucket mean of 0 says nothing about sugar
        c = _corr("sugar", "mood", -0.7, mode="bucketed_mean",
                  bucket_means={"low": 7.0, "medium": 6.5, "high": 0.0},
                  bucket_counts={"low": 6, "medium": 4, "high": 0},
                  pattern="negative_correlation")
        assert PatternDetector().detect({}, [c]) == []

    def test_positive_sugar_mood_is_not_an_impact(self):
        patterns = PatternDetector().detect({}, [_corr("sugar", "mood", 0.95)])
        assert [p.type for p in patterns] == ["sugar_mood_correlation"]
        assert patterns[0].significance == "high"
        assert synthesize(patterns, []) == []

    def test_positive_pearson_leaves_room_for_bucketed_impact(self):
        positive = _corr("sugar", "mood", 0.8)
        bucketed = _corr("sugar", "mood", -0.2, mode="bucketed_mean",
                         bucket_means={"low": 7.0, "high": 5.0},
                         bucket_counts={"low": 3, "high": 2},
                         pattern="negative_correlation")
        patterns = PatternDetector().detect({}, [positive, bucketed])
        assert [p.type for p in patterns] == ["sugar_mood_correlation", "sugar_mood_impact"]

    def test_bucketed_positive_ignored(self):
        c = _corr("sugar", "mood", 0.2, mode="bucketed_mean", pattern="positive_correlation")
        assert PatternDetector().detect({}, [c]) == []

    def test_duplicates_keep_first(self):
        first = _corr("sugar", "mood", -0.8)
        second = _corr("sugar", "mood", -0.3, mode="bucketed_mean", pattern="negative_correlation")
        patterns = PatternDetector().detect({}, [first, second])
        assert len(patterns) == 1
        assert patterns[0].evidence["coefficient"] == pytest.approx(-0.8)

    def test_confidence_scales_with_samples(self):
        small = PatternDetector().detect({}, [_corr("iron", "energy", 0.9, n=5)])[0]
        large = PatternDetector().detect({}, [_corr("iron", "energy", 0.9, n=30)])[0]
        assert small.confidence < large.confidence <= 0.95


class TestGroupPatterns:

    def test_exercise_boost(self):
        exercise = {"mood_improvement": 1.5, "exercise_entries": 4, "rest_entries": 4}
        patterns = PatternDetector().detect({}, [], exercise=exercise)
        assert patterns[0].type == "exercise_mood_boost"
        assert patterns[0].significance == "high"

    def test_exercise_insufficient_ignored(self):
        patterns = PatternDetector().detect({}, [], exercise={"insufficient_data": True})
        assert patterns == []

    def test_weekly_variation(self):
        weekly = {"Monday": {"avg_mood": 4.0, "count": 3}, "Saturday": {"avg_mood": 8.5, "count": 3}}
        patterns = PatternDetector().detect({}, [], weekly=weekly)
        assert patterns[0].type == "weekly_mood_variation"
        assert patterns[0].evidence["mood_range"] == pytest.approx(4.5)

    def test_mood_decline(self):
        patterns = PatternDetector().detect({"mood": _trend("mood", "decreasing")}, [])
        assert [p.type for p in patterns] == ["mood_decline"]
        assert patterns[0].significance == "low"

    def test_order_is_deterministic(self):
        trends = {"mood": _trend("mood", "decreasing")}
        corrs = [_corr("sleep_quality", "mood", 0.8)]
        exercise = {"mood_improvement": 2.0, "exercise_entries": 5, "rest_entries": 5}
        weekly = {"Monday": {"avg_mood": 3.0, "count": 2}, "Friday": {"avg_mood": 7.0, "count": 2}}
        a = PatternDetector().detect(trends, corrs, exercise, weekly)
        b = PatternDetector().detect(trends, corrs, exercise, weekly)
        assert [p.type for p in a] == [
            "sleep_mood_correlation", "exercise_mood_boost", "weekly_mood_variation", "mood_decline",
        ]
        assert a == b


class TestGroupedComparisons:

    def test_exercise_comparison_excludes_unlogged(self):
        entries = (
            [{"exercise_completed": True, "mood_score": 8, "energy_level": 7, "stress_level": 3,
              "sleep_quality": 8}] * 3
            + [{"exercise_completed": False, "mood_score": 6, "energy_level": 5, "stress_level": 5,
                "sleep_quality": 0}] * 2
            + [{"exercise_completed": None, "mood_score": 1, "energy_level": 1, "stress_level": 10}] * 4
        )
        out = exercise_comparison(entries)
        assert out["exercise_entries"] == 3
        assert out["rest_entries"] == 2
        assert out["mood_improvement"] == pytest.approx(2.0)
        assert out["energy_improvement"] == pytest.approx(2.0)
        assert out["stress_reduction"] == pytest.approx(2.0)
        # rest-day sleep was never recorded
        assert out["sleep_improvement"] == 0.0

    def test_exercise_comparison_insufficient(self):
        entries = [{"exercise_completed": None, "mood_score": 5}] * 10
        out = exercise_comparison(entries)
        assert out["insufficient_data"] is True
        assert out["current_entries"] == 0

    def test_weekday_means(self):
        entries = [
            {"date": MONDAY, "mood_score": 4, "energy_level": 5, "stress_level": 6},
            {"date": MONDAY + timedelta(days=7), "mood_score": 6, "energy_level": 5, "stress_level": 4},
            {"date": MONDAY + timedelta(days=5), "mood_score": 9, "energy_level": 8, "stress_level": 2},
        ]
        weekly = weekday_means(entries)
        assert list(weekly) == ["Monday", "Saturday"]
        assert weekly["Monday"]["avg_mood"] == pytest.approx(5.0)
        assert weekly["Monday"]["count"] == 2
        assert weekly_mood_range(weekly) == pytest.approx(4.0)

    def test_time_of_day_buckets(self):
        entries = [
            {"time_of_day": "08:30", "mood_score": 7},
            {"time_of_day": "13:00", "mood_score": 5},
            {"time_of_day": "21:15", "mood_score": 6},
            {"time_of_day": None, "mood_score": 1},
        ]
        out = time_of_day_means(entries)
        assert out["morning"]["avg_mood"] == 7
        assert out["afternoon"]["avg_mood"] == 5
        assert out["evening"]["avg_mood"] == 6

    def test_sleep_correlations(self):
        entries = [
            {"sleep_quality": s, "mood_score": s, "energy_level": 10 - s, "productivity_score": 5}
            for s in (3, 5, 6, 8, 9)
        ] + [{"sleep_quality": 0, "mood_score": 1}]
        out = sleep_correlations(entries)
        assert out["sample_size"] == 5
        assert out["sleep_mood"] == pytest.approx(1.0)
        assert out["sleep_energy"] == pytest.approx(-1.0)
        assert out["sleep_productivity"] == 0.0


class TestConfidence:

    def test_base_when_no_signals(self):
        assert score_confidence({}) == 0.3

    def test_full_signals_capped(self):
        signals = {"samples": 30, "patterns": 4, "nutrition_source": 1,
                   "exercise_source": 1, "sleep_source": 1}
        assert score_confidence(signals) == 0.95

    def test_partial(self):
        assert score_confidence({"samples": 12, "patterns": 1}) == pytest.approx(0.7)

    def test_custom_rules(self):
        rules = (ConfidenceRule("samples", 1, 0.5),)
        assert score_confidence({"samples": 1}, rules=rules, base=0.0) == 0.5

    def test_bounded_for_any_signals(self):
        for samples in (0, 5, 50):
            for patterns in (0, 2, 10):
                c = score_confidence({"samples": samples, "patterns": patterns}, CONFIDENCE_RULES)
                assert 0.0 <= c <= 0.95

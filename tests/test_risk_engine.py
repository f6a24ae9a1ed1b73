"""
Tests for the risk / early-warning engine.

Covers: slope warnings, chronic deficiency, mood alerts, average-intake
factors, health score / risk level, goal progress and preventive actions.
"""
import numpy as np
import pytest

from analytics.trend_layer import analyze_trend
from models import Goal, HealthWarning, RiskFactor
from risk_engine import (
    RiskEngine,
    average_risk_factors,
    chronic_deficiency,
    goal_progress,
    goal_status,
    health_score,
    mood_alerts,
    preventive_actions,
    risk_level,
    risk_predictions,
    slope_warnings,
)


class TestSlopeWarnings:

    def test_rising_sodium_warns(self):
        trends = {"sodium": analyze_trend("sodium", np.linspace(1800, 2800, 14))}
        warnings = slope_warnings(trends)
        assert len(warnings) == 1
        w = warnings[0]
        assert w.type == "early_warning"
        assert w.metric == "sodium"
        assert w.severity == "medium"
        assert w.details["target_reduction"] == "20%"
        assert w.details["slope"] == pytest.approx(76.923, abs=1e-3)

    def test_below_threshold_is_quiet(self):
        trends = {"fat": analyze_trend("fat", [60, 61, 62, 63, 64])}
        assert slope_warnings(trends) == []

    def test_engine_requires_min_days(self):
        engine = RiskEngine(early_warning_min_days=14)
        rising = list(np.linspace(20, 100, 10))
        assert engine.early_warnings({"sugar": rising}) == []
        longer = list(np.linspace(20, 150, 14))
        assert [w.metric for w in engine.early_warnings({"sugar": longer})] == ["sugar"]

    def test_min_days_counts_logged_days_not_filled_gaps(self):
        engine = RiskEngine(early_warning_min_days=14)
        values = list(np.linspace(20, 150, 20))
        assert engine.early_warnings({"sugar": values}, {"sugar": 8}) == []
        warned = engine.early_warnings({"sugar": values}, {"sugar": 14})
        assert [w.metric for w in warned] == ["sugar"]


class TestChronicDeficiency:

    def test_eighteen_of_twenty_days(self):
        values = [5.0] * 18 + [20.0] * 2
        w = chronic_deficiency("iron", values, rda=18.0, min_days=20)
        assert w is not None
        assert w.type == "chronic_deficiency"
        assert w.details["deficientDays"] == 18
        assert w.details["totalDays"] == 20

    def test_too_few_days_skipped(self):
        assert chronic_deficiency("iron", [1.0] * 19, rda=18.0, min_days=20) is None

    def test_exactly_sixty_percent_is_not_chronic(self):
        values = [1.0] * 12 + [100.0] * 8
        assert chronic_deficiency("vitamin_c", values, rda=90.0, min_days=20) is None

    def test_engine_uses_rda_table(self):
        engine = RiskEngine(deficiency_min_days=20)
        warnings = engine.deficiencies({
            "vitamin_d": [2.0] * 25,
            "calcium": [1000.0] * 25,
        })
        assert [w.metric for w in warnings] == ["vitamin_d"]
        assert warnings[0].details["rda"] == 20.0


class TestMoodAlerts:

    def test_low_mood_and_high_stress(self):
        entries = [
            {"mood_score": 3, "stress_level": 9},
            {"mood_score": 4, "stress_level": 8},
            {"mood_score": 7, "stress_level": 2},
        ]
        types = [w.type for w in mood_alerts(entries)]
        assert types == ["low_mood", "high_stress"]

    def test_needs_three_entries(self):
        assert mood_alerts([{"mood_score": 1}, {"mood_score": 1}]) == []

    def test_single_bad_day_is_quiet(self):
        entries = [{"mood_score": 2, "stress_level": 9}] + [{"mood_score": 7, "stress_level": 3}] * 3
        assert mood_alerts(entries) == []


class TestRiskFactors:

    def test_average_factors(self):
        factors = average_risk_factors({"sodium": 2600, "sugar": 60, "fiber": 12})
        assert {(f.factor, f.level) for f in factors} == {
            ("high_sodium", "high"), ("high_sugar", "medium"), ("low_fiber", "high"),
        }

    def test_healthy_averages(self):
        assert average_risk_factors({"sodium": 1500, "sugar": 20, "fiber": 30}) == []

    def test_predictions(self):
        trends = {
            "sodium": analyze_trend("sodium", [2000, 2100, 2400, 2600]),
            "sugar": analyze_trend("sugar", [40, 40, 41, 41]),
        }
        assert [f.factor for f in risk_predictions(trends)] == ["cardiovascular_risk"]


class TestScore:

    def test_no_findings_is_perfect(self):
        assert health_score([]) == 100
        assert risk_level([]) == "low"

    def test_penalties(self):
        assert health_score(["high", "medium", "low"]) == 50

    def test_floor_at_zero(self):
        assert health_score(["high"] * 5) == 0

    def test_risk_levels(self):
        assert risk_level(["high", "high"]) == "high"
        assert risk_level(["high"]) == "medium"
        assert risk_level(["medium"] * 3) == "medium"
        assert risk_level(["medium", "medium", "low"]) == "low"

    def test_assess_counts_warnings_and_factors(self):
        w = HealthWarning("low_mood", "high", "mood", "m", "r")
        f = RiskFactor("high_sugar", "medium", "d")
        out = RiskEngine().assess([w], [f])
        assert out["health_score"] == 55
        assert out["risk_level"] == "medium"
        assert (out["n_high"], out["n_medium"], out["n_low"]) == (1, 1, 0)


class TestGoals:

    def test_goal_requires_a_target(self):
        with pytest.raises(ValueError):
            Goal("iron")

    def test_status_thresholds(self):
        assert goal_status(95) == "on_track"
        assert goal_status(90) == "on_track"
        assert goal_status(75) == "needs_attention"
        assert goal_status(50) == "behind"

    def test_value_goal(self):
        out = goal_progress([Goal("iron", target_value=18.0)], {"iron": 9.0})
        assert out[0].progress_percent == 50.0
        assert out[0].status == "behind"
        assert out[0].recommendations

    def test_percentage_goal(self):
        # 18 mg of vitamin C is 20% of RDA; the goal is 40% of RDA
        out = goal_progress([Goal("vitamin_c", target_percentage=40.0)], {"vitamin_c": 18.0})
        assert out[0].progress_percent == 50.0

    def test_engine_uses_mean_intake(self):
        out = RiskEngine().goal_progress([Goal("iron", target_value=10.0)], {"iron": [8.0, 10.0, 12.0]})
        assert out[0].current_intake == 10.0
        assert out[0].status == "on_track"
        assert out[0].recommendations == []

    def test_untracked_nutrient_is_zero(self):
        out = goal_progress([Goal("zinc", target_value=11.0)], {})
        assert out[0].current_intake == 0.0
        assert out[0].status == "behind"


class TestPreventiveActions:

    def test_actions_for_warning_types(self):
        warnings = [
            HealthWarning("early_warning", "medium", "sodium", "m", "cut salt"),
            HealthWarning("chronic_deficiency", "medium", "iron", "m", "eat spinach"),
            HealthWarning("low_mood", "high", "mood", "m", "talk"),
        ]
        actions = preventive_actions(warnings)
        assert [a["metric"] for a in actions] == ["sodium", "iron"]
        assert actions[0]["short_term"] == "cut salt"
        assert actions[1]["immediate"] == "eat spinach"

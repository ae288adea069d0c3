"""Tests for score composition and the engine entry points."""

from datetime import timedelta

import pytest

from caffeine.decay import BASELINE_HALF_LIFE_HOURS
from caffeine.domain.models import CrashRiskFactors, FocusFactors, ScoreKind
from caffeine.scoring import (
    SCORERS,
    calculate_crash_risk,
    calculate_focus_score,
    compose_crash_risk_score,
    compose_focus_score,
    round_score,
)
from tests.conftest import NOW, make_intake, make_profile


class TestRoundScore:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (42.25, 42.3),
            (42.24, 42.2),
            (0.04, 0.0),
            (150.0, 100.0),
            (-3.0, 0.0),
            (float("nan"), 0.0),
            (float("inf"), 0.0),
        ],
    )
    def test_round_and_clamp(self, raw, expected):
        assert round_score(raw) == expected


class TestCompose:
    def test_focus_all_ones(self):
        factors = FocusFactors(level=1, rising_rate=1, tolerance=1, capacity=1, activity=1)
        assert compose_focus_score(factors) == 100.0

    def test_focus_zero_level_collapses(self):
        factors = FocusFactors(level=0, rising_rate=1, tolerance=1, capacity=1, activity=1)
        assert compose_focus_score(factors) == 0.0

    def test_focus_weights(self):
        factors = FocusFactors(level=0.5, rising_rate=1, tolerance=1, capacity=1, activity=1)
        assert compose_focus_score(factors) == 50.0

    def test_crash_clamped_at_100(self):
        factors = CrashRiskFactors(delta=1, sleep_debt=1, tolerance=0, metabolic=1.2, circadian=1)
        assert compose_crash_risk_score(factors) == 100.0

    def test_full_tolerance_removes_crash_risk(self):
        factors = CrashRiskFactors(delta=1, sleep_debt=1, tolerance=1, metabolic=1.0, circadian=1)
        assert compose_crash_risk_score(factors) == 0.0

    def test_crash_formula(self):
        factors = CrashRiskFactors(
            delta=0.5, sleep_debt=0.5, tolerance=0.5, metabolic=1.0, circadian=0.5
        )
        expected = 100 * 0.5**0.6 * 0.5**0.4 * 0.5**0.3 * 0.5**0.2
        assert compose_crash_risk_score(factors) == pytest.approx(expected, abs=0.05)


class TestNoIntakes:
    def test_both_scores_zero(self):
        profile = make_profile()
        assert calculate_focus_score(profile, [], 7.5, NOW).score == 0.0
        assert calculate_crash_risk(profile, [], 7.5, NOW).score == 0.0

    def test_levels_zero(self):
        result = calculate_focus_score(make_profile(), [], None, NOW)
        assert result.current_caffeine_level == 0.0
        assert result.peak_caffeine_level == 0.0


class TestMissingProfile:
    @pytest.mark.parametrize("kind", list(ScoreKind))
    def test_zero_result(self, kind):
        result = SCORERS[kind](None, [make_intake()], 6.0, NOW)
        assert result.kind == kind
        assert result.score == 0.0
        assert result.personalized_half_life == BASELINE_HALF_LIFE_HOURS
        assert result.intakes_considered == 0


class TestFocusScore:
    def test_bounded_one_decimal(self, profile, espresso):
        result = calculate_focus_score(profile, [espresso], 7.5, NOW)
        assert 0.0 < result.score <= 100.0
        assert round(result.score, 1) == result.score

    def test_reports_levels_and_half_life(self, profile, espresso):
        result = calculate_focus_score(profile, [espresso], 7.5, NOW)
        assert result.current_caffeine_level == pytest.approx(87.06, abs=0.01)
        assert result.peak_caffeine_level == pytest.approx(100.0)
        assert result.personalized_half_life == 5.0
        assert result.kind == ScoreKind.FOCUS
        assert isinstance(result.factors, FocusFactors)

    def test_invalid_intake_excluded(self, profile, espresso):
        bad = make_intake(hours_ago=0.5, completion_percentage=150)
        clean = calculate_focus_score(profile, [espresso], 7.5, NOW)
        mixed = calculate_focus_score(profile, [espresso, bad], 7.5, NOW)
        assert mixed.score == clean.score
        assert mixed.current_caffeine_level == clean.current_caffeine_level
        assert mixed.intakes_considered == 1
        assert mixed.intakes_dropped == 1

    def test_deterministic(self, profile, espresso):
        first = calculate_focus_score(profile, [espresso], 6.0, NOW)
        second = calculate_focus_score(profile, [espresso], 6.0, NOW)
        assert first == second

    def test_valid_until_uses_ttl(self, profile):
        result = calculate_focus_score(profile, [], 7.5, NOW, timedelta(seconds=30))
        assert result.calculated_at == NOW
        assert result.valid_until == NOW + timedelta(seconds=30)

    def test_naive_now_read_as_utc(self, profile, espresso):
        naive = calculate_focus_score(profile, [espresso], 7.5, NOW.replace(tzinfo=None))
        aware = calculate_focus_score(profile, [espresso], 7.5, NOW)
        assert naive.score == aware.score

    def test_short_sleep_lowers_capacity(self, profile, espresso):
        rested = calculate_focus_score(profile, [espresso], 7.5, NOW)
        tired = calculate_focus_score(profile, [espresso], 4.0, NOW)
        assert tired.factors.capacity < rested.factors.capacity
        assert tired.score < rested.score


class TestCrashRisk:
    def test_bounded(self):
        profile = make_profile(created_at=NOW - timedelta(days=1))
        intakes = [make_intake(hours_ago=6, caffeine_mg=200)]
        result = calculate_crash_risk(profile, intakes, 4.0, NOW)
        assert 0.0 < result.score <= 100.0
        assert isinstance(result.factors, CrashRiskFactors)

    def test_no_sleep_debt_means_no_risk(self, profile):
        intakes = [make_intake(hours_ago=6, caffeine_mg=200)]
        assert calculate_crash_risk(profile, intakes, 8.0, NOW).score == 0.0

    def test_missing_sleep_defaults_to_baseline(self):
        profile = make_profile(created_at=NOW - timedelta(days=1))
        intakes = [make_intake(hours_ago=6, caffeine_mg=200)]
        result = calculate_crash_risk(profile, intakes, None, NOW)
        assert result.factors.sleep_debt == 0.0

    def test_risk_grows_as_caffeine_wears_off(self):
        profile = make_profile(created_at=NOW - timedelta(days=1), mean_daily_caffeine_mg=50)
        intakes = [make_intake(hours_ago=1, caffeine_mg=200)]
        # Both instants fall in the same crash circadian band (10:00-16:00)
        early = calculate_crash_risk(profile, intakes, 5.0, NOW)
        later = calculate_crash_risk(profile, intakes, 5.0, NOW + timedelta(hours=4))
        assert later.factors.delta > early.factors.delta
        assert later.score > early.score

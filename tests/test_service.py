"""Tests for the cache-aware scoring service."""

from datetime import timedelta
from unittest.mock import patch

from caffeine.service import ScoringService, recent_intakes
from tests.conftest import NOW, USER_ID, make_intake


class TestRecentIntakes:
    def test_window_cutoff(self):
        inside = make_intake(hours_ago=23)
        outside = make_intake(hours_ago=25)
        assert recent_intakes([inside, outside], NOW, timedelta(hours=24)) == [inside]

    def test_naive_records_kept_for_the_gate(self):
        naive = make_intake(timestamp=NOW.replace(tzinfo=None) - timedelta(days=3))
        assert recent_intakes([naive], NOW, timedelta(hours=24)) == [naive]


class TestScoringService:
    def test_repeat_call_returns_cached_object(self, profile, espresso):
        service = ScoringService(cache_ttl_seconds=1)
        first = service.focus_score(USER_ID, profile, [espresso], 7.5, NOW)
        second = service.focus_score(
            USER_ID, profile, [espresso], 7.5, NOW + timedelta(milliseconds=200)
        )
        assert second is first

    def test_ttl_applied_to_results(self, profile):
        service = ScoringService(cache_ttl_seconds=60)
        result = service.crash_risk(USER_ID, profile, [], 7.5, NOW)
        assert result.valid_until == NOW + timedelta(seconds=60)

    def test_record_intake_invalidates(self, profile, espresso):
        service = ScoringService()
        before = service.focus_score(USER_ID, profile, [], 7.5, NOW)
        service.record_intake(USER_ID)
        after = service.focus_score(USER_ID, profile, [espresso], 7.5, NOW)
        assert after is not before
        assert after.score > before.score

    def test_record_sleep_invalidates_both_kinds(self, profile):
        service = ScoringService()
        focus = service.focus_score(USER_ID, profile, [], 7.5, NOW)
        crash = service.crash_risk(USER_ID, profile, [], 7.5, NOW)
        service.record_sleep(USER_ID)
        assert service.focus_score(USER_ID, profile, [], 7.5, NOW) is not focus
        assert service.crash_risk(USER_ID, profile, [], 7.5, NOW) is not crash

    def test_old_intakes_outside_window_ignored(self, profile):
        service = ScoringService(intake_window_hours=2)
        old = make_intake(hours_ago=3, caffeine_mg=200)
        result = service.focus_score(USER_ID, profile, [old], 7.5, NOW)
        assert result.current_caffeine_level == 0.0
        assert result.intakes_considered == 0

    def test_within_ttl_new_data_not_seen_without_invalidate(self, profile, espresso):
        service = ScoringService()
        stale = service.focus_score(USER_ID, profile, [], 7.5, NOW)
        cached = service.focus_score(USER_ID, profile, [espresso], 7.5, NOW)
        assert cached is stale

    def test_defaults_from_settings(self):
        with patch("caffeine.service.settings") as mock_settings:
            mock_settings.cache_ttl_seconds = 5.0
            mock_settings.intake_window_hours = 12.0
            service = ScoringService()
        assert service.cache_ttl == timedelta(seconds=5)
        assert service.intake_window == timedelta(hours=12)

    def test_missing_profile_scores_zero(self, espresso):
        service = ScoringService()
        assert service.focus_score(USER_ID, None, [espresso], 7.5, NOW).score == 0.0

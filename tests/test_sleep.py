"""Tests for resolving sleep figures from samples."""

from datetime import date

from caffeine.domain.models import SleepSample
from caffeine.sleep import average_sleep, last_night_sleep, resolve_sleep_hours

TODAY = date(2024, 3, 14)


def _sample(day: int, hours: float) -> SleepSample:
    return SleepSample(date=date(2024, 3, day), hours_slept=hours)


class TestLastNightSleep:
    def test_yesterday_sample(self):
        assert last_night_sleep([_sample(12, 8), _sample(13, 6.5)], TODAY) == 6.5

    def test_not_logged(self):
        assert last_night_sleep([_sample(11, 8)], TODAY) is None

    def test_last_supplied_wins(self):
        assert last_night_sleep([_sample(13, 5), _sample(13, 7)], TODAY) == 7


class TestAverageSleep:
    def test_mean_of_recent(self):
        samples = [_sample(10, 6), _sample(12, 8), _sample(1, 2)]
        assert average_sleep(samples, TODAY) == 7.0

    def test_no_samples_uses_baseline(self):
        assert average_sleep([], TODAY) == 7.5


def test_resolve_sleep_hours():
    assert resolve_sleep_hours(None) == 7.5
    assert resolve_sleep_hours(None, default=8) == 8
    assert resolve_sleep_hours(5.5) == 5.5

"""Resolve the sleep figures the engine consumes from raw SleepSamples.

The engine itself only sees "last night's sleep hours"; these helpers turn a
caller-supplied sample history into that figure and into the rolling
average stored on the profile.
"""

from collections.abc import Iterable
from datetime import date, timedelta

from caffeine.domain.models import SleepSample
from caffeine.factors import BASELINE_SLEEP_HOURS


def last_night_sleep(samples: Iterable[SleepSample], today: date) -> float | None:
    """Hours slept on the night dated yesterday, or None if not logged.

    When several samples share that date the last one supplied wins, the
    same replace-on-write rule the sleep log uses.
    """
    yesterday = today - timedelta(days=1)
    hours = None
    for sample in samples:
        if sample.date == yesterday:
            hours = sample.hours_slept
    return hours


def average_sleep(samples: Iterable[SleepSample], today: date, days: int = 7) -> float:
    """Mean hours over samples dated within the last `days` days."""
    cutoff = today - timedelta(days=days)
    recent = [s.hours_slept for s in samples if cutoff <= s.date <= today]
    if not recent:
        return BASELINE_SLEEP_HOURS
    return sum(recent) / len(recent)


def resolve_sleep_hours(hours: float | None, default: float = BASELINE_SLEEP_HOURS) -> float:
    return default if hours is None else hours

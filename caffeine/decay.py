"""Single-compartment caffeine elimination model.

Every intake is treated as an instantaneous dose that decays exponentially:

    C(t) = consumed_mg * 0.5 ** (t / half_life)

Doses superpose linearly, so the level at any instant is the sum of the
individual contributions. Intakes that start after the evaluation instant
contribute nothing.

Half-life personalization starts from 5 h and applies multiplicative
adjustments for age, smoking, oral contraceptives and pregnancy, floored
at 2 h.
"""

from collections.abc import Iterable
from datetime import datetime

from caffeine.domain.models import IntakeRecord, UserProfile

BASELINE_HALF_LIFE_HOURS = 5.0
MIN_HALF_LIFE_HOURS = 2.0

_SENIOR_AGE = 65
_MIDDLE_AGE = 40


def personalized_half_life(profile: UserProfile) -> float:
    """Elimination half-life in hours for this profile.

    Pregnancy and oral contraceptives both apply when both flags are set;
    the double adjustment is kept as-is pending product review.
    """
    half_life = BASELINE_HALF_LIFE_HOURS

    if profile.age > _SENIOR_AGE:
        half_life *= 1.3
    elif profile.age > _MIDDLE_AGE:
        half_life *= 1.1

    if profile.smoker:
        half_life *= 0.7

    if profile.oral_contraceptives:
        half_life *= 1.4

    if profile.pregnant:
        half_life *= 2.0

    return max(half_life, MIN_HALF_LIFE_HOURS)


def elapsed_hours(since: datetime, now: datetime) -> float:
    return (now - since).total_seconds() / 3600.0


def decay_fraction(hours: float, half_life: float) -> float:
    """Fraction of a dose remaining after `hours`."""
    return 0.5 ** (hours / half_life)


def current_level(intakes: Iterable[IntakeRecord], half_life: float, now: datetime) -> float:
    """Caffeine in the body (mg) at `now`."""
    total = 0.0
    for intake in intakes:
        hours = elapsed_hours(intake.timestamp, now)
        if hours >= 0:
            total += intake.consumed * decay_fraction(hours, half_life)
    return total


def peak_level(intakes: Iterable[IntakeRecord], half_life: float, now: datetime) -> float:
    """Highest level the history reached at any intake instant up to `now`.

    With instantaneous absorption the level only rises at intake instants,
    so evaluating the whole history at each started intake finds the peak.
    """
    history = list(intakes)
    peak = 0.0
    for intake in history:
        if elapsed_hours(intake.timestamp, now) >= 0:
            peak = max(peak, current_level(history, half_life, intake.timestamp))
    return peak

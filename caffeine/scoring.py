"""Score composition and the two engine entry points.

Both scores are weighted power laws over their factors:

    CaffScore  = 100 * L^1.0 * R^0.2 * T^0.3 * F^0.3 * A^0.6
    CrashRisk  = 100 * D^0.6 * S^0.4 * (1-T)^0.3 * M * C^0.2

The composition is multiplicative: a zero factor (no active
caffeine, no drop from peak, no sleep debt) collapses the score to zero.

calculate_focus_score / calculate_crash_risk run the full pass:
validation gate -> decay model -> factors -> composition. They are
deterministic for a given `now` and touch no shared state; the only side
effect is the diagnostic log line for a dropped intake. Caching lives in
caffeine.service.
"""

import math
from collections.abc import Sequence
from datetime import datetime, timedelta

from caffeine import factors as f
from caffeine.decay import (
    BASELINE_HALF_LIFE_HOURS,
    current_level,
    peak_level,
    personalized_half_life,
)
from caffeine.domain.models import (
    CrashRiskFactors,
    FocusFactors,
    IntakeRecord,
    ScoreKind,
    ScoreResult,
    UserProfile,
    ensure_aware,
    utc_now,
)
from caffeine.domain.validation import filter_valid_intakes

DEFAULT_CACHE_TTL = timedelta(seconds=1)

FOCUS_EXPONENTS = {
    "level": 1.0,
    "rising_rate": 0.2,
    "tolerance": 0.3,
    "capacity": 0.3,
    "activity": 0.6,
}

CRASH_EXPONENTS = {
    "delta": 0.6,
    "sleep_debt": 0.4,
    "headroom": 0.3,  # applied to (1 - tolerance)
    "circadian": 0.2,
}


def round_score(raw: float) -> float:
    """Round half-up to one decimal and clamp to [0, 100]."""
    if not math.isfinite(raw):
        return 0.0
    return f.clamp(math.floor(raw * 10 + 0.5) / 10, 0.0, 100.0)


def compose_focus_score(factors: FocusFactors) -> float:
    raw = (
        100
        * factors.level ** FOCUS_EXPONENTS["level"]
        * factors.rising_rate ** FOCUS_EXPONENTS["rising_rate"]
        * factors.tolerance ** FOCUS_EXPONENTS["tolerance"]
        * factors.capacity ** FOCUS_EXPONENTS["capacity"]
        * factors.activity ** FOCUS_EXPONENTS["activity"]
    )
    return round_score(raw)


def compose_crash_risk_score(factors: CrashRiskFactors) -> float:
    headroom = max(1.0 - factors.tolerance, 0.0)
    raw = (
        100
        * factors.delta ** CRASH_EXPONENTS["delta"]
        * factors.sleep_debt ** CRASH_EXPONENTS["sleep_debt"]
        * headroom ** CRASH_EXPONENTS["headroom"]
        * factors.metabolic
        * factors.circadian ** CRASH_EXPONENTS["circadian"]
    )
    return round_score(raw)


def _resolve_now(now: datetime | None) -> datetime:
    return ensure_aware(now) if now is not None else utc_now()


def _resolve_sleep(hours: float | None) -> float:
    if hours is None:
        return f.BASELINE_SLEEP_HOURS
    return f.clamp(hours, 0.0, 24.0)


def _empty_result(kind: ScoreKind, now: datetime, ttl: timedelta) -> ScoreResult:
    """Zero-score result for callers that have no profile yet."""
    if kind == ScoreKind.FOCUS:
        empty_factors: FocusFactors | CrashRiskFactors = FocusFactors(
            level=0.0, rising_rate=0.0, tolerance=0.0, capacity=0.0, activity=0.0
        )
    else:
        empty_factors = CrashRiskFactors(
            delta=0.0, sleep_debt=0.0, tolerance=0.0, metabolic=1.0, circadian=0.0
        )
    return ScoreResult(
        kind=kind,
        score=0.0,
        factors=empty_factors,
        personalized_half_life=BASELINE_HALF_LIFE_HOURS,
        current_caffeine_level=0.0,
        peak_caffeine_level=0.0,
        valid_until=now + ttl,
        calculated_at=now,
    )


def calculate_focus_score(
    profile: UserProfile | None,
    intakes: Sequence[IntakeRecord],
    last_night_sleep_hours: float | None = None,
    now: datetime | None = None,
    cache_ttl: timedelta = DEFAULT_CACHE_TTL,
) -> ScoreResult:
    """CaffScore: near-term focus potential from current caffeine activity."""
    now = _resolve_now(now)
    if profile is None:
        return _empty_result(ScoreKind.FOCUS, now, cache_ttl)

    valid, dropped = filter_valid_intakes(list(intakes), now)
    sleep_hours = _resolve_sleep(last_night_sleep_hours)

    half_life = personalized_half_life(profile)
    level_mg = current_level(valid, half_life, now)
    peak_mg = peak_level(valid, half_life, now)
    threshold = profile.mean_daily_caffeine_mg or f.DEFAULT_TOLERANCE_THRESHOLD_MG

    debt = f.sleep_debt_hours(profile, sleep_hours, now)
    circadian = f.focus_circadian_factor(now)

    factors = FocusFactors(
        level=f.focus_level_factor(level_mg, threshold),
        rising_rate=f.rising_rate_factor(valid, half_life, now),
        tolerance=f.focus_tolerance_factor(profile),
        capacity=f.focus_capacity_factor(debt, circadian, profile.age),
        activity=f.current_activity_factor(valid, half_life, now),
    )

    return ScoreResult(
        kind=ScoreKind.FOCUS,
        score=compose_focus_score(factors),
        factors=factors,
        personalized_half_life=half_life,
        current_caffeine_level=level_mg,
        peak_caffeine_level=peak_mg,
        valid_until=now + cache_ttl,
        calculated_at=now,
        intakes_considered=len(valid),
        intakes_dropped=dropped,
    )


def calculate_crash_risk(
    profile: UserProfile | None,
    intakes: Sequence[IntakeRecord],
    last_night_sleep_hours: float | None = None,
    now: datetime | None = None,
    cache_ttl: timedelta = DEFAULT_CACHE_TTL,
) -> ScoreResult:
    """Crash risk: likelihood of an energy crash as caffeine wears off."""
    now = _resolve_now(now)
    if profile is None:
        return _empty_result(ScoreKind.CRASH_RISK, now, cache_ttl)

    valid, dropped = filter_valid_intakes(list(intakes), now)
    sleep_hours = _resolve_sleep(last_night_sleep_hours)

    half_life = personalized_half_life(profile)
    level_mg = current_level(valid, half_life, now)
    peak_mg = peak_level(valid, half_life, now)

    factors = CrashRiskFactors(
        delta=f.delta_factor(level_mg, peak_mg),
        sleep_debt=f.crash_sleep_debt_factor(profile, sleep_hours, now),
        tolerance=f.crash_tolerance_factor(profile),
        metabolic=f.metabolic_factor(profile),
        circadian=f.crash_circadian_factor(now),
    )

    return ScoreResult(
        kind=ScoreKind.CRASH_RISK,
        score=compose_crash_risk_score(factors),
        factors=factors,
        personalized_half_life=half_life,
        current_caffeine_level=level_mg,
        peak_caffeine_level=peak_mg,
        valid_until=now + cache_ttl,
        calculated_at=now,
        intakes_considered=len(valid),
        intakes_dropped=dropped,
    )


SCORERS = {
    ScoreKind.FOCUS: calculate_focus_score,
    ScoreKind.CRASH_RISK: calculate_crash_risk,
}

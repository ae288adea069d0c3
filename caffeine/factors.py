"""Factor calculators for the focus (CaffScore) and crash-risk scores.

Each calculator is a pure function that turns one raw signal (caffeine
level, dose history, sleep, time of day, profile) into a bounded factor.
Outputs are clamped to their documented range before they reach the
composer, so a single bad input cannot push a score out of [0, 100].

Focus factors:
  level        current level vs. personal tolerance threshold   [0, 1]
  rising_rate  10-minute slope of the level curve                [0.1, 1]
  tolerance    habituation from mean intake and physiology       [0.1, 1]
  capacity     sleep debt, circadian phase and age               [0.1, 1]
  activity     decayed dose weighted by absorption phase         [0, 1]

Crash-risk factors:
  delta        fractional drop from peak to current level        [0, 1]
  sleep_debt   shortfall vs. 7.5 h, saturating at 3 h            [0, 1]
  tolerance    habituation, crash tuning                         [0, 1]
  metabolic    personal metabolism modifier                      [0.8, 1.2]
  circadian    time-of-day crash susceptibility                  [0, 1]
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from caffeine.decay import current_level, decay_fraction, elapsed_hours
from caffeine.domain.models import IntakeRecord, UserProfile, ensure_aware

BASELINE_SLEEP_HOURS = 7.5
DEFAULT_TOLERANCE_THRESHOLD_MG = 200.0
MODERATE_CAFFEINE_MG_PER_KG = 4.0
REFERENCE_ACTIVE_DOSE_MG = 200.0
MAX_SLEEP_DEBT_HOURS = 3.0
SLEEP_HISTORY_DAYS = 7


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _decimal_hour(now: datetime) -> float:
    return now.hour + now.minute / 60.0


# ── Level and trajectory ──────────────────────────────────────────────


def focus_level_factor(current_mg: float, threshold_mg: float) -> float:
    """Map the current level onto an inverted-U focus curve.

    Peak focus sits at 125% of the tolerance threshold; beyond 200% the
    user is overstimulated.
    """
    normalized = current_mg / max(threshold_mg, 1.0)
    optimal = 1.25

    if normalized <= 0.3:
        result = normalized * 0.3
    elif normalized <= optimal:
        result = 0.1 + (normalized - 0.3) * 0.9
    elif normalized <= 2.0:
        result = max(1.0 - (normalized - optimal) * 0.5, 0.3)
    else:
        result = 0.2
    return clamp(result, 0.0, 1.0)


def average_rate_mg_per_min(
    intakes: Sequence[IntakeRecord], half_life: float, now: datetime
) -> float:
    """Mean of the last two 10-minute slopes of the level curve."""
    level_now = current_level(intakes, half_life, now)
    level_10 = current_level(intakes, half_life, now - timedelta(minutes=10))
    level_20 = current_level(intakes, half_life, now - timedelta(minutes=20))

    recent_rate = (level_now - level_10) / 10.0
    earlier_rate = (level_10 - level_20) / 10.0
    return (recent_rate + earlier_rate) / 2.0


def rising_rate_factor(intakes: Sequence[IntakeRecord], half_life: float, now: datetime) -> float:
    """Moderate rises (2-5 mg/min) are best for focus; declines and spikes are not."""
    rate = average_rate_mg_per_min(intakes, half_life, now)
    optimal_min, optimal_max = 2.0, 5.0

    if rate < 0:
        result = max(0.2, 0.5 + rate * 0.1)
    elif rate <= optimal_min:
        result = 0.3 + (rate / optimal_min) * 0.4
    elif rate <= optimal_max:
        result = 0.7 + ((rate - optimal_min) / (optimal_max - optimal_min)) * 0.3
    else:
        result = max(0.4 - (rate - optimal_max) * 0.05, 0.1)
    return clamp(result, 0.0, 1.0)


def delta_factor(current_mg: float, peak_mg: float) -> float:
    """Relative drop from peak. No peak means nothing to crash from."""
    if peak_mg <= 1e-6:
        return 0.0
    return clamp((peak_mg - current_mg) / peak_mg, 0.0, 1.0)


# ── Tolerance ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ToleranceTuning:
    """Multipliers applied on top of the mg/kg base tolerance."""

    senior: float
    youth: float
    female: float
    smoker: float
    pregnant: float
    oral_contraceptives: float
    heavy_user: float
    light_user: float


FOCUS_TOLERANCE = ToleranceTuning(
    senior=0.8,
    youth=1.1,
    female=0.9,
    smoker=1.5,
    pregnant=0.4,
    oral_contraceptives=0.85,
    heavy_user=1.2,
    light_user=0.7,
)

CRASH_TOLERANCE = ToleranceTuning(
    senior=0.85,
    youth=1.1,
    female=0.9,
    smoker=1.6,
    pregnant=0.3,
    oral_contraceptives=0.8,
    heavy_user=1.3,
    light_user=0.6,
)


def health_multiplier(profile: UserProfile, tuning: ToleranceTuning) -> float:
    """Compose the physiological adjustments multiplicatively."""
    multiplier = 1.0

    if profile.age >= 65:
        multiplier *= tuning.senior
    elif profile.age <= 18:
        multiplier *= tuning.youth

    if profile.is_female:
        multiplier *= tuning.female

    if profile.smoker:
        multiplier *= tuning.smoker

    if profile.pregnant:
        multiplier *= tuning.pregnant

    if profile.is_female and profile.oral_contraceptives and not profile.pregnant:
        multiplier *= tuning.oral_contraceptives

    return multiplier


def experience_multiplier(mean_daily_mg: float, tuning: ToleranceTuning) -> float:
    if mean_daily_mg > 400:
        return tuning.heavy_user
    if mean_daily_mg < 50:
        return tuning.light_user
    return 1.0


def raw_tolerance(profile: UserProfile, tuning: ToleranceTuning) -> float:
    """Unclamped tolerance: mean intake relative to 4 mg/kg/day, adjusted."""
    moderate_total = MODERATE_CAFFEINE_MG_PER_KG * profile.weight_kg
    if moderate_total <= 0:
        return 0.0
    mean_daily = profile.mean_daily_caffeine_mg
    base = mean_daily / moderate_total
    adjusted = base * health_multiplier(profile, tuning)
    return adjusted * experience_multiplier(mean_daily, tuning)


def focus_tolerance_factor(profile: UserProfile) -> float:
    """Higher tolerance means caffeine supports focus without jitter."""
    return clamp(raw_tolerance(profile, FOCUS_TOLERANCE) * 0.7 + 0.3, 0.1, 1.0)


def crash_tolerance_factor(profile: UserProfile) -> float:
    return clamp(raw_tolerance(profile, CRASH_TOLERANCE), 0.0, 1.0)


def metabolic_factor(profile: UserProfile) -> float:
    """Baseline metabolism modifier, independent of hormonal adjustments."""
    factor = 1.05 if profile.is_female else 0.95
    return clamp(factor, 0.8, 1.2)


# ── Sleep ─────────────────────────────────────────────────────────────


def has_seven_days_of_sleep_data(created_at: datetime, now: datetime) -> bool:
    return now - ensure_aware(created_at) >= timedelta(days=SLEEP_HISTORY_DAYS)


def sleep_debt_hours(profile: UserProfile, last_night_hours: float, now: datetime) -> float:
    """Hours short of the personal ideal.

    Accounts younger than a week have no trustworthy rolling average, so
    their ideal is the fixed 7.5 h baseline.
    """
    if has_seven_days_of_sleep_data(profile.created_at, now):
        ideal = profile.average_sleep_7_days or BASELINE_SLEEP_HOURS
    else:
        ideal = BASELINE_SLEEP_HOURS
    return max(0.0, ideal - last_night_hours)


def crash_sleep_debt_factor(profile: UserProfile, last_night_hours: float, now: datetime) -> float:
    """Debt against the 7.5 h baseline, normalized so 3 h short saturates."""
    effective = last_night_hours
    if has_seven_days_of_sleep_data(profile.created_at, now) and profile.average_sleep_7_days > 0:
        effective = profile.average_sleep_7_days

    debt = max(0.0, BASELINE_SLEEP_HOURS - effective)
    return clamp(debt / MAX_SLEEP_DEBT_HOURS, 0.0, 1.0)


# ── Circadian ─────────────────────────────────────────────────────────


def focus_circadian_factor(now: datetime) -> float:
    """Alertness by time of day: peaks late morning and early afternoon."""
    t = _decimal_hour(now)

    if 9 <= t <= 11:
        return 1.0
    if 13 <= t <= 15:
        return 0.9
    if 6 <= t <= 9:
        return 0.7
    if 15 <= t <= 18:
        return 0.8
    if 18 <= t <= 22:
        return 0.6
    if t >= 22 or t <= 6:
        return 0.4
    return 0.7


def crash_circadian_factor(now: datetime) -> float:
    """Crash susceptibility by time of day: highest at night."""
    hour = now.hour

    if hour >= 22 or hour < 6:
        return 1.0
    if hour < 10:
        return 0.6
    if hour < 16:
        return 0.4
    return 0.7


def focus_capacity_factor(debt_hours: float, circadian: float, age: float) -> float:
    sleep_focus = max(0.0, 1.0 - debt_hours * 0.8)
    circadian_focus = 1.0 - circadian * 0.4
    if age < 25:
        age_focus = 0.9
    elif age > 60:
        age_focus = 0.8
    else:
        age_focus = 1.0

    return clamp(sleep_focus * 0.6 + circadian_focus * 0.3 + age_focus * 0.1, 0.1, 1.0)


# ── Absorption ────────────────────────────────────────────────────────


def absorption_multiplier(hours: float) -> float:
    """Share of a dose that is already active, by time since intake."""
    if hours < 0.25:
        return 0.3 + (hours / 0.25) * 0.4
    if hours < 1.0:
        return 0.7 + (hours - 0.25) / 0.75 * 0.3
    return 1.0


def current_activity_factor(
    intakes: Sequence[IntakeRecord], half_life: float, now: datetime
) -> float:
    total = 0.0
    for intake in intakes:
        hours = elapsed_hours(intake.timestamp, now)
        if hours < 0:
            continue
        total += intake.consumed * decay_fraction(hours, half_life) * absorption_multiplier(hours)
    return clamp(total / REFERENCE_ACTIVE_DOSE_MG, 0.0, 1.0)

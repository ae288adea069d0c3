"""Read-side helpers built on top of the scores.

- Crash-risk banding (low / medium / high) with user-facing copy
- Short-range risk curve and "when to have the next coffee"
- Status line and trend for the focus score
- Widget snapshot: the flat dict the home-screen widget bridge stores
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from caffeine.decay import current_level, personalized_half_life
from caffeine.domain.models import IntakeRecord, ScoreResult, UserProfile, ensure_aware
from caffeine.domain.validation import filter_valid_intakes, validate_intake_record
from caffeine.scoring import calculate_crash_risk

LOW_RISK_MAX = 30
MEDIUM_RISK_MAX = 70
HIGH_RISK_THRESHOLD = MEDIUM_RISK_MAX

_STATUS_EPSILON = 0.0001
_STATUS_LOW_MAX = 25
_STATUS_HIGH_MIN = 80

DEFAULT_STATUS_TEXT = "Caffeine levels steady"


@dataclass
class RiskInterpretation:
    level: str  # "low", "medium", "high"
    message: str
    recommendation: str


@dataclass
class RiskCurvePoint:
    time: datetime
    risk_score: float
    caffeine_level: float


@dataclass
class CaffeineRecommendation:
    hours_from_now: float
    reason: str


@dataclass
class StatusResult:
    text: str
    trend: str  # "rising", "declining", "stable"
    show_dot: bool = True


def interpret_crash_risk(score: float) -> RiskInterpretation:
    if score <= LOW_RISK_MAX:
        return RiskInterpretation("low", "Low crash risk", "Good time for focused work")
    if score <= MEDIUM_RISK_MAX:
        return RiskInterpretation(
            "medium", "Moderate crash risk", "Consider a small caffeine boost or break"
        )
    return RiskInterpretation("high", "High crash risk", "Take a break or have some caffeine soon")


def generate_risk_curve(
    profile: UserProfile,
    intakes: Sequence[IntakeRecord],
    last_night_sleep_hours: float | None,
    start: datetime,
    hours_ahead: float = 6,
    interval_minutes: int = 30,
) -> list[RiskCurvePoint]:
    """Crash risk and caffeine level projected forward with no further intake."""
    start = ensure_aware(start)
    valid, _ = filter_valid_intakes(list(intakes), start)
    half_life = personalized_half_life(profile)

    steps = math.ceil(hours_ahead * 60 / interval_minutes)
    curve = []
    for i in range(steps + 1):
        at = start + timedelta(minutes=i * interval_minutes)
        result = calculate_crash_risk(profile, valid, last_night_sleep_hours, at)
        curve.append(
            RiskCurvePoint(
                time=at,
                risk_score=result.score,
                caffeine_level=current_level(valid, half_life, at),
            )
        )
    return curve


def next_caffeine_recommendation(
    profile: UserProfile,
    intakes: Sequence[IntakeRecord],
    last_night_sleep_hours: float | None,
    now: datetime,
) -> CaffeineRecommendation | None:
    """Suggest caffeine now if risk is already high, else an hour before it gets there."""
    now = ensure_aware(now)
    current = calculate_crash_risk(profile, intakes, last_night_sleep_hours, now)
    if current.score > HIGH_RISK_THRESHOLD:
        return CaffeineRecommendation(0.0, "High crash risk detected - caffeine recommended now")

    curve = generate_risk_curve(profile, intakes, last_night_sleep_hours, now, hours_ahead=8)
    for point in curve:
        if point.risk_score > HIGH_RISK_THRESHOLD:
            hours = (point.time - now).total_seconds() / 3600
            return CaffeineRecommendation(max(0.0, hours - 1), "Preparing for predicted crash risk")
    return None


def calculate_status(current_score: float, prev_score: float, current_text: str) -> StatusResult:
    """Human-readable status line from the score and its change since last time."""
    difference = current_score - prev_score

    if abs(difference) < _STATUS_EPSILON:
        return StatusResult(text=current_text, trend="stable")

    if current_score == 0:
        return StatusResult(text="No active caffeine detected", trend="stable")

    low = current_score < _STATUS_LOW_MAX
    high = current_score >= _STATUS_HIGH_MIN

    if difference > 0:
        if low:
            text = "Caffeine being absorbed"
        elif high:
            text = "Peak caffeine effect active"
        else:
            text = "Caffeine levels rising"
        return StatusResult(text=text, trend="rising")

    text = "Effects wearing off" if low else "Caffeine leaving your system"
    return StatusResult(text=text, trend="declining")


def widget_snapshot(
    user_id: str, result: ScoreResult, intakes: Sequence[IntakeRecord]
) -> dict[str, Any]:
    """Flat, JSON-safe payload for the widget bridge's shared store.

    Only drinks that pass the validation gate and have started by the
    result's instant can be reported as the last drink.
    """
    started = [
        i
        for i in intakes
        if not validate_intake_record(i, result.calculated_at)
        and i.timestamp <= result.calculated_at
    ]
    last = max(started, key=lambda i: i.timestamp, default=None)
    return {
        "caffScore": result.score,
        "currentCaffeineLevel": round(result.current_caffeine_level, 1),
        "lastDrinkTime": last.timestamp.isoformat() if last else None,
        "lastDrinkName": last.name if last else None,
        "lastUpdated": result.calculated_at.isoformat(),
        "userId": user_id,
    }

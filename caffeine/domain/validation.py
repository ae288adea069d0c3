"""Validation gate for intake records and profiles.

Intake rules run before the decay model. Records that fail any rule are
dropped silently (logged and counted, never raised): one bad drink must not
blank out the score for every other drink in the history.

validate_* functions return a list of ValidationError; empty list means valid.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import structlog

from caffeine.domain.models import IntakeRecord, UserProfile
from shared.config import settings
from shared.metrics import intake_validation_drops_total

logger = structlog.get_logger()


@dataclass
class ValidationError:
    field: str
    rule: str
    reason: str
    value: Any


MAX_CAFFEINE_MG = 1000.0
MAX_COMPLETION_PERCENTAGE = 100.0

_MIN_WEIGHT_KG = 30
_MAX_WEIGHT_KG = 300
_MIN_AGE = 13
_MAX_AGE = 120


def _in_range(value: Any, low: float, high: float) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and low <= value <= high
    )


def validate_intake_record(
    record: IntakeRecord,
    now: datetime,
    max_future: timedelta | None = None,
) -> list[ValidationError]:
    """Check one intake record against the gate rules.

    `now` must be timezone-aware. Timestamps further than `max_future`
    ahead of it are rejected; nearer future timestamps pass and simply
    contribute nothing until they start.
    """
    if max_future is None:
        max_future = timedelta(hours=settings.max_future_intake_hours)

    errors: list[ValidationError] = []

    # Rule 1: Declared caffeine content [0, 1000] mg
    if not _in_range(record.caffeine_mg, 0.0, MAX_CAFFEINE_MG):
        errors.append(
            ValidationError("caffeine_mg", "range", "caffeine_out_of_range", record.caffeine_mg)
        )

    # Rule 2: Consumed amount [0, 1000] mg
    if not _in_range(record.consumed_mg, 0.0, MAX_CAFFEINE_MG):
        errors.append(
            ValidationError("consumed_mg", "range", "consumed_out_of_range", record.consumed_mg)
        )

    # Rule 3: Completion [0, 100] %
    if not _in_range(record.completion_percentage, 0.0, MAX_COMPLETION_PERCENTAGE):
        errors.append(
            ValidationError(
                "completion_percentage",
                "range",
                "completion_out_of_range",
                record.completion_percentage,
            )
        )

    # Rule 4: Cannot consume more than the drink contains
    if (
        _in_range(record.caffeine_mg, 0.0, MAX_CAFFEINE_MG)
        and _in_range(record.consumed_mg, 0.0, MAX_CAFFEINE_MG)
        and record.consumed_mg > record.caffeine_mg
    ):
        errors.append(
            ValidationError(
                "consumed_mg",
                "consistency",
                "consumed_exceeds_content",
                {"consumed_mg": record.consumed_mg, "caffeine_mg": record.caffeine_mg},
            )
        )

    # Rule 5: Timestamp must be an absolute instant
    ts = record.timestamp
    if not isinstance(ts, datetime) or ts.tzinfo is None:
        errors.append(ValidationError("timestamp", "timezone", "missing_timezone", str(ts)))
    # Rule 6: No timestamps in the unbounded future
    elif ts - now > max_future:
        errors.append(ValidationError("timestamp", "no_future", "future_timestamp", ts.isoformat()))

    return errors


def filter_valid_intakes(
    intakes: list[IntakeRecord], now: datetime
) -> tuple[list[IntakeRecord], int]:
    """Drop intake records that fail the gate.

    Returns (valid records, number dropped).
    """
    valid: list[IntakeRecord] = []
    dropped = 0
    for record in intakes:
        errors = validate_intake_record(record, now)
        if errors:
            dropped += 1
            for e in errors:
                intake_validation_drops_total.labels(reason=e.reason).inc()
            logger.warning(
                "intake_dropped",
                intake_id=record.id,
                name=record.name,
                reasons=[e.reason for e in errors],
            )
            continue
        valid.append(record)
    return valid, dropped


def validate_profile(profile: UserProfile) -> list[ValidationError]:
    """Physiological plausibility checks on a profile.

    These are diagnostics for the caller; scoring still runs on the
    profile as given.
    """
    errors: list[ValidationError] = []

    if not _MIN_WEIGHT_KG <= profile.weight_kg <= _MAX_WEIGHT_KG:
        errors.append(
            ValidationError("weight_kg", "range", "weight_out_of_range", profile.weight_kg)
        )

    if not _MIN_AGE <= profile.age <= _MAX_AGE:
        errors.append(ValidationError("age", "range", "age_out_of_range", profile.age))

    if not profile.is_female and (profile.pregnant or profile.oral_contraceptives):
        errors.append(
            ValidationError(
                "sex",
                "consistency",
                "female_only_flag_set",
                {"pregnant": profile.pregnant, "oral_contraceptives": profile.oral_contraceptives},
            )
        )

    return errors

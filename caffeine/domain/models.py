"""Value objects consumed and produced by the scoring engine.

Design principles:
- Immutable: every model is frozen; a new computation supersedes a result,
  it never mutates one
- Lenient intake records: range checks live in the validation gate so that
  malformed records can be dropped instead of failing the whole request
- Stable serialization: ScoreResult.model_dump(mode="json") is the shape the
  presentation layer and the widget bridge read
"""

from datetime import UTC, date, datetime, timedelta
from enum import StrEnum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_TIME_TO_CONSUME = timedelta(minutes=15)


class BiologicalSex(StrEnum):
    MALE = "male"
    FEMALE = "female"


class SleepSource(StrEnum):
    MANUAL = "manual"
    WEARABLE = "wearable"
    HEALTH_APP = "health_app"


class ScoreKind(StrEnum):
    FOCUS = "focus"
    CRASH_RISK = "crash_risk"


class UserProfile(BaseModel):
    """Per-call snapshot of the physiological profile."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    weight_kg: float = Field(..., gt=0)
    age: float = Field(..., gt=0)
    sex: BiologicalSex
    smoker: bool = False
    # Only meaningful for sex == female
    pregnant: bool = False
    oral_contraceptives: bool = False

    # Rolling aggregates maintained by the persistence layer (0 = unknown)
    average_sleep_7_days: float = Field(0.0, ge=0, le=24)
    mean_daily_caffeine_mg: float = Field(0.0, ge=0)

    created_at: datetime

    @property
    def is_female(self) -> bool:
        return self.sex == BiologicalSex.FEMALE


def _parse_duration(value: Any) -> Any:
    """Accept HH:MM:SS strings, fall back to 15 minutes when malformed."""
    if isinstance(value, str) and value.count(":") == 2:
        try:
            hours, minutes, seconds = (int(part) for part in value.split(":"))
        except ValueError:
            return DEFAULT_TIME_TO_CONSUME
        return timedelta(hours=hours, minutes=minutes, seconds=seconds)
    if isinstance(value, str) and ":" in value:
        return DEFAULT_TIME_TO_CONSUME
    return value


class IntakeRecord(BaseModel):
    """A single logged drink.

    No range constraints here: the validation gate decides
    which records reach the decay model.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = ""
    caffeine_mg: float
    completion_percentage: float = 100.0
    consumed_mg: float | None = None
    timestamp: datetime
    time_to_consume: timedelta = DEFAULT_TIME_TO_CONSUME

    @field_validator("time_to_consume", mode="before")
    @classmethod
    def normalize_duration(cls, v: Any) -> Any:
        return _parse_duration(v)

    @model_validator(mode="after")
    def derive_consumed(self) -> "IntakeRecord":
        """consumed = declared content x completion / 100 unless given explicitly.

        Runs on coerced fields, so numeric strings derive like numbers.
        """
        if self.consumed_mg is None:
            # Frozen model
            object.__setattr__(
                self, "consumed_mg", self.caffeine_mg * self.completion_percentage / 100.0
            )
        return self

    @property
    def consumed(self) -> float:
        return self.consumed_mg if self.consumed_mg is not None else 0.0


class SleepSample(BaseModel):
    """One night's sleep as reported by the user or a device."""

    model_config = ConfigDict(frozen=True)

    date: date
    hours_slept: float = Field(..., ge=0, le=24)
    quality: float | None = Field(None, ge=0.0, le=1.0)
    source: SleepSource = SleepSource.MANUAL


class FocusFactors(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: float = Field(..., ge=0.0, le=1.0)
    rising_rate: float = Field(..., ge=0.0, le=1.0)
    tolerance: float = Field(..., ge=0.0, le=1.0)
    capacity: float = Field(..., ge=0.0, le=1.0)
    activity: float = Field(..., ge=0.0, le=1.0)


class CrashRiskFactors(BaseModel):
    model_config = ConfigDict(frozen=True)

    delta: float = Field(..., ge=0.0, le=1.0)
    sleep_debt: float = Field(..., ge=0.0, le=1.0)
    tolerance: float = Field(..., ge=0.0, le=1.0)
    metabolic: float = Field(..., ge=0.8, le=1.2)
    circadian: float = Field(..., ge=0.0, le=1.0)


class ScoreResult(BaseModel):
    """Outcome of one scoring pass at a single instant."""

    model_config = ConfigDict(frozen=True)

    kind: ScoreKind
    score: float = Field(..., ge=0.0, le=100.0)
    factors: FocusFactors | CrashRiskFactors
    personalized_half_life: float
    current_caffeine_level: float
    peak_caffeine_level: float
    valid_until: datetime
    calculated_at: datetime

    # Diagnostic breakdown
    intakes_considered: int = 0
    intakes_dropped: int = 0

    def is_valid_at(self, now: datetime) -> bool:
        """True inside [calculated_at, valid_until)."""
        return self.calculated_at <= now < self.valid_until


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_aware(moment: datetime) -> datetime:
    """Read naive datetimes as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment

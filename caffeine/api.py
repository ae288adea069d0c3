"""FastAPI router for the scoring engine.

Endpoints:
- POST   /api/v1/users/{user_id}/scores/focus
- POST   /api/v1/users/{user_id}/scores/crash-risk
- POST   /api/v1/users/{user_id}/scores/crash-risk/curve
- DELETE /api/v1/users/{user_id}/scores/cache
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any, Literal
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, Field

from caffeine.domain.models import (
    IntakeRecord,
    ScoreResult,
    SleepSample,
    UserProfile,
    ensure_aware,
    utc_now,
)
from caffeine.domain.validation import validate_profile
from caffeine.insights import (
    DEFAULT_STATUS_TEXT,
    StatusResult,
    calculate_status,
    generate_risk_curve,
    interpret_crash_risk,
    next_caffeine_recommendation,
    widget_snapshot,
)
from caffeine.service import ScoringService, recent_intakes
from caffeine.sleep import average_sleep, last_night_sleep, resolve_sleep_hours
from shared.config import settings
from shared.exceptions import InvalidCurveWindowError, ValidationError
from shared.middleware import request_id_var

router = APIRouter(prefix="/api/v1")

_service = ScoringService()


def get_scoring_service() -> ScoringService:
    return _service


# --- Request models ---


class ScoreRequest(BaseModel):
    """Inputs for one scoring call, as fetched by the caller from its own storage."""

    profile: UserProfile | None = None
    intakes: list[IntakeRecord] = Field(default_factory=list)
    last_night_sleep_hours: float | None = Field(None, ge=0, le=24)
    sleep_samples: list[SleepSample] = Field(
        default_factory=list,
        description="Used to resolve last night's sleep when last_night_sleep_hours is absent",
    )
    now: datetime | None = Field(None, description="Evaluation instant; defaults to server time")
    previous_score: float | None = Field(
        None, ge=0, le=100, description="Last CaffScore the caller stored, for the status trend"
    )
    status_text: str = Field(
        DEFAULT_STATUS_TEXT,
        description="Status line currently shown; kept when the score is unchanged",
    )


# --- Response helpers ---


def _meta(warnings: list[str] | None = None) -> dict[str, Any]:
    meta: dict[str, Any] = {
        "request_id": request_id_var.get(""),
        "timestamp": utc_now().isoformat(),
        "api_version": settings.api_version,
    }
    if warnings:
        meta["warnings"] = warnings
    return meta


def _resolve_now(body: ScoreRequest) -> datetime:
    """Evaluation instant in the configured local timezone (circadian factors read its hour)."""
    now = ensure_aware(body.now) if body.now is not None else utc_now()
    return now.astimezone(ZoneInfo(settings.timezone))


def _resolve_sleep(body: ScoreRequest, now: datetime) -> float:
    hours = body.last_night_sleep_hours
    if hours is None:
        hours = last_night_sleep(body.sleep_samples, now.date())
    return resolve_sleep_hours(hours, settings.default_sleep_hours)


def _resolve_profile(body: ScoreRequest, now: datetime) -> UserProfile | None:
    """Fill an unknown weekly sleep average from the supplied samples."""
    profile = body.profile
    if profile is None or profile.average_sleep_7_days > 0 or not body.sleep_samples:
        return profile
    average = average_sleep(body.sleep_samples, now.date())
    return profile.model_copy(update={"average_sleep_7_days": average})


def _profile_warnings(profile: UserProfile | None) -> list[str]:
    if profile is None:
        return ["profile_missing"]
    return [e.reason for e in validate_profile(profile)]


def _status(result: ScoreResult, body: ScoreRequest) -> StatusResult:
    """Trend against the caller's previous score; no previous score reads as unchanged."""
    previous = body.previous_score if body.previous_score is not None else result.score
    return calculate_status(result.score, previous, body.status_text)


def _result_payload(result: ScoreResult) -> dict[str, Any]:
    return result.model_dump(mode="json")


# --- Endpoints ---


@router.post("/users/{user_id}/scores/focus")
async def get_focus_score(
    user_id: str,
    body: ScoreRequest,
    service: ScoringService = Depends(get_scoring_service),
):
    """Compute (or return the cached) CaffScore for a user."""
    now = _resolve_now(body)
    result = service.focus_score(
        user_id, _resolve_profile(body, now), body.intakes, _resolve_sleep(body, now), now
    )
    return {
        "data": _result_payload(result),
        "widget": widget_snapshot(user_id, result, body.intakes),
        "status": asdict(_status(result, body)),
        "meta": _meta(_profile_warnings(body.profile)),
    }


@router.post("/users/{user_id}/scores/crash-risk")
async def get_crash_risk(
    user_id: str,
    body: ScoreRequest,
    service: ScoringService = Depends(get_scoring_service),
):
    """Compute (or return the cached) crash risk score for a user."""
    now = _resolve_now(body)
    result = service.crash_risk(
        user_id, _resolve_profile(body, now), body.intakes, _resolve_sleep(body, now), now
    )
    return {
        "data": _result_payload(result),
        "interpretation": asdict(interpret_crash_risk(result.score)),
        "meta": _meta(_profile_warnings(body.profile)),
    }


@router.post("/users/{user_id}/scores/crash-risk/curve")
async def get_crash_risk_curve(
    user_id: str,
    body: ScoreRequest,
    hours_ahead: float = Query(6, gt=0, le=24),
    interval_minutes: int = Query(30, ge=5, le=120),
    service: ScoringService = Depends(get_scoring_service),
):
    """Project crash risk forward assuming no further intake."""
    if interval_minutes > hours_ahead * 60:
        raise InvalidCurveWindowError(hours_ahead, interval_minutes)
    if body.profile is None:
        raise ValidationError(
            [
                {
                    "field": "profile",
                    "message": "A profile is required to project crash risk",
                    "constraint": "required",
                }
            ]
        )

    now = _resolve_now(body)
    profile = _resolve_profile(body, now)
    sleep_hours = _resolve_sleep(body, now)
    intakes = recent_intakes(body.intakes, now, service.intake_window)

    curve = generate_risk_curve(profile, intakes, sleep_hours, now, hours_ahead, interval_minutes)
    recommendation = next_caffeine_recommendation(profile, intakes, sleep_hours, now)

    return {
        "data": {
            "user_id": user_id,
            "points": [
                {
                    "time": p.time.isoformat(),
                    "risk_score": p.risk_score,
                    "caffeine_level": round(p.caffeine_level, 2),
                }
                for p in curve
            ],
            "recommendation": asdict(recommendation) if recommendation else None,
        },
        "meta": _meta(_profile_warnings(body.profile)),
    }


@router.delete("/users/{user_id}/scores/cache", status_code=204)
async def invalidate_scores(
    user_id: str,
    reason: Literal["intake", "sleep", "manual"] = Query("manual"),
    service: ScoringService = Depends(get_scoring_service),
):
    """Drop cached scores after the caller wrote new intake or sleep data."""
    if reason == "intake":
        service.record_intake(user_id)
    elif reason == "sleep":
        service.record_sleep(user_id)
    else:
        service.invalidate(user_id)
    return Response(status_code=204)

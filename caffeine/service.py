"""Cache-aware scoring service: the entry points callers use.

Callers fetch profile, intakes and sleep from their own storage, then hand
them to focus_score / crash_risk. Within the cache TTL a repeat call for
the same user returns the identical result object without recomputing.
Any write of intake or sleep data must be followed by invalidate().
"""

import time
from collections.abc import Sequence
from datetime import datetime, timedelta

import structlog

from caffeine.cache.memory import InMemoryScoreCacheStore
from caffeine.cache.score_cache import ScoreCache
from caffeine.domain.models import (
    IntakeRecord,
    ScoreKind,
    ScoreResult,
    UserProfile,
    ensure_aware,
    utc_now,
)
from caffeine.scoring import SCORERS
from shared.config import settings
from shared.metrics import score_computation_duration_seconds, score_computations_total

logger = structlog.get_logger()


def recent_intakes(
    intakes: Sequence[IntakeRecord], now: datetime, window: timedelta
) -> list[IntakeRecord]:
    """Keep intakes that started within `window` before `now` (or after it).

    Records without a usable timestamp are kept so the validation gate can
    count and report them.
    """
    cutoff = now - window
    kept = []
    for intake in intakes:
        ts = intake.timestamp
        if ts.tzinfo is None or ts >= cutoff:
            kept.append(intake)
    return kept


class ScoringService:
    def __init__(
        self,
        cache: ScoreCache | None = None,
        cache_ttl_seconds: float | None = None,
        intake_window_hours: float | None = None,
    ):
        self.cache = cache or ScoreCache(InMemoryScoreCacheStore())
        self.cache_ttl = timedelta(
            seconds=cache_ttl_seconds
            if cache_ttl_seconds is not None
            else settings.cache_ttl_seconds
        )
        self.intake_window = timedelta(
            hours=intake_window_hours
            if intake_window_hours is not None
            else settings.intake_window_hours
        )

    def _score(
        self,
        kind: ScoreKind,
        user_id: str,
        profile: UserProfile | None,
        intakes: Sequence[IntakeRecord],
        last_night_sleep_hours: float | None,
        now: datetime | None,
    ) -> ScoreResult:
        now = ensure_aware(now) if now is not None else utc_now()
        scorer = SCORERS[kind]

        def compute() -> ScoreResult:
            start_time = time.monotonic()
            window = recent_intakes(intakes, now, self.intake_window)
            result = scorer(profile, window, last_night_sleep_hours, now, self.cache_ttl)
            score_computations_total.labels(kind=kind.value).inc()
            score_computation_duration_seconds.labels(kind=kind.value).observe(
                time.monotonic() - start_time
            )
            if profile is None:
                logger.info("score_without_profile", user_id=user_id, kind=kind.value)
            logger.debug(
                "score_computed",
                user_id=user_id,
                kind=kind.value,
                score=result.score,
                current_mg=round(result.current_caffeine_level, 1),
                intakes_considered=result.intakes_considered,
                intakes_dropped=result.intakes_dropped,
            )
            return result

        return self.cache.get_or_compute(user_id, kind, now, compute)

    def focus_score(
        self,
        user_id: str,
        profile: UserProfile | None,
        intakes: Sequence[IntakeRecord],
        last_night_sleep_hours: float | None = None,
        now: datetime | None = None,
    ) -> ScoreResult:
        return self._score(
            ScoreKind.FOCUS, user_id, profile, intakes, last_night_sleep_hours, now
        )

    def crash_risk(
        self,
        user_id: str,
        profile: UserProfile | None,
        intakes: Sequence[IntakeRecord],
        last_night_sleep_hours: float | None = None,
        now: datetime | None = None,
    ) -> ScoreResult:
        return self._score(
            ScoreKind.CRASH_RISK, user_id, profile, intakes, last_night_sleep_hours, now
        )

    def invalidate(self, user_id: str) -> None:
        self.cache.invalidate(user_id)

    def record_intake(self, user_id: str) -> None:
        """Notify the service that an intake was written for this user."""
        logger.info("intake_recorded", user_id=user_id)
        self.invalidate(user_id)

    def record_sleep(self, user_id: str) -> None:
        """Notify the service that a sleep sample was written for this user."""
        logger.info("sleep_recorded", user_id=user_id)
        self.invalidate(user_id)

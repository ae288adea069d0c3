"""Short-lived memoization of score results, keyed by user.

Read-check-write happens under a per-user lock so two callers scoring the
same user cannot interleave a stale write; different users never contend.

Store failures are treated as cache misses: a broken store costs a
recomputation, never a failed request. A failed clear is remembered in
process, so a store that fails to clear cannot serve a pre-write result.
Per-user locks are weakly held and vanish once no caller is using them.
"""

import threading
import weakref
from collections.abc import Callable
from datetime import datetime

import structlog

from caffeine.cache.protocol import ScoreCacheStore
from caffeine.domain.models import ScoreKind, ScoreResult
from shared.metrics import score_cache_events_total

logger = structlog.get_logger()


class ScoreCache:
    def __init__(self, store: ScoreCacheStore):
        self.store = store
        # Locks live only while a caller holds them, so idle users cost nothing
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()
        # (user_id, kind) pairs whose store clear failed; recomputed before the store is trusted
        self._stale: set[tuple[str, ScoreKind]] = set()

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = self._locks[user_id] = threading.Lock()
            return lock

    def _read(self, user_id: str, kind: ScoreKind) -> ScoreResult | None:
        if (user_id, kind) in self._stale:
            return None
        try:
            return self.store.get(user_id, kind)
        except Exception:
            logger.exception("score_cache_read_failed", user_id=user_id, kind=kind.value)
            score_cache_events_total.labels(kind=kind.value, outcome="error").inc()
            return None

    def _write(self, user_id: str, kind: ScoreKind, result: ScoreResult) -> None:
        try:
            self.store.set(user_id, kind, result)
        except Exception:
            logger.exception("score_cache_write_failed", user_id=user_id, kind=kind.value)
            score_cache_events_total.labels(kind=kind.value, outcome="error").inc()
            return
        self._stale.discard((user_id, kind))

    def get_or_compute(
        self,
        user_id: str,
        kind: ScoreKind,
        now: datetime,
        compute: Callable[[], ScoreResult],
    ) -> ScoreResult:
        """Return the cached result while it is valid at `now`, else recompute and store."""
        with self._lock_for(user_id):
            cached = self._read(user_id, kind)
            if cached is not None and cached.is_valid_at(now):
                score_cache_events_total.labels(kind=kind.value, outcome="hit").inc()
                return cached

            score_cache_events_total.labels(kind=kind.value, outcome="miss").inc()
            result = compute()
            self._write(user_id, kind, result)
            return result

    def invalidate(self, user_id: str) -> None:
        """Forget every cached score for this user. Call after any intake or sleep write."""
        with self._lock_for(user_id):
            try:
                self.store.clear(user_id)
            except Exception:
                logger.exception("score_cache_clear_failed", user_id=user_id)
                for kind in ScoreKind:
                    self._stale.add((user_id, kind))
                return
        logger.debug("score_cache_invalidated", user_id=user_id)

"""In-process result store.

Expired results are pruned on every write, so the store holds at most one
entry per user and kind that is still inside its validity window.
"""

import threading

from caffeine.domain.models import ScoreKind, ScoreResult


class InMemoryScoreCacheStore:
    def __init__(self) -> None:
        self._entries: dict[tuple[str, ScoreKind], ScoreResult] = {}
        self._guard = threading.Lock()

    def get(self, user_id: str, kind: ScoreKind) -> ScoreResult | None:
        with self._guard:
            return self._entries.get((user_id, kind))

    def set(self, user_id: str, kind: ScoreKind, result: ScoreResult) -> None:
        with self._guard:
            self._prune(result.calculated_at)
            self._entries[(user_id, kind)] = result

    def clear(self, user_id: str) -> None:
        with self._guard:
            for key in [k for k in self._entries if k[0] == user_id]:
                del self._entries[key]

    def _prune(self, now) -> None:
        expired = [key for key, entry in self._entries.items() if entry.valid_until <= now]
        for key in expired:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)

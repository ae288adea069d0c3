"""Store protocol for cached score results.

Any key-value backend (in-process dict, Redis, device storage bridge) can
back the result cache as long as it implements this interface.
The cache layer depends only on the protocol, never on a concrete store.
"""

from typing import Protocol, runtime_checkable

from caffeine.domain.models import ScoreKind, ScoreResult


@runtime_checkable
class ScoreCacheStore(Protocol):
    """Common interface for result cache stores."""

    def get(self, user_id: str, kind: ScoreKind) -> ScoreResult | None:
        """Return the stored result for this user and score kind, if any."""
        ...

    def set(self, user_id: str, kind: ScoreKind, result: ScoreResult) -> None:
        """Store (replace) the result for this user and score kind."""
        ...

    def clear(self, user_id: str) -> None:
        """Drop every stored result for this user."""
        ...

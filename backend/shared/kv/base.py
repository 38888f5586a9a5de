"""Abstract interface for the shared key-value service.

The game keeps all cross-request state (run records, share tokens, ranked
sets, user best scores) in one remote key-value service. The interface is the
small subset of Redis semantics the game relies on: plain string values with
optional expiry, an atomic counter, and score-ordered sets. There are no
multi-key transactions; callers are written to tolerate interleaving.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

type ScoredMember = tuple[str, float]


class StoreUnavailableError(Exception):
    """The key-value service could not be reached or rejected the command.

    Callers treat this as a degraded (non-fatal) condition: the feature that
    needed the store falls back to a stateless answer instead of failing.
    """

    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        self.detail = detail
        message = f"key-value store unavailable during {operation}"
        super().__init__(f"{message}: {detail}" if detail else message)


class KeyValueStore(ABC):
    """Abstract interface for the key-value service.

    Implementations: RedisKeyValueStore (production), InMemoryKeyValueStore
    (tests and single-process local play).
    """

    @abstractmethod
    async def get(self, key: str) -> str | None: ...

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None: ...

    @abstractmethod
    async def incr(self, key: str) -> int: ...

    @abstractmethod
    async def expire(self, key: str, ttl_seconds: int) -> None: ...

    @abstractmethod
    async def zadd(self, key: str, member: str, score: float) -> None: ...

    @abstractmethod
    async def zscore(self, key: str, member: str) -> float | None: ...

    @abstractmethod
    async def zrevrank(self, key: str, member: str) -> int | None:
        """0-based position of member when ordered by score descending, or None."""

    @abstractmethod
    async def zrevrange(self, key: str, start: int, stop: int) -> list[ScoredMember]:
        """Members by score descending, positions start..stop inclusive (stop=-1 for the end)."""

    @abstractmethod
    async def zrevrangebyscore(
        self,
        key: str,
        max_score: float,
        min_score: float,
        count: int | None = None,
    ) -> list[ScoredMember]:
        """Members with min_score <= score <= max_score, score descending, at most count."""

    @abstractmethod
    async def ping(self) -> None: ...

    async def close(self) -> None:  # noqa: B027
        """Release connections. No-op for backends that hold none."""

"""Redis-backed key-value store (redis.asyncio)."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from shared.kv.base import KeyValueStore, ScoredMember, StoreUnavailableError

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = structlog.get_logger()

# Transport-level timeouts; the game never waits longer than this on the store.
_SOCKET_TIMEOUT_SECONDS = 2.0
_CONNECT_TIMEOUT_SECONDS = 2.0


@contextlib.contextmanager
def _unavailable_on_error(operation: str) -> Iterator[None]:
    """Translate client/transport failures into StoreUnavailableError."""
    try:
        yield
    except (RedisError, OSError) as e:
        logger.warning("key-value store command failed", operation=operation, error=str(e))
        raise StoreUnavailableError(operation, str(e)) from e


class RedisKeyValueStore(KeyValueStore):
    """KeyValueStore over a single Redis connection pool.

    No retries: a failed command surfaces immediately as StoreUnavailableError
    so request latency stays bounded by the socket timeout.
    """

    def __init__(self, client: Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisKeyValueStore:
        client = Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=_SOCKET_TIMEOUT_SECONDS,
            socket_connect_timeout=_CONNECT_TIMEOUT_SECONDS,
        )
        return cls(client)

    async def get(self, key: str) -> str | None:
        with _unavailable_on_error("get"):
            return await self._client.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        with _unavailable_on_error("set"):
            await self._client.set(key, value, ex=ttl_seconds)

    async def incr(self, key: str) -> int:
        with _unavailable_on_error("incr"):
            return int(await self._client.incr(key))

    async def expire(self, key: str, ttl_seconds: int) -> None:
        with _unavailable_on_error("expire"):
            await self._client.expire(key, ttl_seconds)

    async def zadd(self, key: str, member: str, score: float) -> None:
        with _unavailable_on_error("zadd"):
            await self._client.zadd(key, {member: score})

    async def zscore(self, key: str, member: str) -> float | None:
        with _unavailable_on_error("zscore"):
            score = await self._client.zscore(key, member)
        return float(score) if score is not None else None

    async def zrevrank(self, key: str, member: str) -> int | None:
        with _unavailable_on_error("zrevrank"):
            rank = await self._client.zrevrank(key, member)
        return int(rank) if rank is not None else None

    async def zrevrange(self, key: str, start: int, stop: int) -> list[ScoredMember]:
        with _unavailable_on_error("zrevrange"):
            rows = await self._client.zrevrange(key, start, stop, withscores=True)
        return [(str(member), float(score)) for member, score in rows]

    async def zrevrangebyscore(
        self,
        key: str,
        max_score: float,
        min_score: float,
        count: int | None = None,
    ) -> list[ScoredMember]:
        with _unavailable_on_error("zrevrangebyscore"):
            if count is None:
                rows = await self._client.zrevrangebyscore(key, max_score, min_score, withscores=True)
            else:
                rows = await self._client.zrevrangebyscore(
                    key,
                    max_score,
                    min_score,
                    start=0,
                    num=count,
                    withscores=True,
                )
        return [(str(member), float(score)) for member, score in rows]

    async def ping(self) -> None:
        with _unavailable_on_error("ping"):
            await self._client.ping()

    async def close(self) -> None:
        with contextlib.suppress(RedisError, OSError):
            await self._client.aclose()

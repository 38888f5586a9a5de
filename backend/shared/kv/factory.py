"""Select the key-value backend from configuration."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from shared.kv.memory import InMemoryKeyValueStore
from shared.kv.redis_store import RedisKeyValueStore

if TYPE_CHECKING:
    from shared.kv.base import KeyValueStore

logger = structlog.get_logger()


class StoreBackend(StrEnum):
    MEMORY = "memory"
    REDIS = "redis"


def create_store(backend: StoreBackend, redis_url: str | None = None) -> KeyValueStore:
    """Build the configured store. Redis requires redis_url."""
    if backend == StoreBackend.REDIS:
        if not redis_url:
            raise ValueError("redis_url is required for the redis store backend")
        logger.info("using redis key-value store")
        return RedisKeyValueStore.from_url(redis_url)
    logger.warning("using in-process key-value store, state is lost on restart")
    return InMemoryKeyValueStore()

import pytest

from shared.kv import InMemoryKeyValueStore, StoreBackend, create_store
from shared.kv.redis_store import RedisKeyValueStore


def test_memory_backend():
    assert isinstance(create_store(StoreBackend.MEMORY), InMemoryKeyValueStore)


def test_redis_backend():
    assert isinstance(create_store(StoreBackend.REDIS, "redis://localhost:6379/0"), RedisKeyValueStore)


def test_redis_backend_requires_url():
    with pytest.raises(ValueError, match="redis_url"):
        create_store(StoreBackend.REDIS)

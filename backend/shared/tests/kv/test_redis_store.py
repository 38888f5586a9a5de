import logging
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from shared.kv import StoreUnavailableError
from shared.kv.redis_store import RedisKeyValueStore


@pytest.fixture
def client():
    return AsyncMock()


@pytest.fixture
def store(client):
    return RedisKeyValueStore(client)


class TestCommands:
    async def test_set_passes_ttl(self, store, client):
        await store.set("k", "v", ttl_seconds=30)
        client.set.assert_awaited_once_with("k", "v", ex=30)

    async def test_zadd_uses_mapping(self, store, client):
        await store.zadd("board", "a", 5.0)
        client.zadd.assert_awaited_once_with("board", {"a": 5.0})

    async def test_zscore_converts_to_float(self, store, client):
        client.zscore.return_value = "12"
        assert await store.zscore("board", "a") == 12.0

    async def test_missing_member(self, store, client):
        client.zscore.return_value = None
        client.zrevrank.return_value = None
        assert await store.zscore("board", "a") is None
        assert await store.zrevrank("board", "a") is None

    async def test_zrevrange_with_scores(self, store, client):
        client.zrevrange.return_value = [("b", 7), ("a", 5)]
        assert await store.zrevrange("board", 0, -1) == [("b", 7.0), ("a", 5.0)]
        client.zrevrange.assert_awaited_once_with("board", 0, -1, withscores=True)

    async def test_zrevrangebyscore_with_count(self, store, client):
        client.zrevrangebyscore.return_value = [("a", 5)]
        await store.zrevrangebyscore("board", 10, 2, count=3)
        client.zrevrangebyscore.assert_awaited_once_with("board", 10, 2, start=0, num=3, withscores=True)

    async def test_zrevrangebyscore_without_count(self, store, client):
        client.zrevrangebyscore.return_value = []
        await store.zrevrangebyscore("board", 10, 2)
        client.zrevrangebyscore.assert_awaited_once_with("board", 10, 2, withscores=True)

    async def test_incr(self, store, client):
        client.incr.return_value = 4
        assert await store.incr("seq") == 4


class TestErrors:
    @pytest.mark.parametrize("error", [RedisConnectionError("refused"), ResponseError("WRONGTYPE"), TimeoutError()])
    async def test_failures_become_unavailable(self, store, client, error, caplog):
        client.get.side_effect = error

        with caplog.at_level(logging.WARNING), pytest.raises(StoreUnavailableError) as exc_info:
            await store.get("k")

        assert exc_info.value.operation == "get"
        assert "key-value store command failed" in caplog.text

    async def test_ping_failure(self, store, client):
        client.ping.side_effect = RedisConnectionError("refused")
        with pytest.raises(StoreUnavailableError, match="during ping"):
            await store.ping()

    async def test_close_ignores_errors(self, store, client):
        client.aclose.side_effect = RedisConnectionError("gone")
        await store.close()
        client.aclose.assert_awaited_once()


def test_from_url_does_not_connect():
    store = RedisKeyValueStore.from_url("redis://localhost:6390/0")
    assert isinstance(store, RedisKeyValueStore)

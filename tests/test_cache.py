"""Tests for the cache gateway — deadlines, degradation, health."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from fakeredis import FakeServer, aioredis
from redis.exceptions import ConnectionError as RedisConnectionError

from app.core.cache import CacheGateway, coupon_cache_key

from tests.fakes import HangingRedis, SlowRedis


def _broken_client():
    client = AsyncMock()
    client.ping.side_effect = RedisConnectionError("connection refused")
    client.get.side_effect = RedisConnectionError("connection refused")
    client.set.side_effect = RedisConnectionError("connection refused")
    return client


@pytest.fixture
async def gateway():
    gw = CacheGateway(aioredis.FakeRedis(server=FakeServer()), timeout_ms=200)
    await gw.connect()
    return gw


def test_coupon_cache_key_format():
    assert coupon_cache_key("SUMMER10") == "affiliate:link:SUMMER10"


class TestHealthyCache:
    async def test_connect_marks_healthy(self, gateway):
        assert gateway.healthy is True

    async def test_get_miss_returns_none(self, gateway):
        assert await gateway.get("affiliate:link:NOPE") is None

    async def test_set_then_get(self, gateway):
        assert await gateway.set("affiliate:link:A", '{"x": 1}', ttl=1800) is True
        # fakeredis returns bytes; gateway hands back text
        assert await gateway.get("affiliate:link:A") == '{"x": 1}'

    async def test_set_applies_ttl(self):
        client = aioredis.FakeRedis(server=FakeServer())
        gw = CacheGateway(client, timeout_ms=200)
        await gw.connect()
        await gw.set("affiliate:link:A", "v", ttl=1800)
        ttl = await client.ttl("affiliate:link:A")
        assert 0 < ttl <= 1800


class TestTimeouts:
    async def test_slow_get_is_a_miss(self):
        gw = CacheGateway(SlowRedis(), timeout_ms=20)
        await gw.connect()
        assert await gw.get("affiliate:link:A") is None

    async def test_slow_set_is_a_failure(self):
        gw = CacheGateway(SlowRedis(), timeout_ms=20)
        await gw.connect()
        assert await gw.set("affiliate:link:A", "v", ttl=10) is False

    async def test_timeout_does_not_mark_unhealthy(self):
        gw = CacheGateway(SlowRedis(), timeout_ms=20)
        await gw.connect()
        await gw.get("affiliate:link:A")
        assert gw.healthy is True


class TestTransportErrors:
    async def test_connect_failure_marks_unhealthy(self):
        gw = CacheGateway(_broken_client(), timeout_ms=50)
        assert await gw.connect() is False
        assert gw.healthy is False

    async def test_get_error_is_a_miss(self):
        gw = CacheGateway(_broken_client(), timeout_ms=50, retry_seconds=0)
        assert await gw.get("affiliate:link:A") is None

    async def test_set_error_is_a_failure(self):
        gw = CacheGateway(_broken_client(), timeout_ms=50, retry_seconds=0)
        assert await gw.set("affiliate:link:A", "v", ttl=10) is False

    async def test_unhealthy_cache_short_circuits(self):
        client = _broken_client()
        gw = CacheGateway(client, timeout_ms=50, retry_seconds=60)
        await gw.connect()

        assert await gw.get("affiliate:link:A") is None
        assert await gw.set("affiliate:link:A", "v", ttl=10) is False
        client.get.assert_not_awaited()
        client.set.assert_not_awaited()

    async def test_retry_after_backoff_recovers(self):
        client = _broken_client()
        gw = CacheGateway(client, timeout_ms=50, retry_seconds=0)
        await gw.connect()
        assert gw.healthy is False

        client.get.side_effect = None
        client.get.return_value = b"back"
        assert await gw.get("affiliate:link:A") == "back"
        assert gw.healthy is True

    async def test_no_client_is_always_a_miss(self):
        gw = CacheGateway(None)
        assert await gw.connect() is False
        assert await gw.get("k") is None
        assert await gw.set("k", "v", ttl=1) is False
        assert gw.healthy is False


class TestBlackholedCache:
    async def test_timed_out_retry_rearms_backoff(self):
        client = HangingRedis()
        gw = CacheGateway(client, timeout_ms=20, retry_seconds=0.05)
        assert await gw.connect() is False
        assert client.calls == 1

        await asyncio.sleep(0.06)
        for _ in range(5):
            assert await gw.get("affiliate:link:A") is None

        # One trial call after the back-off; the rest short-circuit
        assert client.calls == 2
        assert gw.healthy is False

    async def test_next_retry_after_another_backoff(self):
        client = HangingRedis()
        gw = CacheGateway(client, timeout_ms=20, retry_seconds=0.05)
        await gw.connect()

        await asyncio.sleep(0.06)
        await gw.get("affiliate:link:A")
        assert await gw.set("affiliate:link:A", "v", ttl=10) is False
        assert client.calls == 2

        await asyncio.sleep(0.06)
        await gw.set("affiliate:link:A", "v", ttl=10)
        assert client.calls == 3

    async def test_concurrent_callers_admit_one_retry(self):
        client = HangingRedis()
        gw = CacheGateway(client, timeout_ms=20, retry_seconds=60)
        await gw.connect()
        gw._retry_at = 0.0  # back-off already elapsed

        results = await asyncio.gather(*(gw.get("affiliate:link:A") for _ in range(10)))

        assert results == [None] * 10
        assert client.calls == 2  # startup ping + one trial call

"""
Cache gateway — bounded-latency Redis reads/writes for coupon snapshots.

Rules:
  - Every call runs under one deadline (cache_timeout_ms). Over budget = miss.
  - Transport errors never escape: get → None, set → False.
  - Unhealthy cache short-circuits without I/O until the retry back-off
    elapses, then one trial call per window goes through.
"""

import asyncio
import time

import structlog
from fastapi import Request
from redis.exceptions import RedisError

from app.config import get_settings

logger = structlog.get_logger()

_TRANSPORT_ERRORS = (RedisError, OSError)


def coupon_cache_key(coupon: str) -> str:
    return f"{get_settings().coupon_cache_prefix}{coupon}"


class CacheGateway:
    def __init__(self, client, timeout_ms: int = 1000, retry_seconds: float = 5.0):
        self._client = client
        self._timeout = timeout_ms / 1000
        self._retry_seconds = retry_seconds
        self._healthy = False
        self._retry_at = 0.0

    @property
    def healthy(self) -> bool:
        return self._client is not None and self._healthy

    def _should_attempt(self) -> bool:
        if self._client is None:
            return False
        if self._healthy:
            return True
        now = time.monotonic()
        if now < self._retry_at:
            return False
        # One trial call per back-off window; the rest keep short-circuiting
        self._retry_at = now + self._retry_seconds
        return True

    def _mark_down(self, op: str, key: str | None, error: str):
        self._healthy = False
        self._retry_at = time.monotonic() + self._retry_seconds
        logger.warning("cache_unavailable", op=op, key=key, error=error)

    async def connect(self) -> bool:
        """Ping once under the deadline and record the result."""
        if self._client is None:
            return False
        try:
            async with asyncio.timeout(self._timeout):
                await self._client.ping()
        except TimeoutError:
            self._mark_down("ping", None, "timeout")
            return False
        except _TRANSPORT_ERRORS as e:
            self._mark_down("ping", None, str(e))
            return False
        self._healthy = True
        logger.info("cache_connected")
        return True

    async def get(self, key: str) -> str | None:
        if not self._should_attempt():
            return None
        try:
            async with asyncio.timeout(self._timeout):
                value = await self._client.get(key)
        except TimeoutError:
            # Healthy and slow: a miss, not an outage. A timed-out trial call
            # waits out the window armed when it was admitted.
            logger.warning("cache_get_timeout", key=key, healthy=self._healthy,
                           timeout_ms=int(self._timeout * 1000))
            return None
        except _TRANSPORT_ERRORS as e:
            self._mark_down("get", key, str(e))
            return None

        self._healthy = True
        if value is None:
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        return value

    async def set(self, key: str, value: str, ttl: int) -> bool:
        if not self._should_attempt():
            return False
        try:
            async with asyncio.timeout(self._timeout):
                await self._client.set(key, value, ex=ttl)
        except TimeoutError:
            logger.warning("cache_set_timeout", key=key, healthy=self._healthy,
                           timeout_ms=int(self._timeout * 1000))
            return False
        except _TRANSPORT_ERRORS as e:
            self._mark_down("set", key, str(e))
            return False

        self._healthy = True
        return True

    async def aclose(self):
        if self._client is None:
            return
        try:
            await self._client.aclose()
        except _TRANSPORT_ERRORS as e:
            logger.warning("cache_close_failed", error=str(e))
        self._healthy = False


def get_cache(request: Request) -> CacheGateway:
    """FastAPI dependency — the gateway built at startup."""
    return request.app.state.cache

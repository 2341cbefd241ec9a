"""
Coupon resolver — cache first, database on miss, write-back on hit.

    resolve(coupon)
      1. empty coupon          → None (no I/O)
      2. cache hit             → snapshot (repository untouched)
      3. cache miss / timeout  → repository lookup against "now"
      4. repository hit        → write snapshot back (TTL), failures logged only

A missing coupon and an expired campaign both come back as None.
"""

from datetime import datetime, timezone
from typing import Callable

import structlog
from fastapi import Depends
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.cache import CacheGateway, coupon_cache_key, get_cache
from app.core.links import LinkRepository, ResolvedLink
from app.models.database import get_db

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CouponResolver:
    def __init__(
        self,
        cache: CacheGateway,
        repository: LinkRepository,
        ttl_seconds: int = 1800,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._cache = cache
        self._repository = repository
        self._ttl = ttl_seconds
        self._clock = clock

    async def resolve(self, coupon: str | None) -> ResolvedLink | None:
        if not coupon or not coupon.strip():
            return None

        key = coupon_cache_key(coupon)

        cached = await self._cache.get(key)
        if cached is not None:
            try:
                link = ResolvedLink.model_validate_json(cached)
            except ValidationError as e:
                logger.warning("coupon_cache_malformed", key=key, errors=e.error_count())
            else:
                logger.debug("coupon_cache_hit", coupon=coupon)
                return link

        link = await self._repository.find_active_by_coupon(coupon, self._clock())
        if link is None:
            return None

        # Awaited, not detached, so the next resolve is a hit. Bounded by the
        # same deadline, and free when the cache is down (short-circuit).
        stored = await self._cache.set(key, link.model_dump_json(), self._ttl)
        if not stored:
            logger.warning("coupon_cache_write_skipped", key=key)

        return link


def get_resolver(
    cache: CacheGateway = Depends(get_cache),
    db: AsyncSession = Depends(get_db),
) -> CouponResolver:
    """FastAPI dependency — one resolver per request, over the request's session."""
    return CouponResolver(
        cache=cache,
        repository=LinkRepository(db),
        ttl_seconds=get_settings().coupon_cache_ttl_seconds,
    )

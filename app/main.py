"""
Promolink — affiliate coupon redirects.
Main application entry point.
"""

from contextlib import asynccontextmanager

import redis.asyncio as redis
from fastapi import FastAPI, Request

from app.api.promotion import router as promotion_router
from app.core.cache import CacheGateway
from app.core.tracking import TrackingSink
from app.middleware.errors import register_error_handlers
from app.middleware.security import SecurityHeadersMiddleware
from app.models.database import dispose_engine, get_session_maker
from app.config import get_settings

import structlog

VERSION = "0.1.0"

_renderers = (
    [structlog.dev.ConsoleRenderer()] if get_settings().debug
    else [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
)

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        *_renderers,
    ],
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    cache = CacheGateway(
        redis.from_url(settings.redis_url),
        timeout_ms=settings.cache_timeout_ms,
        retry_seconds=settings.cache_retry_seconds,
    )
    await cache.connect()
    app.state.cache = cache
    app.state.tracking = TrackingSink(get_session_maker())

    logger.info("promolink_starting", cache_healthy=cache.healthy)
    yield
    logger.info("promolink_shutting_down", pending_clicks=app.state.tracking.pending)

    await app.state.tracking.drain(settings.tracking_drain_timeout_seconds)
    await cache.aclose()
    await dispose_engine()


app = FastAPI(
    title="Promolink",
    description="Affiliate coupon redirects with click tracking.",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs" if get_settings().debug else None,
    redoc_url="/redoc" if get_settings().debug else None,
    openapi_url="/openapi.json" if get_settings().debug else None,
)

# Security headers on every response
app.add_middleware(SecurityHeadersMiddleware)
register_error_handlers(app)

# --- Routes ---
app.include_router(promotion_router)


@app.get("/health")
async def health(request: Request):
    cache = getattr(request.app.state, "cache", None)
    return {
        "status": "ok",
        "service": "promolink",
        "version": VERSION,
        "cache": "up" if cache is not None and cache.healthy else "down",
    }

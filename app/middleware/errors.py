"""
Error payloads — every failure that reaches the client looks like:

    {"message": "...", "statusCode": 500}

Only database failures and unexpected exceptions get here; cache and
tracking errors are absorbed where they happen. Exception detail is only
exposed in debug mode.
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import get_settings

import structlog

logger = structlog.get_logger()


def error_payload(status_code: int, message: str) -> dict:
    return {"message": message, "statusCode": status_code}


def _internal_message(exc: Exception) -> str:
    if get_settings().debug:
        return f"{type(exc).__name__}: {exc}"
    return "Internal server error"


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(exc.status_code, message),
        headers=getattr(exc, "headers", None),
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error("database_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content=error_payload(500, _internal_message(exc)))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", path=request.url.path)
    # Runs outside SecurityHeadersMiddleware, so set no-store here
    return JSONResponse(
        status_code=500,
        content=error_payload(500, _internal_message(exc)),
        headers={"Cache-Control": "no-store, no-cache, must-revalidate, private"},
    )


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

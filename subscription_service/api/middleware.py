"""
Request logging, panic recovery and error-body handlers.

Every error leaves the service as ``{"error": "<message>"}``; internal
details are logged and never returned.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from subscription_service.core.exceptions import PersistenceError, SubscriptionNotFoundError

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("subscription_service.access")


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One access-log line per request: time | remote_ip | method | uri | status | latency."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        remote_ip = request.client.host if request.client else "-"
        uri = request.url.path
        if request.url.query:
            uri = f"{uri}?{request.url.query}"
        access_logger.info(
            "%s | %s | %s | %s | %d | %.1fms",
            datetime.now(timezone.utc).isoformat(timespec="seconds"),
            remote_ip,
            request.method,
            uri,
            response.status_code,
            elapsed_ms,
        )
        return response


class RecoveryMiddleware(BaseHTTPMiddleware):
    """Turn any unhandled exception into a 500 instead of dropping the connection."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception:
            logger.exception("unhandled error on %s %s", request.method, request.url.path)
            return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal server error")


async def not_found_handler(request: Request, exc: SubscriptionNotFoundError) -> JSONResponse:
    logger.warning(
        "%s %s -> not found (id=%s, reason=%s)",
        request.method,
        request.url.path,
        exc.subscription_id,
        exc.reason,
    )
    return error_response(status.HTTP_404_NOT_FOUND, "subscription not found")


async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    logger.error("%s %s -> %s failed", request.method, request.url.path, exc.operation)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.public_message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    logger.error("failed to bind request %s %s: %s", request.method, request.url.path, errors)
    if any((err.get("loc") or ("",))[0] == "body" for err in errors):
        return error_response(status.HTTP_400_BAD_REQUEST, "invalid request body")
    return error_response(status.HTTP_400_BAD_REQUEST, "invalid query parameters")


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
    if exc.status_code in (status.HTTP_204_NO_CONTENT, status.HTTP_304_NOT_MODIFIED):
        return Response(status_code=exc.status_code, headers=getattr(exc, "headers", None))
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


def register_error_handling(app: FastAPI) -> None:
    app.add_exception_handler(SubscriptionNotFoundError, not_found_handler)
    app.add_exception_handler(PersistenceError, persistence_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    # Added last so it wraps everything, recovery included.
    app.add_middleware(RecoveryMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

"""
Request logging and error envelopes for the Watchlist Screening API

Every error leaves the API as {"error": {code, message, field?, suggestion?, timestamp}}.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from watchlist.exceptions import (
    ConfigurationError,
    IndexBuildError,
    IndexClosedError,
    InvalidRequestError,
    ParseError,
    WatchlistError,
)
from watchlist.log_utils import sanitize_for_logging

logger = logging.getLogger(__name__)

_UNEXPECTED = "An unexpected error occurred. Please try again later."

# First match wins: IndexClosedError must precede its parent IndexBuildError
_ENGINE_ERRORS: Tuple[Tuple[type, int, str, Optional[str]], ...] = (
    (ParseError, 422, "INVALID_RECORD", None),
    (IndexClosedError, 503, "INDEX_UNAVAILABLE", "Watchlist index is not available."),
    (IndexBuildError, 409, "INDEX_CONFLICT", None),
    (ConfigurationError, 503, "CONFIGURATION_ERROR", "Service configuration is invalid."),
)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with X-Request-ID and X-Processing-Time-MS and logs it."""

    async def dispatch(self, request: Request, call_next: Callable):
        start_time = time.time()
        request_id = request.headers.get("X-Request-ID") or str(time.time_ns())
        request.state.request_id = request_id
        safe_id = sanitize_for_logging(request_id, 100)

        response = await call_next(request)

        elapsed_ms = int((time.time() - start_time) * 1000)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Processing-Time-MS"] = str(elapsed_ms)
        logger.info("%s %s -> %d in %dms request_id=%s", request.method,
                    sanitize_for_logging(request.url.path), response.status_code, elapsed_ms, safe_id)
        return response


def create_error_response(
    code: str,
    message: str,
    status_code: int = 500,
    field: Optional[str] = None,
    suggestion: Optional[str] = None,
) -> JSONResponse:
    """Build the error envelope; field and suggestion are omitted when empty."""
    error = {"code": code, "message": message, "timestamp": datetime.now(timezone.utc).isoformat()}
    if field:
        error["field"] = field
    if suggestion:
        error["suggestion"] = suggestion
    return JSONResponse(status_code=status_code, content={"error": error})


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


async def watchlist_exception_handler(request: Request, exc: WatchlistError) -> JSONResponse:
    """Map engine errors to HTTP statuses."""
    logger.warning("%s: %s request_id=%s", type(exc).__name__,
                   sanitize_for_logging(str(exc)), _request_id(request))

    if isinstance(exc, InvalidRequestError):
        return create_error_response(exc.code, str(exc), 422, exc.field, exc.suggestion)

    for error_type, status_code, code, message in _ENGINE_ERRORS:
        if isinstance(exc, error_type):
            return create_error_response(code, message or str(exc), status_code)
    return create_error_response("INTERNAL_ERROR", _UNEXPECTED, 500)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    logger.warning("HTTP %d: %s request_id=%s", exc.status_code,
                   sanitize_for_logging(detail), _request_id(request))
    return create_error_response(f"HTTP_{exc.status_code}", detail, exc.status_code)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled %s: %s request_id=%s", type(exc).__name__,
                 sanitize_for_logging(str(exc)), _request_id(request))
    return create_error_response("INTERNAL_ERROR", _UNEXPECTED, 500)


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WatchlistError, watchlist_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

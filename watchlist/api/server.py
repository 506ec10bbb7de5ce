"""
FastAPI Watchlist Screening API Server

Provides REST API endpoints for screening names against a watchlist index.

Usage:
    WATCHLIST_CSV=list.csv uvicorn watchlist.api.server:app --port 8000
"""

import os
import time
import uuid
import logging
import asyncio
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Depends, Security
from fastapi.responses import RedirectResponse
from fastapi.security import APIKeyHeader

from watchlist.api.models import (
    CheckRequest,
    CheckResponse,
    MatchDetail,
    RecordDetail,
    RecordRequest,
    RecordResponse,
    HealthResponse,
    ErrorResponse,
)
from watchlist.api.middleware import setup_exception_handlers, RequestLoggingMiddleware
from watchlist.candidate_index import CandidateIndex, build_index
from watchlist.checker import Checker
from watchlist.config_manager import ConfigManager, get_config, setup_logging
from watchlist.csv_source import CsvRecordSource
from watchlist.exceptions import ConfigurationError
from watchlist.records import PersonRecord

logger = logging.getLogger(__name__)

# Environment variables with defaults
API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("API_PORT", "8000"))
CONFIG_PATH = os.getenv("CONFIG_PATH") or None
WATCHLIST_CSV = os.getenv("WATCHLIST_CSV", "")
API_KEY = os.getenv("API_KEY", "")  # Required for authenticated endpoints

# Global state
_index: Optional[CandidateIndex] = None
_checker: Optional[Checker] = None
_config: Optional[ConfigManager] = None
_startup_time: Optional[datetime] = None
_executor = ThreadPoolExecutor(max_workers=1)  # For blocking index builds

# API Key security scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: Optional[str] = Security(api_key_header)) -> str:
    """Verify API key for protected endpoints.

    If API_KEY environment variable is not set, authentication is disabled.
    """
    if not API_KEY:
        # API key not configured - allow all requests (development mode)
        return "dev-mode"

    if not api_key:
        raise HTTPException(status_code=401, detail="Missing API key. Provide X-API-Key header.")

    if api_key != API_KEY:
        raise HTTPException(status_code=403, detail="Invalid API key")

    return api_key


def get_index() -> CandidateIndex:
    """Dependency to get the index instance."""
    if _index is None:
        raise HTTPException(status_code=503, detail="Index not initialized. Service is starting up.")
    return _index


def get_checker() -> Checker:
    """Dependency to get the checker instance."""
    if _checker is None:
        raise HTTPException(status_code=503, detail="Checker not initialized. Service is starting up.")
    return _checker


def get_config_instance() -> ConfigManager:
    """Dependency to get the config instance."""
    global _config
    if _config is None:
        _config = get_config(CONFIG_PATH)
    return _config


def _load_index(config: ConfigManager) -> CandidateIndex:
    if not WATCHLIST_CSV:
        logger.warning("WATCHLIST_CSV not set, starting with an empty index")
        return build_index([], config)
    return build_index(CsvRecordSource(WATCHLIST_CSV), config)


# Create FastAPI application
app = FastAPI(
    title="Watchlist Screening API",
    description="API for screening names against sanctions and PEP watchlists",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

# Setup middleware
app.add_middleware(RequestLoggingMiddleware)
setup_exception_handlers(app)


@app.on_event("startup")
async def startup():
    """Load configuration and build the watchlist index on startup."""
    global _index, _checker, _config, _startup_time

    logger.info("Starting Watchlist Screening API...")
    start_time = time.time()

    try:
        _config = get_config(CONFIG_PATH)
        setup_logging(_config)

        loop = asyncio.get_event_loop()
        index = await loop.run_in_executor(_executor, _load_index, _config)

        _index = index
        _checker = Checker(index, config=_config)
        _startup_time = datetime.now(timezone.utc)

        logger.info("API ready: %d records indexed in %.2f seconds",
                    len(index), time.time() - start_time)

    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        raise
    except Exception as e:
        logger.error("Startup error: %s", e)
        raise


@app.on_event("shutdown")
async def shutdown():
    """Release the index on shutdown."""
    logger.info("Shutting down Watchlist Screening API...")
    if _index is not None:
        _index.close()


@app.post(
    "/api/v1/check",
    response_model=CheckResponse,
    responses={
        200: {"model": CheckResponse, "description": "Check completed successfully"},
        401: {"model": ErrorResponse, "description": "Missing API key"},
        403: {"model": ErrorResponse, "description": "Invalid API key"},
        422: {"model": ErrorResponse, "description": "Validation error"},
        503: {"model": ErrorResponse, "description": "Index not available"},
    },
    summary="Screen a name",
    description="Screen a name (and optional DOB, type, source) against the watchlist",
)
async def check_name(
    request: CheckRequest,
    checker: Checker = Depends(get_checker),
    api_key: str = Depends(verify_api_key),
):
    """Screen a name against the watchlist index.

    Requires API key authentication via X-API-Key header.
    """
    start_time = time.time()

    results = checker.check(
        request.full_name,
        dob=request.dob,
        type=request.type,
        source=request.source,
        threshold=request.threshold,
    )

    return CheckResponse(
        check_id=str(uuid.uuid4()),
        check_date=datetime.now(timezone.utc).isoformat(),
        is_hit=bool(results),
        hit_count=len(results),
        matches=[MatchDetail.from_match(m) for m in results],
        processing_time_ms=int((time.time() - start_time) * 1000),
        algorithm_version=checker.config.algorithm.version,
    )


@app.post(
    "/api/v1/records",
    status_code=201,
    response_model=RecordResponse,
    responses={
        201: {"model": RecordResponse, "description": "Record indexed"},
        401: {"model": ErrorResponse, "description": "Missing API key"},
        403: {"model": ErrorResponse, "description": "Invalid API key"},
        409: {"model": ErrorResponse, "description": "Record id already indexed"},
        422: {"model": ErrorResponse, "description": "Invalid record"},
    },
    summary="Add a watchlist entry",
    description="Index one entry; it is visible to every check started afterwards",
)
async def add_record(
    request: RecordRequest,
    index: CandidateIndex = Depends(get_index),
    api_key: str = Depends(verify_api_key),
):
    """Add one record to the live index."""
    record = PersonRecord.create(
        id=request.id or str(uuid.uuid4()),
        entry_id=request.entry_id,
        source=request.source,
        type=request.type,
        full_name=request.full_name,
        aliases=request.aliases,
        dob_ranges=[(r.start, r.end) for r in request.dob_ranges],
    )
    index.add(record)
    logger.info("Record added: id=%s records_indexed=%d", record.id, len(index))

    return RecordResponse(record=RecordDetail.from_record(record), records_indexed=len(index))


@app.get(
    "/api/v1/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check service health and index status",
)
async def health_check(config: ConfigManager = Depends(get_config_instance)):
    """Return health status including the indexed record count. Always returns HTTP 200."""
    if _index is None or _index.closed:
        return HealthResponse(
            status="starting",
            records_indexed=0,
            algorithm_version=config.algorithm.version,
        )

    uptime_seconds = None
    if _startup_time:
        uptime_seconds = int((datetime.now(timezone.utc) - _startup_time).total_seconds())

    return HealthResponse(
        status="healthy",
        records_indexed=len(_index),
        algorithm_version=config.algorithm.version,
        uptime_seconds=uptime_seconds,
    )


# Root redirect to docs
@app.get("/", include_in_schema=False)
async def root():
    """Redirect root to API documentation."""
    return RedirectResponse(url="/api/docs")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=API_HOST, port=API_PORT)

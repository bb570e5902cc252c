"""Main FastAPI application."""
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.pool import QueuePool
import os

import psutil

from pushit.api.v1.router import api_router
from pushit.api.deps import get_db
from pushit.core.config import settings
from pushit.core.rate_limit import limiter
from pushit.core.logging_config import setup_logging, get_logger
from pushit.core.cache import connect_cache, global_cache
from pushit.core.events import change_hub
from pushit.core.exceptions import PushItError
from pushit.middleware import LoggingMiddleware
from pushit.workers import HoldReaper

# Initialize structured logging
setup_logging(level=settings.LOG_LEVEL)
logger = get_logger(__name__)

if settings.ENVIRONMENT == "production":
    settings.validate_production_config()

logger.info(
    "application_starting",
    app_title=settings.APP_TITLE,
    app_version=settings.APP_VERSION,
    environment=settings.ENVIRONMENT,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire the cache to the change hub and run the hold reaper."""
    disconnect_cache = connect_cache(global_cache, change_hub)

    reaper = None
    if settings.HOLD_REAPER_ENABLED:
        reaper = HoldReaper(interval=settings.HOLD_SWEEP_INTERVAL)
        reaper.start()

    try:
        yield
    finally:
        if reaper is not None:
            await reaper.stop()
        disconnect_cache()
        logger.info("application_stopped")


app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter

# Add rate limit exceeded exception handler
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(PushItError)
async def pushit_error_handler(request: Request, exc: PushItError) -> JSONResponse:
    """Map domain errors to their HTTP status with the usual {"detail": ...} body."""
    logger.info(
        "request_rejected",
        error_type=type(exc).__name__,
        status_code=exc.status_code,
        detail=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Add logging middleware (must be added before other middleware for proper request tracking)
app.add_middleware(LoggingMiddleware)


@app.middleware("http")
async def add_api_version_header(request: Request, call_next):
    """Add X-API-Version header to all responses for version tracking."""
    response = await call_next(request)
    response.headers["X-API-Version"] = settings.APP_VERSION
    return response

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,  # Required for the admin cookie
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)

# Include API router
app.include_router(api_router)


@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint with metrics.

    Returns:
        - status: "healthy" or "unhealthy"
        - cache: Cache statistics (size, hits, misses, hit rate)
        - database: Database connection status and pool metrics
        - realtime: Number of open SSE subscriptions
        - memory: Memory usage statistics

    Returns 503 if database is unreachable.
    """
    from pushit.db.session import engine

    health_status = {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "cache": global_cache.get_stats(),
        "database": {"status": "connected"},
        "realtime": {"subscribers": change_hub.subscriber_count},
    }

    # Only QueuePool reports size/overflow (in-memory SQLite uses other pools)
    if isinstance(engine.pool, QueuePool):
        health_status["database"]["pool"] = {
            "size": engine.pool.size(),
            "checked_in": engine.pool.checkedin(),
            "checked_out": engine.pool.checkedout(),
            "overflow": engine.pool.overflow(),
        }

    try:
        process = psutil.Process(os.getpid())
        memory_info = process.memory_info()
        health_status["memory"] = {
            "rss_mb": round(memory_info.rss / 1024 / 1024, 2),
            "vms_mb": round(memory_info.vms / 1024 / 1024, 2),
            "percent": round(process.memory_percent(), 2),
        }
    except psutil.Error as e:
        logger.warning("health_check_memory_error", error=str(e))
        health_status["memory"] = {"error": "unable to read"}

    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["database"]["status"] = f"error: {str(e)}"
        logger.error("health_check_failed", error=str(e))
        raise HTTPException(status_code=503, detail=health_status)

    return health_status

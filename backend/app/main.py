"""
app/main.py
────────────
FastAPI application factory.

All business logic lives in ``data_engine/`` and ``analytics/``; routes
live in ``app/api/v1/endpoints/``.  This file is intentionally slim — it
wires together logging, middleware, routers, error handlers and
lifecycle events only.

API Layout
----------
GET  /                              Health check  (no auth)
POST /api/v1/market-data/fetch      Ingest FYERS quotes into market_data
POST /api/v1/market-data/query      Latest quote per symbol for a timeframe
POST /api/v1/token                  Current FYERS access token

OpenAPI docs
------------
- Swagger UI:  http://localhost:8000/docs
- ReDoc:       http://localhost:8000/redoc
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.dependencies import get_http_client
from app.api.v1.router import api_router
from core.config import get_settings
from core.database import get_supabase_client
from core.exceptions import AuthError, ConfigError, PersistenceError
from core.logging import setup_logging
from schemas.market import ErrorResponse

logger = logging.getLogger(__name__)


# ── Lifespan ──────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application startup and shutdown logic.

    Startup:  Warm up the Supabase client singleton so the first request
              doesn't pay the connection overhead.
    Shutdown: Close the shared FYERS HTTP client.
    """
    settings = get_settings()
    logger.info(
        "Starting %s v%s (debug=%s, fyers=%s)",
        settings.APP_TITLE,
        settings.APP_VERSION,
        settings.DEBUG,
        settings.FYERS_BASE_URL,
    )
    try:
        get_supabase_client()  # warm up — raises early if env vars are wrong
        logger.info("Supabase connection verified")
    except Exception as exc:
        logger.error("Supabase initialisation failed: %s", exc)
        raise

    yield  # ← application runs here

    get_http_client().close()
    logger.info("Shutting down %s", settings.APP_TITLE)


# ── App factory ───────────────────────────────────────────────────────────────

settings = get_settings()
setup_logging(settings.DEBUG)

app = FastAPI(
    title=settings.APP_TITLE,
    version=settings.APP_VERSION,
    description=settings.APP_DESCRIPTION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ── Middleware ────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Error handlers ────────────────────────────────────────────────────────────


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=str(exc),
            details="Check function logs for more information",
        ).model_dump(),
    )


@app.exception_handler(ConfigError)
async def _config_error(request: Request, exc: ConfigError) -> JSONResponse:
    logger.error("Configuration error on %s: %s", request.url.path, exc)
    return _error_response(500, exc)


@app.exception_handler(AuthError)
async def _auth_error(request: Request, exc: AuthError) -> JSONResponse:
    logger.error("No usable FYERS token for %s: %s", request.url.path, exc)
    return _error_response(502, exc)


@app.exception_handler(PersistenceError)
async def _persistence_error(request: Request, exc: PersistenceError) -> JSONResponse:
    logger.error(
        "Store failure on %s (%d records affected): %s",
        request.url.path,
        exc.attempted,
        exc,
    )
    return _error_response(500, exc)


# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(api_router, prefix="/api/v1")

# ── Root health-check ─────────────────────────────────────────────────────────


@app.get("/", tags=["health"], summary="Health check")
def health_check() -> dict:
    """
    Lightweight liveness probe.

    Returns:
        Status and current API version.
    """
    return {"status": "ok", "version": settings.APP_VERSION}

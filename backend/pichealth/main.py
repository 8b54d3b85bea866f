"""
PicHealth API — FastAPI Application Factory
============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, per-app security state, exception
       handlers and routers; `app` is the module-level instance uvicorn loads
       (uvicorn pichealth.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                       FastAPI App                        │
    │                                                          │
    │  Middleware: CORS policy → Request ID → Logging → GZip   │
    │                                                          │
    │  Routes:                                                 │
    │    /api/ocr-ai, /api/ocr-health            (open)        │
    │    /api/v1/ocr-*, /api/v1/health-*         (key + limit) │
    │    /health                                               │
    │                                                          │
    │  app.state: rate_limiter, api_key_gate, image_store      │
    │                                                          │
    │  Exception Handlers:                                     │
    │    AuthError→401 │ RateLimit→429 │ Validation→400 │ *→500 │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check (warn, don't exit), rate-limit
              sweeper task
    Shutdown: cancel the sweeper, dispose the database engine
"""

import asyncio
import contextlib
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from pichealth import __version__
from pichealth.config import settings
from pichealth.database import dispose_engine
from pichealth.exceptions import (
    AuthError,
    error_body,
    PicHealthError,
    RateLimitExceededError,
    ValidationError,
)
from pichealth.middleware.logging import RequestLoggingMiddleware
from pichealth.middleware.request_id import RequestIDMiddleware, request_id_var
from pichealth.routes import health, insights, ocr
from pichealth.security.api_keys import ApiKeyGate
from pichealth.security.cors import CORSPolicyMiddleware, CorsPolicy
from pichealth.security.rate_limiter import FixedWindowRateLimiter
from pichealth.services.storage_service import build_image_store

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the whole process (stdout, one line per record).

    Format: 2024-05-01T08:00:00 [INFO] pichealth.access: POST /api/v1/ocr-health ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that are noisy at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("PicHealth API %s starting up (%s)...", __version__, settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: /health and the error responses explain the problem
        logger.error("Configuration error: %s", e)

    sweeper = asyncio.create_task(
        app.state.rate_limiter.run_sweeper(settings.rate_limit_sweep_interval),
        name="rate-limit-sweeper",
    )

    logger.info(
        "Rate limit: %d requests / %ds per API key; %d key(s) configured",
        app.state.rate_limit_per_window,
        settings.rate_limit_window,
        len(app.state.api_key_gate),
    )
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("PicHealth API shutting down...")
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to status codes and the shared error body.

    Handler hierarchy:
        AuthError               → 401 UNAUTHORIZED
        RateLimitExceededError  → 429 RATE_LIMIT_EXCEEDED (+ resetTime, Retry-After)
        ValidationError         → 400 with its code and the endpoint's empty shape
        RequestValidationError  → 400 INVALID_REQUEST (malformed body)
        PicHealthError (base)   → 500 with its code
        Exception (fallback)    → 500 INTERNAL_ERROR, built in CORSPolicyMiddleware
                                  so it keeps the CORS and X-Request-ID headers

    Internal details (stack traces, SQL, context dicts) are logged server-side
    and only returned when ENVIRONMENT=development.
    """

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        return JSONResponse(status_code=401, content=error_body(exc.code, exc.message))

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        reset_iso = datetime.fromtimestamp(exc.reset_time, tz=timezone.utc).isoformat()
        return JSONResponse(
            status_code=429,
            content=error_body(exc.code, exc.message, resetTime=reset_iso),
            headers={
                "Retry-After": str(exc.retry_after),
                "X-RateLimit-Limit": str(exc.limit),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(int(exc.reset_time)),
            },
        )

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error %s: %s", request_id_var.get(""), exc.code, exc.message)
        return JSONResponse(
            status_code=400,
            content=error_body(exc.code, exc.message, **exc.payload),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        logger.warning("[%s] Invalid request body: %d error(s)", request_id_var.get(""), len(errors))
        details = None
        if settings.is_development:
            details = {
                "errors": [
                    {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
                    for err in errors
                ]
            }
        return JSONResponse(
            status_code=400,
            content=error_body("INVALID_REQUEST", "Request body is malformed or has invalid fields", details),
        )

    @app.exception_handler(PicHealthError)
    async def handle_pichealth_error(request: Request, exc: PicHealthError):
        logger.error(
            "[%s] Unhandled %s: %s | Context: %s",
            request_id_var.get(""),
            exc.code,
            exc.message,
            exc.context,
        )
        details = exc.context if settings.is_development else None
        return JSONResponse(
            status_code=500,
            content=error_body(exc.code, "An internal error occurred. Please try again later.", details),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Each call builds its own rate-limit table and key gate, so tests can
    create a fresh app per test without sharing counters.
    """
    app = FastAPI(
        title="PicHealth API",
        description=(
            "OCR for receipts and health-device displays, and AI health advice "
            "and summaries, backed by Google Gemini."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Per-app state ─────────────────────────────────────────────────────
    app.state.rate_limiter = FixedWindowRateLimiter(window_seconds=settings.rate_limit_window)
    app.state.rate_limit_per_window = settings.rate_limit_per_minute
    app.state.api_key_gate = ApiKeyGate(settings.api_keys_list)
    app.state.image_store = build_image_store()

    # ── Middleware ────────────────────────────────────────────────────────
    # Last added runs first: CORS → Request ID → Logging → GZip → route
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(CORSPolicyMiddleware, policy=CorsPolicy(settings.allowed_origins_list))

    register_exception_handlers(app)

    app.include_router(ocr.router)
    app.include_router(insights.router)
    app.include_router(health.router)

    return app


app = create_app()

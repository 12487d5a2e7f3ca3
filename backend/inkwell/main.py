"""
Inkwell Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers, routers and the
       per-app abuse-control state (rate limiters, sanitizer).
Who:   uvicorn imports `inkwell.main:app`; tests call create_app() directly
       so each test gets fresh limiter state.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                       FastAPI App                        │
    │                                                          │
    │  Middleware Chain:                                       │
    │  RequestID → Logging → Security/BodySize → CORS → GZip   │
    │  → Sanitize                                              │
    │                                                          │
    │  Routes:                                                 │
    │  /api/users/{register,login}   /api/posts[...]  /health  │
    │                                                          │
    │  app.state:                                              │
    │  auth_rate_limiter (per IP)  generation_rate_limiter     │
    │  (per user)  sanitizer                                   │
    │                                                          │
    │  Exception Handlers:                                     │
    │  InkwellError → its status │ RequestValidationError → 400│
    │  HTTPException → its status │ Exception → 500            │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, required configuration (JWT_SECRET, DATABASE_URL),
              token codec construction. Any failure raises SystemExit(1),
              which uvicorn reports as a failed startup.
    Shutdown: dispose the database engine.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Tuple

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from inkwell import __version__
from inkwell.config import settings
from inkwell.database import dispose_engine
from inkwell.exceptions import (
    InkwellError,
    RateLimitExceededError,
    UpstreamUnavailableError,
    ValidationError,
)
from inkwell.middleware.logging import RequestLoggingMiddleware
from inkwell.middleware.request_id import RequestIDMiddleware, request_id_var
from inkwell.middleware.sanitize import SanitizeRequestMiddleware
from inkwell.middleware.security import SecurityHeadersMiddleware
from inkwell.routes import auth, health, posts
from inkwell.services.rate_limiter import InMemoryRateLimitStore, RateLimiter
from inkwell.services.sanitizer import default_sanitizer
from inkwell.services.token_service import get_token_codec

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, before anything else logs.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s on stdout.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,
    )

    # Third-party libraries that log every operation at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup refuses to serve without a signing secret: every protected
    route would fail otherwise. A missing Gemini key only disables
    /api/posts/generate, so it is a warning.
    """
    setup_logging()
    logger.info("=" * 60)
    logger.info("Inkwell Backend %s starting up...", __version__)

    try:
        settings.validate_required()
        get_token_codec()
    except ValueError as e:
        logger.critical("Configuration error: %s", str(e))
        logger.critical("Fix the configuration and restart the server.")
        raise SystemExit(1)

    if not settings.gemini_configured:
        logger.warning("GEMINI_API_KEY is not set; AI content generation will return 503")

    logger.info(
        "Rate limits: auth %d/%ds per IP, generation %d/%ds per user",
        settings.auth_rate_limit_attempts,
        settings.auth_rate_limit_window,
        settings.generation_rate_limit_attempts,
        settings.generation_rate_limit_window,
    )
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Inkwell Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

GENERIC_SERVER_MESSAGE = "An unexpected error occurred. Please try again or contact support."


def _first_validation_error(exc: RequestValidationError) -> Tuple[str, str]:
    """(field, message) for the first failing field of a request."""
    errors = exc.errors()
    if not errors:
        return "", "Validation failed"
    error = errors[0]
    loc = [
        part for part in error.get("loc", ())
        if isinstance(part, str) and part not in ("body", "query", "path")
    ]
    field = loc[-1] if loc else ""
    label = field.replace("_", " ").capitalize() or "Request body"
    error_type = error.get("type", "")

    if error_type == "missing":
        return field, f"{label} is required"
    if error_type == "value_error":
        ctx_error = (error.get("ctx") or {}).get("error")
        if ctx_error is not None:
            return field, str(ctx_error)
    if error_type == "string_type":
        return field, f"{label} must be a string"
    if error_type == "json_invalid":
        return field, "Invalid JSON in request body"
    if error_type in ("int_parsing", "int_type"):
        return field, f"{label} must be an integer"
    return field, error.get("msg", "Validation failed")


def _error_body(exc: InkwellError, rid: str) -> Dict[str, Any]:
    message = exc.message
    # Only subclasses carry client-safe text; a bare InkwellError is a bug
    if type(exc) is InkwellError:
        message = GENERIC_SERVER_MESSAGE
    content: Dict[str, Any] = {
        "error": exc.error_code,
        "message": message,
        "request_id": rid,
    }
    if isinstance(exc, ValidationError) and exc.field:
        content["details"] = {"field": exc.field}
    if isinstance(exc, RateLimitExceededError):
        content["retry_after"] = exc.retry_after
    return content


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to the standard error body.

    Handler hierarchy:
        InkwellError (and subclasses) → exc.status_code
            4xx: specific message, logged at WARNING/INFO
            5xx: message is already client-safe; context logged, never sent
        RequestValidationError        → 400 validation_error
        StarletteHTTPException        → its status (unknown route, bad method)
        Exception (fallback)          → 500 internal_server_error

    Retry-After:
        429 → retry_after minutes × 60 seconds
        503 → the upstream retry hint in seconds, when known
    """

    @app.exception_handler(InkwellError)
    async def handle_inkwell_error(request: Request, exc: InkwellError):
        rid = request_id_var.get("")
        headers: Dict[str, str] = {}

        if exc.status_code >= 500:
            logger.error(
                "[%s] %s: %s | Context: %s",
                rid,
                type(exc).__name__,
                exc.message,
                exc.context,
            )
        else:
            logger.info("[%s] %s: %s", rid, type(exc).__name__, exc.message)

        if isinstance(exc, RateLimitExceededError):
            headers["Retry-After"] = str(exc.retry_after * 60)
        elif isinstance(exc, UpstreamUnavailableError) and exc.retry_after:
            headers["Retry-After"] = str(exc.retry_after)

        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc, rid),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        field, message = _first_validation_error(exc)
        logger.info("[%s] Validation error on %s: %s", rid, field or "body", message)
        return JSONResponse(
            status_code=400,
            content=_error_body(ValidationError(message=message, field=field or None), rid),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        rid = request_id_var.get("")
        error_code = "not_found" if exc.status_code == 404 else "http_error"
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": error_code,
                "message": str(exc.detail),
                "request_id": rid,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Stack trace goes to the server log only."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": GENERIC_SERVER_MESSAGE,
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Rate limiter tables live on app.state, so a fresh app (one per test)
    starts with empty windows.
    """
    app = FastAPI(
        title="Inkwell API",
        description=(
            "Blogging API with token authentication, per-action rate limiting, "
            "request sanitization, author-only editing and AI-assisted drafting."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Abuse-control state ───────────────────────────────────────────────
    app.state.auth_rate_limiter = RateLimiter(
        InMemoryRateLimitStore(),
        max_attempts=settings.auth_rate_limit_attempts,
        window_seconds=settings.auth_rate_limit_window,
    )
    app.state.generation_rate_limiter = RateLimiter(
        InMemoryRateLimitStore(),
        max_attempts=settings.generation_rate_limit_attempts,
        window_seconds=settings.generation_rate_limit_window,
    )
    app.state.sanitizer = default_sanitizer

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added = first to execute. Execution order:
    # RequestID → Logging → SecurityHeaders → CORS → GZip → Sanitize → routes

    # Innermost: runs immediately before routing and body validation
    app.add_middleware(SanitizeRequestMiddleware)

    app.add_middleware(GZipMiddleware, minimum_size=500)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "x-auth-token", "X-Request-ID"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(posts.router)
    app.include_router(health.router)

    return app


# uvicorn expects `inkwell.main:app`
app = create_app()

"""
ResiHub Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() owns the DatabaseRegistry (stored on app.state), registers
       middleware, exception handlers and routers.
Who:   Served by uvicorn (uvicorn resihub.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                     FastAPI App                      │
    │                                                      │
    │  Middleware: Rate Limit → Request ID → Access Log    │
    │                                                      │
    │  Routes:                                             │
    │  ┌────────────────┐ ┌───────────────┐ ┌───────────┐  │
    │  │ /api/auth      │ │ /api/service  │ │ health    │  │
    │  └────────────────┘ └───────────────┘ └───────────┘  │
    │                                                      │
    │  Exception Handlers:                                 │
    │  ResiHubError → status_code, {message}               │
    │  RequestValidationError → 400 │ Exception → 500      │
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, warn about unsafe settings
    Shutdown: dispose every central and tenant engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from resihub import __version__
from resihub.config import settings
from resihub.database import DatabaseRegistry
from resihub.exceptions import RateLimitExceededError, ResiHubError
from resihub.middleware.logging import RequestLoggingMiddleware
from resihub.middleware.rate_limit import RateLimitMiddleware
from resihub.middleware.request_id import RequestIDMiddleware, request_id_var
from resihub.routes import auth, health, services

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once at startup.

    Format: <timestamp> [<level>] <logger>: <message>
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries that log every operation
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("ResiHub Backend starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # The server still starts so health checks can report the problem
        logger.warning("%s", str(e))

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("ResiHub Backend shutting down...")
    await app.state.databases.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to responses.

    Body contract:
        4xx → {"message": <user-facing message>}
        5xx → {"message": "Server error", "error": <short description>}

    Context and stack traces are logged, never returned.
    """

    @app.exception_handler(ResiHubError)
    async def handle_resihub_error(request: Request, exc: ResiHubError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error(
                "[%s] %s: %s | Context: %s",
                rid,
                type(exc).__name__,
                exc.message,
                exc.context,
            )
            return JSONResponse(
                status_code=exc.status_code,
                content={"message": "Server error", "error": exc.message},
            )

        logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        headers = None
        if isinstance(exc, RateLimitExceededError):
            headers = {"Retry-After": str(exc.retry_after)}
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.message},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """FastAPI's 422 becomes 400 with the first problem as the message."""
        rid = request_id_var.get("")
        errors = exc.errors()
        message = "Invalid request"
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ())[1:])
            message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
        logger.warning("[%s] Request validation failed: %s", rid, message)
        return JSONResponse(status_code=400, content={"message": message})

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"message": "Server error", "error": str(exc) or type(exc).__name__},
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(databases: Optional[DatabaseRegistry] = None) -> FastAPI:
    """
    Assemble the application.

    Args:
        databases: registry to use; a lazily-connecting one built from
                   settings when omitted. No connection is opened here.
    """
    app = FastAPI(
        title="ResiHub API",
        description=(
            "Apartment-management backend: cross-tenant login for residents, "
            "managers and service providers, and service listings with reviews."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.databases = databases or DatabaseRegistry()

    # Middleware executes in reverse order of addition
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(services.router)

    return app


app = create_app()

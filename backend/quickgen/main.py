"""
QuickGen Backend: FastAPI Application Factory
=============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers and routers;
       uvicorn serves the module-level `app` (uvicorn quickgen.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  Request ID → Access Log → GZip → CORS      │
    │                                                          │
    │  Routes:                                                 │
    │    POST /api/ai/*     GET /api/user/*     GET /health    │
    │    GET  /             /api/* fallback → 404              │
    │                                                          │
    │  Exception Handlers (all → {"success": false, ...}):     │
    │    GateRejected→200  Auth→401  BadBody→400               │
    │    Vendor→429/status/500  Database→500  Other→500        │
    └──────────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from quickgen import __version__
from quickgen.config import settings
from quickgen.database import dispose_engine
from quickgen.exceptions import (
    AuthenticationError,
    DatabaseError,
    GateRejectedError,
    VendorError,
)
from quickgen.middleware.logging import RequestLoggingMiddleware
from quickgen.middleware.request_id import RequestIDFilter, RequestIDMiddleware, request_id_var
from quickgen.routes import ai, health, user

logger = logging.getLogger(__name__)

RATE_LIMITED_MESSAGE = "Too many requests. Please wait a few seconds and try again."
SERVER_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


# ══════════════════════════════════════════════════════════════════════════
# Logging
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure root logging once, to stdout (the container captures it).

    Format: %(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("QuickGen Backend %s starting up...", __version__)

    # Missing vendor keys only disable the operations that need them
    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    logger.info(
        "Free tier: %d metered operations; retries: %d attempts",
        settings.free_usage_limit,
        settings.retry_max_attempts,
    )
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("QuickGen Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def failure(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, **extra},
    )


def vendor_status_code(exc: VendorError) -> int:
    """
    HTTP status for a vendor failure.

        RATE_LIMITED               → 429
        vendor reported 4xx or 5xx → that status
        anything else              → 500
    """
    if exc.is_rate_limited:
        return 429
    if exc.http_status is not None and 400 <= exc.http_status <= 599:
        return exc.http_status
    return 500


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to the {"success": false, "message"} envelope.

    Handler table:
        GateRejectedError      → 200 (plan, quota and file rejections)
        AuthenticationError    → 401
        RequestValidationError → 400
        VendorError            → 429 / vendor status / 500
        DatabaseError          → 500, generic message
        Exception              → 500, generic message

    Internal details (SQL, stack traces, vendor payloads) are logged, never
    returned.
    """

    @app.exception_handler(GateRejectedError)
    async def handle_gate_rejected(request: Request, exc: GateRejectedError):
        logger.info("Rejected %s: %s | %s", request.url.path, exc.message, exc.context)
        return failure(200, exc.message)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication(request: Request, exc: AuthenticationError):
        logger.warning("Unauthenticated %s: %s", request.url.path, exc.context)
        return failure(401, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        message = first.get("msg", "Invalid request")
        if field:
            message = f"{field}: {message}"
        logger.warning("Invalid request to %s: %s", request.url.path, message)
        return failure(400, message)

    @app.exception_handler(VendorError)
    async def handle_vendor_error(request: Request, exc: VendorError):
        status_code = vendor_status_code(exc)
        logger.error(
            "Vendor failure on %s: %r -> %d", request.url.path, exc, status_code
        )
        if exc.is_rate_limited:
            return failure(429, RATE_LIMITED_MESSAGE)
        return failure(status_code, exc.public_message)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("Database error: %s | Context: %s", exc.message, exc.context)
        return failure(500, SERVER_ERROR_MESSAGE)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "Unexpected error [%s]: %s", request_id_var.get(""), str(exc), exc_info=True
        )
        return failure(500, SERVER_ERROR_MESSAGE)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="QuickGen API",
        description=(
            "Gated AI content operations: articles, blog titles, images, "
            "background and object removal, and resume reviews."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Last added runs first: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(ai.router)
    app.include_router(user.router)
    app.include_router(health.router)

    @app.get("/", response_class=PlainTextResponse, include_in_schema=False)
    async def root() -> str:
        return "Server is Live!"

    @app.api_route(
        "/api/{path:path}",
        methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        include_in_schema=False,
    )
    async def api_not_found(request: Request, path: str) -> JSONResponse:
        return failure(404, "API Endpoint not found", path=request.url.path)

    return app


app = create_app()

"""FastAPI application for the AgentSquare API.

Provides the main application instance with routers, middleware,
and exception handlers configured.
"""

import logging
import os
import sys
import time as _time
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError

# Configure logging to stdout for uvicorn to capture
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
# Ensure our application loggers are captured
logging.getLogger("agentsquare").setLevel(logging.INFO)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import sessionmaker

from agentsquare.api.deps import get_resolver
from agentsquare.api.routes import admin, agents, messages, settings, speech, square, users
from agentsquare.db.connection import close_db, get_session_factory, init_db
from agentsquare.errors import AgentSquareError, DomainError, NotFoundError
from agentsquare.services.config_resolver import ConfigurationResolver

logger = logging.getLogger(__name__)

# Module-level state for health endpoint
_startup_time: float = 0.0


def _parse_allowed_origins() -> list[str]:
    """Parse comma-separated CORS allowlist from ALLOWED_ORIGINS env var."""
    raw = os.environ.get("ALLOWED_ORIGINS", "").strip()
    if not raw:
        return []
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Async lifespan: create tables on startup, dispose the engine on shutdown."""
    global _startup_time

    _startup_time = _time.time()
    init_db()
    logger.info("AgentSquare API started")

    yield

    close_db()


# Create FastAPI app with async lifespan
app = FastAPI(
    title="AgentSquare API",
    description="Chat with image-generation agents and share results on the square",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS allowlist is env-driven. If unset, CORS is disabled (same-origin only).
allowed_origins = _parse_allowed_origins()
if allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": {"code": code, "message": message}},
    )


@app.exception_handler(AgentSquareError)
async def agentsquare_error_handler(request: Request, exc: AgentSquareError) -> JSONResponse:
    """Handle AgentSquareError exceptions with consistent format.

    Args:
        request: The incoming request.
        exc: The AgentSquareError exception.

    Returns:
        JSONResponse with the registry's HTTP status.
    """
    return _error_response(exc.http_status, exc.code, exc.message)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Map typed service-layer errors to 404 / 400."""
    if isinstance(exc, NotFoundError):
        return _error_response(404, "NOT_FOUND", str(exc))
    return _error_response(400, "VALIDATION_ERROR", str(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render malformed request bodies and parameters as VALIDATION_ERROR."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return _error_response(400, "VALIDATION_ERROR", f"{location}: {message}" if location else message)


# Include routers
app.include_router(agents.router, prefix="/api/v1")
app.include_router(messages.router, prefix="/api/v1")
app.include_router(square.router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")
app.include_router(settings.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")
app.include_router(speech.router, prefix="/api/v1")


@app.get("/health")
def health_check() -> dict:
    """Liveness check with version and uptime.

    Returns:
        Dictionary with health status.
    """
    uptime = int(_time.time() - _startup_time) if _startup_time else 0
    try:
        version = _pkg_version("agentsquare")
    except PackageNotFoundError:
        version = "unknown"
    return {"status": "healthy", "version": version, "uptime_seconds": uptime}


@app.get("/readyz")
def readiness_check(
    session_factory: sessionmaker = Depends(get_session_factory),
    resolver: ConfigurationResolver = Depends(get_resolver),
):
    """Dependency-aware readiness check: database plus configured services."""
    uptime = int(_time.time() - _startup_time) if _startup_time else 0
    checks: dict[str, dict[str, Any]] = {}

    # DB connectivity gate.
    try:
        db = session_factory()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
        checks["database"] = {"status": "ok"}
    except Exception as exc:
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "uptime_seconds": uptime,
                "checks": {
                    "database": {"status": "error", "message": str(exc)},
                },
            },
        )

    status = "ready"
    if resolver.image().is_complete:
        checks["image_generation"] = {"status": "configured"}
    else:
        checks["image_generation"] = {"status": "degraded", "message": "not configured"}
        status = "degraded"
    for name, configured in (
        ("moderation", resolver.moderation().has_endpoint),
        ("speech", bool(resolver.speech().api_url)),
        ("image_hosting", resolver.hosting().is_configured),
    ):
        checks[name] = {"status": "configured" if configured else "disabled"}

    return {
        "status": status,
        "uptime_seconds": uptime,
        "checks": checks,
    }


@app.get("/api")
def api_root() -> dict:
    """API root with links to docs.

    Returns:
        Dictionary with API info and links.
    """
    return {
        "name": "AgentSquare API",
        "version": "0.1.0",
        "docs": "/docs",
        "redoc": "/redoc",
    }

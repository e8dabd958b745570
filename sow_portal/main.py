"""SOW Approval Portal API - Main FastAPI Application."""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sow_portal.api.routes import health, sow
from sow_portal.core.config import get_settings
from sow_portal.core.exceptions import SOWPortalException, sanitize_error
from sow_portal.middleware.performance import RequestIDMiddleware, RequestTimingMiddleware


# JSON for production (stdout is shipped to the log pipeline), text for dev
def _configure_logging() -> None:
    """Set up logging based on LOG_FORMAT / LOG_LEVEL settings.

    json: Structured JSON via python-json-logger.
    text: Human-readable format (for local development).
    """
    cfg = get_settings()
    log_level = cfg.LOG_LEVEL.upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    # Remove existing handlers to avoid duplicate output
    root_logger.handlers.clear()

    handler = logging.StreamHandler()

    if cfg.LOG_FORMAT == "json":
        from pythonjsonlogger.json import JsonFormatter

        formatter = JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={
                "asctime": "timestamp",
                "levelname": "level",
                "name": "service",
            },
            static_fields={"app": "sow-portal-api"},
        )
        handler.setFormatter(formatter)
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root_logger.addHandler(handler)


_configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> Any:
    """Application lifespan handler for startup and shutdown events."""
    from sow_portal.integrations.hubspot.gateway import get_gateway

    cfg = get_settings()

    # Startup
    logger.info("Starting SOW portal API (env=%s)", cfg.APP_ENV)
    if cfg.is_production:
        cfg.validate_startup()
    if not cfg.hubspot_configured:
        logger.warning("HUBSPOT_ACCESS_TOKEN not configured - CRM calls will fail")
    yield
    # Shutdown
    logger.info("Shutting down SOW portal API...")
    await get_gateway().aclose()


app = FastAPI(
    title="SOW Approval Portal API",
    description="Homeowner Scope of Work approval backed by HubSpot deals",
    version="1.0.0",
    lifespan=lifespan,
)

CORS_ORIGINS = get_settings().cors_origins_list
logger.info("CORS allowed origins: %s", CORS_ORIGINS)

# In Starlette, last-added = outermost, so add timing first, then ID.
app.add_middleware(RequestTimingMiddleware)
app.add_middleware(RequestIDMiddleware)

# CORS Configuration - added last so it's outermost (handles preflight first)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix="/api/v1")
app.include_router(sow.router, prefix="/api/v1")


@app.get("/", tags=["system"])
async def root() -> dict[str, str]:
    """Root endpoint with API information."""
    return {
        "name": "SOW Approval Portal API",
        "version": "1.0.0",
    }


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


@app.exception_handler(SOWPortalException)
async def portal_exception_handler(request: Request, exc: SOWPortalException) -> JSONResponse:
    """Handle portal-specific exceptions.

    Client errors keep their message; upstream failures (5xx) are replaced
    with a generic message so HubSpot response bodies never reach callers.
    """
    request_id = _request_id(request)
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "Portal exception occurred: %s",
        exc.message,
        extra={
            "code": exc.code,
            "status_code": exc.status_code,
            "request_id": request_id,
            "path": request.url.path,
        },
    )
    detail = exc.message if exc.status_code < 500 else sanitize_error(exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": detail,
            "code": exc.code,
            "request_id": request_id,
        },
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request body/query validation errors as 400s."""
    request_id = _request_id(request)
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    logger.info(
        "Request validation error",
        extra={"request_id": request_id, "path": request.url.path, "error_count": len(errors)},
    )
    return JSONResponse(
        status_code=400,
        content={
            "detail": "Request validation error",
            "code": "REQUEST_VALIDATION_ERROR",
            "request_id": request_id,
            "errors": errors,
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions globally."""
    request_id = _request_id(request)
    logger.exception(
        "Unhandled exception occurred",
        exc_info=exc,
        extra={"request_id": request_id, "path": request.url.path},
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An internal server error occurred",
            "code": "INTERNAL_ERROR",
            "request_id": request_id,
        },
    )

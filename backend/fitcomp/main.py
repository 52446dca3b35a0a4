"""
FitComp Competition Manager
===========================
FastAPI entry point: lifecycle, middleware, error envelopes and routers.
"""

import time
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from fitcomp.api.envelope import error_envelope, split_error_detail
from fitcomp.api.routes.audit import router as audit_router
from fitcomp.api.routes.auth import router as auth_router
from fitcomp.api.routes.competitions import router as competitions_router
from fitcomp.api.routes.entries import router as entries_router
from fitcomp.api.routes.users import router as users_router
from fitcomp.core.config import get_settings
from fitcomp.core.correlation import (
    get_correlation_id,
    get_request_id,
    new_correlation_id,
    new_request_id,
    set_client_ip,
    set_correlation_id,
    set_request_id,
)
from fitcomp.core.database import async_session, init_db
from fitcomp.core.logging import get_logger, setup_logging
from fitcomp.schemas import HealthResponse

settings = get_settings()
logger = get_logger("main")

APP_VERSION = "1.0.0"

# Track uptime
_start_time = time.time()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup & shutdown lifecycle."""

    # ── Startup ──
    setup_logging()
    logger.info("app_starting", app=settings.app_name, env=settings.app_env)

    await init_db()
    logger.info("database_initialized")

    logger.info("app_ready", port=settings.app_port)

    yield

    # ── Shutdown ──
    logger.info("app_shutdown")


# ── Create FastAPI App ──

app = FastAPI(
    title=settings.app_name,
    description=(
        "Role-based management of fitness competitions and their entries.\n\n"
        "Members record their own results, staff run the competitions they own, "
        "administrators manage everything and may impersonate any account. "
        "Every mutation is written to the audit log."
    ),
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS Middleware ──

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request Logging Middleware ──

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests with timing."""
    request_id = request.headers.get("x-request-id") or new_request_id()
    correlation_id = request.headers.get("x-correlation-id") or new_correlation_id()
    client_ip = request.client.host if request.client else None
    set_request_id(request_id)
    set_correlation_id(correlation_id)
    set_client_ip(client_ip)
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        correlation_id=correlation_id,
        client_ip=client_ip,
    )
    start = time.time()
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        elapsed = round((time.time() - start) * 1000, 2)
        if response is not None:
            response.headers["x-request-id"] = request_id
            response.headers["x-correlation-id"] = correlation_id
            status_code = response.status_code
        else:
            status_code = 500

        if request.url.path not in ["/health", "/docs", "/redoc", "/openapi.json"]:
            logger.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status=status_code,
                elapsed_ms=elapsed,
                request_id=get_request_id(),
                correlation_id=get_correlation_id(),
            )

        structlog.contextvars.clear_contextvars()
        set_request_id("")
        set_correlation_id("")
        set_client_ip("")


# ── Global Exception Handlers ──

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    code, message, details = split_error_detail(exc.detail)
    logger.warning(
        "http_exception",
        path=request.url.path,
        status_code=exc.status_code,
        code=code,
        message=message,
    )
    response = error_envelope(
        code=code,
        message=message,
        status_code=exc.status_code,
        details=details,
        meta={"path": request.url.path},
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("validation_error", path=request.url.path, errors=exc.errors())
    return error_envelope(
        code="validation_error",
        message="Validation failed",
        status_code=422,
        details=exc.errors(),
        meta={"path": request.url.path},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log and render anything that escaped the services as a 500 envelope."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return error_envelope(
        code="internal_error",
        message="Internal server error",
        status_code=500,
        meta={"path": request.url.path},
    )


# ── Register Routers ──

app.include_router(auth_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(competitions_router, prefix="/api/v1")
app.include_router(entries_router, prefix="/api/v1")
app.include_router(audit_router, prefix="/api/v1")


# ── Health Check ──

@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """System health check endpoint."""
    uptime = round(time.time() - _start_time, 2)
    try:
        async with async_session() as db:
            await db.execute(text("SELECT 1"))
        database_status = "connected"
    except Exception as exc:  # noqa: BLE001
        logger.warning("health_database_unreachable", error=type(exc).__name__)
        database_status = "disconnected"

    return HealthResponse(
        status="ok" if database_status == "connected" else "degraded",
        version=APP_VERSION,
        database=database_status,
        uptime_seconds=uptime,
    )

"""FastAPI application entry point."""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.engine import make_url
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from cafestock.api.routes import api_router
from cafestock.core.config import settings
from cafestock.core.exceptions import (
    AlreadyOrderedError,
    CafeStockError,
    DuplicateNameError,
    ForbiddenError,
    InsufficientStockError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from cafestock.core.rate_limit import limiter
from cafestock.core.responses import error_body
from cafestock.db.base import Base
from cafestock.db.session import SessionLocal, engine
from cafestock.services.lifecycle import run_archive_sweep
from cafestock.services.reference_service import seed_reference_data

# Configure logging - use JSON format in production, human-readable in dev
root_logger = logging.getLogger()
root_logger.setLevel(getattr(logging, settings.log_level))
root_logger.handlers.clear()

if settings.debug:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
else:
    import json as _json
    import sys

    class JSONFormatter(logging.Formatter):
        def format(self, record):
            return _json.dumps({
                "ts": self.formatTime(record, self.datefmt),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
                "module": record.module,
                "line": record.lineno,
            })

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

root_logger.addHandler(handler)
logger = logging.getLogger(__name__)
request_logger = logging.getLogger("requests")

# Domain error -> HTTP status
ERROR_STATUS = {
    ValidationError: 400,
    InsufficientStockError: 400,
    AlreadyOrderedError: 400,
    ForbiddenError: 403,
    NotFoundError: 404,
    DuplicateNameError: 409,
    StorageError: 500,
}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging all HTTP requests and responses."""

    async def dispatch(self, request: Request, call_next):
        # Skip logging for health checks and docs
        if request.url.path in ["/health", "/", "/docs", "/openapi.json"]:
            return await call_next(request)

        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"

        request_logger.info(f"Request: {request.method} {request.url.path} - Client: {client_ip}")

        try:
            response = await call_next(request)
            process_time = time.time() - start_time

            log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
            request_logger.log(
                log_level,
                f"Response: {request.method} {request.url.path} - "
                f"Status: {response.status_code} - Time: {process_time:.3f}s - Client: {client_ip}"
            )
            return response
        except Exception as e:
            process_time = time.time() - start_time
            request_logger.error(
                f"Error: {request.method} {request.url.path} - "
                f"Exception: {str(e)} - Time: {process_time:.3f}s - Client: {client_ip}"
            )
            raise


async def cafestock_error_handler(request: Request, exc: CafeStockError) -> JSONResponse:
    """Render a domain error with the shared error body."""
    status_code = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)),
        500,
    )
    if isinstance(exc, InsufficientStockError):
        body = error_body("Insufficient stock", exc.detail)
    elif isinstance(exc, StorageError):
        # Never leak storage internals
        body = error_body("Internal server error")
    else:
        body = error_body(exc.message, exc.detail)
    return JSONResponse(status_code=status_code, content=body)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


def _ensure_sqlite_directory() -> None:
    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting CafeStock inventory service")

    # Create tables if they don't exist (for SQLite dev)
    if settings.database_url.startswith("sqlite"):
        _ensure_sqlite_directory()
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created (SQLite mode)")

    db = SessionLocal()
    try:
        seed_reference_data(db)
    finally:
        db.close()

    async def _periodic_archive_sweep():
        """Purge expired archive entries, then wait for the next interval."""
        while True:
            try:
                result = await asyncio.to_thread(run_archive_sweep)
                purged = sum(result["purged"].values())
                if purged or result["failed"]:
                    logger.info(f"Periodic archive sweep: {result}")
                await asyncio.sleep(settings.archive_sweep_interval_seconds)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.warning(f"Periodic archive sweep error: {e}")
                await asyncio.sleep(settings.archive_sweep_interval_seconds)

    sweep_task = None
    if settings.archive_sweep_enabled:
        sweep_task = asyncio.create_task(_periodic_archive_sweep())
        logger.info(
            f"Background archive sweep started (runs every {settings.archive_sweep_interval_seconds}s, "
            f"retention {settings.archive_retention_days} days)"
        )

    yield

    if sweep_task is not None:
        sweep_task.cancel()
        try:
            await sweep_task
        except asyncio.CancelledError:
            pass

    logger.info("Shutting down CafeStock inventory service")


app = FastAPI(
    title="CafeStock",
    description="Cafe inventory, recipe usage and team management API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Rate limiting setup
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Domain and HTTP errors share one body shape
app.add_exception_handler(CafeStockError, cafestock_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)

# Request logging middleware
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware - added last so it runs first (Starlette LIFO order)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    max_age=600,
)

# Include API routes
app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/health")
def health_check():
    """Basic liveness check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}

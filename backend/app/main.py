"""QuickSite Backend: FastAPI application entry point."""

import signal
import uuid
from contextlib import asynccontextmanager

# CRITICAL ORDER: configure_structlog MUST be called before all other app imports
# to avoid the structlog cache pitfall (structlog caches the processor chain on first use).
from app.core.logging import configure_structlog
from app.core.config import get_settings as _get_settings_early

_early_settings = _get_settings_early()
configure_structlog(
    log_level="DEBUG" if _early_settings.debug else "INFO",
    json_logs=not _early_settings.debug,
)

import structlog

from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import api_router
from app.core.config import get_settings
from app.core.exceptions import QuickSiteError
from app.db.base import close_db, get_session_factory, init_db
from app.db.redis import close_redis, init_redis
from app.db.datastore_sql import SqlDatastore
from app.db.seed import seed_config_documents
from app.middleware.correlation import (
    setup_correlation_middleware,
    get_correlation_id,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # SIGTERM flips this so /api/health returns 503 while connections drain
    app.state.shutting_down = False

    def handle_sigterm(signum, frame):
        app.state.shutting_down = True
        logger.info("sigterm_received", action="health_check_503_draining_connections")

    signal.signal(signal.SIGTERM, handle_sigterm)

    settings = get_settings()
    logger.info("startup_begin", app_name=settings.app_name, debug=settings.debug)

    await init_db()
    logger.info("db_initialized")

    await init_redis()
    logger.info("redis_initialized")

    await seed_config_documents(SqlDatastore(get_session_factory()))

    yield

    logger.info("shutdown_begin")
    await close_redis()
    await close_db()
    logger.info("shutdown_complete")


async def quicksite_error_handler(request: Request, exc: QuickSiteError) -> JSONResponse:
    """Render a domain failure as ``{code, reason, detail, debug_id}``.

    ``detail`` is the user-safe message; ``reason`` is the stable machine code.
    """
    debug_id = str(uuid.uuid4())

    logger.warning(
        "request_rejected",
        code=exc.code,
        reason=exc.reason,
        status_code=exc.status_code,
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        user_id=getattr(request.state, "user_id", None),
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "reason": exc.reason, "detail": exc.message, "debug_id": debug_id},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Global exception handler for HTTPException with debug_id tracking.

    Logs errors server-side with full context, returns sanitized response to client.
    """
    debug_id = str(uuid.uuid4())

    logger.error(
        "http_exception",
        status_code=exc.status_code,
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        user_id=getattr(request.state, "user_id", None),
        detail=exc.detail,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "debug_id": debug_id},
        headers=getattr(exc, "headers", None),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled errors with debug_id tracking.

    Logs full exception with traceback, returns generic 500 to client.
    """
    debug_id = str(uuid.uuid4())

    logger.error(
        "unhandled_exception",
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        user_id=getattr(request.state, "user_id", None),
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "debug_id": debug_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.exception_handler(QuickSiteError)(quicksite_error_handler)
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(Exception)(generic_exception_handler)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="QuickSite - hosted profile pages with plan-gated media",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            settings.frontend_url,
            settings.pay_portal_base_url,
            "http://localhost:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Correlation ID middleware (runs first on incoming requests)
    setup_correlation_middleware(app)

    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )

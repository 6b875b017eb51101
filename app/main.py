from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import InterfaceError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.router import api_router
from app.core.logging import setup_logging
from app.core.rate_limit import limiter, rate_limit_exceeded_handler
from app.core.scheduler import start_scheduler, stop_scheduler
from app.core.settings import settings
from app.db.models.init_db import create_all
from app.db.session import engine
from app.libs.formats.envelope import fail, ok
from app.middleware.request_context import RequestContextMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()

    # ================================
    # 1) DATABASE SCHEMA
    # ================================
    if settings.AUTO_CREATE_TABLES:
        await create_all(engine)
        logger.info("🗄️ Tables ensured")

    # ================================
    # 2) START APSCHEDULER
    # ================================
    if settings.SCHEDULER_ENABLED:
        start_scheduler()

    logger.info(f"🚀 {settings.APP_NAME} {settings.APP_VERSION} ({settings.ENVIRONMENT}) ready")
    try:
        yield
    finally:
        # ================================
        # 3) STOP SCHEDULER / DISPOSE POOL
        # ================================
        stop_scheduler()
        await engine.dispose()
        logger.info("👋 Shutdown complete")


# ===== ERROR HANDLERS =====
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    error_code = getattr(exc, "error_code", None)
    if error_code is None and exc.status_code == status.HTTP_404_NOT_FOUND:
        error_code = "NOT_FOUND"
    return JSONResponse(
        status_code=exc.status_code,
        content=fail(str(exc.detail), error_code, getattr(exc, "errors", None)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"),
            "message": err.get("msg"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=fail("Validation failed", "VALIDATION_ERROR", errors),
    )


async def database_unavailable_handler(request: Request, exc: Exception):
    logger.error(f"💥 Database unavailable on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=fail("Service temporarily unavailable", "UPSTREAM_FAILURE"),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"💥 Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=fail("Internal server error", "INTERNAL_ERROR"),
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="Backend for courses, books and live classes",
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "X-Request-ID"],
    )
    app.add_middleware(RequestContextMiddleware)

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(OperationalError, database_unavailable_handler)
    app.add_exception_handler(InterfaceError, database_unavailable_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ===== REGISTER ROUTERS =====
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # ===== ROOT =====
    @app.get("/")
    async def root():
        return ok({"name": settings.APP_NAME, "version": settings.APP_VERSION, "docs": "/docs"})

    @app.get("/health")
    async def health():
        return ok({"status": "ok", "environment": settings.ENVIRONMENT})

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG, log_level="info")

"""
FastAPI Application Entry Point.

This is the main application file for the Salary Ledger Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, HTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from salary_backend.app.core.config import settings
from salary_backend.app.api.v1.router import router as api_v1_router
from salary_backend.app.core.observability import ObservabilityMiddleware
from salary_backend.app.core.redis_client import ping_redis
from salary_backend.app.db.session import engine, Base, get_db
from salary_backend.app.core.exceptions import (
    AppException,
    StorageError,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from salary_backend.app.models.user import User  # noqa: F401
from salary_backend.app.models.audit_log import AuditLog  # noqa: F401
from salary_backend.app.models.commission_policy import CommissionPolicy  # noqa: F401
from salary_backend.app.models.salary_entry import SalaryEntry  # noqa: F401
from salary_backend.app.models.salary_history import SalaryHistory  # noqa: F401

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates database tables on startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Salary records with currency conversion, commission and change history",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.

    The database is required; Redis only backs token revocation, which
    fails open, so a Redis outage reports "degraded" rather than failing.
    """
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise StorageError("Database is unreachable") from exc

    redis_ok = await ping_redis()
    return {
        "status": "healthy" if redis_ok else "degraded",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "database": "ok",
        "redis": "ok" if redis_ok else "unavailable",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to Salary Ledger Backend API",
        "docs": "/docs",
        "health": "/health",
    }

"""
SmartInvoice API - Main Application Entry Point
Multi-tenant invoicing: clients, invoices, totals and dashboard metrics.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from app.core.config import Settings, get_settings
from app.core.exceptions import (
    AppError,
    AuthenticationError,
    ConflictError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from app.core.security import IdentityVerifier, JWTIdentityVerifier
from app.repositories import create_storage
from app.repositories.base import StorageBackend
from app.api.v1.router import api_router


logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[StorageBackend] = None,
    identity_verifier: Optional[IdentityVerifier] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration (defaults to the environment)
        storage: Storage backend (built from settings at startup when omitted)
        identity_verifier: Token verifier (JWT verifier from settings when omitted)
    """
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.
        Builds the storage backend on startup and releases it on shutdown.
        """
        logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
        logger.info(f"Environment: {settings.ENVIRONMENT}")

        owns_storage = app.state.storage is None
        if owns_storage:
            app.state.storage = create_storage(settings)

        # Create tables directly (development only, production uses Alembic)
        if settings.is_development:
            await app.state.storage.initialize()
            logger.info("Storage schema initialized")

        yield

        logger.info("Shutting down...")
        if owns_storage:
            await app.state.storage.close()
            app.state.storage = None
            logger.info("Storage connections closed")

    app = FastAPI(
        title=settings.APP_NAME,
        description="""
## SmartInvoice API

Invoicing backend for small businesses.

* **Profile** - Business profile and invoice defaults
* **Clients** - Client management with invoice statistics
* **Invoices** - Invoices with items, computed totals and status tracking
* **Dashboard** - Pending amount, revenue and month-over-month baselines
* **PDF** - Invoice export
        """,
        version=settings.APP_VERSION,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.storage = storage
    app.state.identity_verifier = identity_verifier or JWTIdentityVerifier.from_settings(settings)

    # CORS Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        """Map domain errors to HTTP responses."""
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        for error_type, code in ERROR_STATUS_CODES.items():
            if isinstance(exc, error_type):
                status_code = code
                break

        headers = None
        detail = exc.message
        if isinstance(exc, AuthenticationError):
            headers = {"WWW-Authenticate": "Bearer"}
        elif status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
            detail = "Storage failure"

        return JSONResponse(
            status_code=status_code,
            content={"detail": detail},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors with a field-level list."""
        errors = []
        for error in exc.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            errors.append({
                "field": field,
                "message": error["msg"],
                "type": error["type"],
            })

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": "Request validation failed",
                "errors": errors,
            },
        )

    # Include API router
    app.include_router(api_router, prefix="/api/v1")

    @app.get(
        "/health",
        tags=["Health"],
        summary="Server health check",
    )
    async def health_check():
        """Check if the API is running."""
        return {
            "status": "healthy",
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "storage": settings.STORAGE_BACKEND,
        }

    return app


app = create_app()


# For running with uvicorn directly
if __name__ == "__main__":
    import os
    import uvicorn

    settings = get_settings()
    port = int(os.getenv("PORT", "8000"))

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=port,
        reload=settings.is_development,
    )

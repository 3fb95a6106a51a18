"""
FastAPI Application Entry Point

This module builds the FastAPI application and configures:
- API routes
- Middleware (request logging, security headers, CORS)
- Rate limiting and error handlers
- Storage lifetime: the Database is created here, kept on app.state and
  disposed on shutdown

Run with:
    uvicorn url_shortener.main:app --host 0.0.0.0 --port 8000
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from url_shortener.api import endpoints
from url_shortener.api.errors import (
    APIError,
    api_error_handler,
    http_exception_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from url_shortener.core.logging import configure_logging, shutdown_logging
from url_shortener.core.rate_limit import (
    add_rate_limit_settings_middleware,
    limiter,
    rate_limit_exceeded_handler,
)
from url_shortener.core.setting import Settings, get_settings
from url_shortener.db.session import Database
from url_shortener.middleware.logging import add_logging_middleware
from url_shortener.middleware.security import add_security_headers_middleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    configure_logging(settings)
    logger.info("Starting %s (%s)", settings.APP_NAME, settings.ENV_SETTING.value)
    logger.info("Base URL: %s", settings.BASE_URL)

    if settings.AUTO_CREATE_TABLES:
        await app.state.database.create_tables()
        logger.info("Database tables initialized successfully")

    yield

    await app.state.database.dispose()
    logger.info("Application shutdown completed")
    shutdown_logging()


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration; defaults to environment-based settings
        database: Storage handle; defaults to one built from settings.DATABASE_URL
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        description="URL shortening service with expiring links and click analytics",
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = database or Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    add_rate_limit_settings_middleware(app)
    if settings.SECURITY_HEADERS_ENABLED:
        add_security_headers_middleware(app)
    add_logging_middleware(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    app.include_router(endpoints.router)

    return app


app = create_app()

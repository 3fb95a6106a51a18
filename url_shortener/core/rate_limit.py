"""
Rate Limiting Configuration

This module provides rate limiting functionality for API endpoints.
Rate limiting prevents abuse and ensures fair usage.

Design Decisions:
- Uses slowapi for rate limiting (lightweight, FastAPI-compatible)
- IP-based limiting
- URL creation carries a stricter limit on top of the default one
- Health checks are not limited
- slowapi evaluates limits without access to the request, so the settings
  of the app serving the current request are published in a context
  variable by RateLimitSettingsMiddleware; several apps in one process
  keep their own limits
"""

import logging
from contextvars import ContextVar
from typing import Optional

from fastapi import FastAPI, Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from url_shortener.api.errors import RATE_LIMIT_EXCEEDED, error_response
from url_shortener.core.setting import Settings, get_settings

logger = logging.getLogger(__name__)

# Initialize rate limiter
# Uses IP address for rate limiting
limiter = Limiter(key_func=get_remote_address)

_request_settings: ContextVar[Optional[Settings]] = ContextVar("rate_limit_settings", default=None)


class RateLimitSettingsMiddleware(BaseHTTPMiddleware):
    """Expose the serving app's settings to the limit providers below."""

    async def dispatch(self, request: Request, call_next):
        token = _request_settings.set(request.app.state.settings)
        try:
            return await call_next(request)
        finally:
            _request_settings.reset(token)


def add_rate_limit_settings_middleware(app: FastAPI) -> None:
    app.add_middleware(RateLimitSettingsMiddleware)


def _settings() -> Settings:
    return _request_settings.get() or get_settings()


def rate_limiting_disabled() -> bool:
    return not _settings().RATE_LIMIT_ENABLED


def default_limit() -> str:
    return _settings().RATE_LIMIT_DEFAULT


def create_limit() -> str:
    # Several limits can be combined with ";" (all of them apply)
    settings = _settings()
    return f"{settings.RATE_LIMIT_CREATE};{settings.RATE_LIMIT_DEFAULT}"


# Rate limit configurations per endpoint
RATE_LIMITS = {
    "create": create_limit,
    "redirect": default_limit,
    "stats": default_limit,
}


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Render slowapi's 429 in the service's uniform error shape."""
    logger.warning("Rate limit exceeded for IP: %s (%s)", get_remote_address(request), exc.detail)
    return error_response(
        429,
        RATE_LIMIT_EXCEEDED,
        "Too many requests from this IP, please try again later."
    )

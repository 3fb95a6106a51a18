"""
FastAPI Endpoints for URL Shortener Service

This module defines all REST API endpoints with minimal logic.
Endpoints only handle:
- Request validation (Pydantic models)
- Rate limiting
- Mapping service exceptions to HTTP responses
- Delegating to the service layer

Route order matters: the catch-all redirect route is registered last.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from url_shortener.api import errors
from url_shortener.api.errors import APIError
from url_shortener.api.schemas import (
    CreateShortURLRequest,
    CreateShortURLResponse,
    HealthResponse,
    StatsResponse,
)
from url_shortener.core.exceptions import (
    CodeGenerationExhaustedError,
    ConflictError,
    DatabaseError,
    GoneError,
    NotFoundError,
    ValidationError,
)
from url_shortener.core.rate_limit import RATE_LIMITS, limiter, rate_limiting_disabled
from url_shortener.core.validators import sanitize_short_code
from url_shortener.db.repository import URLRepository
from url_shortener.db.session import get_session
from url_shortener.services.url_service import ClientInfo, URLService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Handles proxies and load balancers by checking X-Forwarded-For header.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first one
        return forwarded_for.split(",")[0].strip()

    return request.client.host if request.client else "unknown"


def get_url_service(request: Request, session: AsyncSession = Depends(get_session)) -> URLService:
    return URLService(URLRepository(session), base_url=request.app.state.settings.BASE_URL)


def require_short_code(short_code: str) -> str:
    if not short_code or not short_code.strip():
        raise APIError(status.HTTP_400_BAD_REQUEST, errors.MISSING_SHORT_CODE, "Short code is required")
    return short_code.strip()


@router.get(
    "/api/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="Service health check",
)
@router.get("/health", response_model=HealthResponse, tags=["Health"], include_in_schema=False)
async def health_check(request: Request) -> HealthResponse:
    logger.debug("Health check requested")
    return HealthResponse(
        success=True,
        message="URL Shortener service is healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=request.app.state.settings.APP_VERSION,
    )


@router.post(
    "/shorturls",
    response_model=CreateShortURLResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a short URL",
    description="Takes a long URL and returns a short link that expires after the validity period"
)
@limiter.limit(RATE_LIMITS["create"], exempt_when=rate_limiting_disabled)
async def create_short_url(
    request: Request,  # Required for rate limiting (slowapi expects parameter named 'request')
    body: CreateShortURLRequest,
    url_service: URLService = Depends(get_url_service),
) -> CreateShortURLResponse:
    """
    Create a new short URL.

    Raises:
        APIError 400: Missing or invalid input
        APIError 409: Requested short code already in use
        APIError 500: Storage failure or code space exhausted
    """
    logger.info("Received URL shortening request from %s", get_client_ip(request))

    if not body.url or not body.url.strip():
        logger.warning("URL shortening request missing URL parameter")
        raise APIError(status.HTTP_400_BAD_REQUEST, errors.MISSING_URL, "URL is required")

    try:
        result = await url_service.create_short_url(
            body.url,
            shortcode=body.shortcode,
            validity=body.validity,
        )
    except ValidationError as e:
        logger.warning("URL shortening rejected: %s", e)
        raise APIError(status.HTTP_400_BAD_REQUEST, errors.SHORTENING_FAILED, str(e))
    except ConflictError as e:
        logger.warning("URL shortening conflict: %s", e)
        raise APIError(status.HTTP_409_CONFLICT, errors.SHORTENING_FAILED, str(e))
    except CodeGenerationExhaustedError as e:
        logger.error("URL shortening failed: %s", e)
        raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, errors.SHORTENING_FAILED, str(e))
    except DatabaseError:
        logger.exception("URL shortening failed")
        raise APIError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            errors.SHORTENING_FAILED,
            "Failed to create short URL"
        )

    return CreateShortURLResponse(**result)


@router.get(
    "/shorturls/{short_code}",
    response_model=StatsResponse,
    summary="Get URL statistics",
    description="Returns the URL, its validity window, total clicks and per-click details"
)
@limiter.limit(RATE_LIMITS["stats"], exempt_when=rate_limiting_disabled)
async def get_url_stats(
    short_code: str,
    request: Request,  # Required for rate limiting
    url_service: URLService = Depends(get_url_service),
) -> StatsResponse:
    """
    Get statistics for a short URL. Expired and inactive URLs are included.

    Raises:
        APIError 400: Blank short code
        APIError 404: Short code not found
        APIError 500: Storage failure
    """
    short_code = require_short_code(short_code)
    logger.info("Stats request for short code: %s", short_code)

    sanitized_code = sanitize_short_code(short_code)
    if not sanitized_code:
        raise APIError(status.HTTP_404_NOT_FOUND, errors.STATS_RETRIEVAL_FAILED, "Short URL not found")

    try:
        stats = await url_service.get_url_stats(sanitized_code)
    except NotFoundError as e:
        raise APIError(status.HTTP_404_NOT_FOUND, errors.STATS_RETRIEVAL_FAILED, str(e))
    except DatabaseError:
        logger.exception("Stats retrieval failed for %s", sanitized_code)
        raise APIError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            errors.STATS_RETRIEVAL_FAILED,
            "Failed to retrieve statistics"
        )

    return StatsResponse(**stats)


@router.get(
    "/{short_code}",
    status_code=status.HTTP_302_FOUND,
    summary="Redirect to original URL",
    description="Takes a short code and redirects to the original long URL"
)
@limiter.limit(RATE_LIMITS["redirect"], exempt_when=rate_limiting_disabled)
async def redirect_to_url(
    short_code: str,
    request: Request,
    url_service: URLService = Depends(get_url_service),
) -> RedirectResponse:
    """
    Redirect to the original URL for a given short code.

    Raises:
        APIError 400: Blank short code
        APIError 404: Short code not found
        APIError 410: Short URL expired or inactive
        APIError 500: Storage failure
    """
    short_code = require_short_code(short_code)
    logger.info("Redirect request for short code: %s", short_code)

    sanitized_code = sanitize_short_code(short_code)
    if not sanitized_code:
        raise APIError(status.HTTP_404_NOT_FOUND, errors.REDIRECT_FAILED, "Short URL not found")

    client_info = ClientInfo(
        ip=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
        referrer=request.headers.get("Referer") or request.headers.get("Referrer"),
    )

    try:
        original_url = await url_service.get_original_url(sanitized_code, client_info)
    except NotFoundError as e:
        raise APIError(status.HTTP_404_NOT_FOUND, errors.REDIRECT_FAILED, str(e))
    except GoneError as e:
        logger.info("Redirect refused for %s: %s", sanitized_code, e)
        raise APIError(status.HTTP_410_GONE, errors.REDIRECT_FAILED, str(e))
    except DatabaseError:
        logger.exception("Redirect failed for %s", sanitized_code)
        raise APIError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            errors.REDIRECT_FAILED,
            "Failed to redirect"
        )

    logger.info("Redirecting %s to %s", sanitized_code, original_url)
    return RedirectResponse(url=original_url, status_code=status.HTTP_302_FOUND)

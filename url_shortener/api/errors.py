"""
API Error Responses

Every rejection leaves the service in the same shape:

    {"success": false, "error": "<CODE>", "message": "<human text>"}

Endpoints raise APIError; the handlers registered in main.py render it.
Handlers for framework-level errors (request validation, unknown routes,
unhandled exceptions) live here too so the shape is defined in one place.
"""

import logging

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from url_shortener.api.schemas import ErrorResponse

logger = logging.getLogger(__name__)

MISSING_URL = "MISSING_URL"
VALIDATION_ERROR = "VALIDATION_ERROR"
SHORTENING_FAILED = "SHORTENING_FAILED"
MISSING_SHORT_CODE = "MISSING_SHORT_CODE"
REDIRECT_FAILED = "REDIRECT_FAILED"
STATS_RETRIEVAL_FAILED = "STATS_RETRIEVAL_FAILED"
RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
NOT_FOUND = "NOT_FOUND"
INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


class APIError(Exception):
    """An error that maps directly onto an HTTP response."""

    def __init__(self, status_code: int, error: str, message: str):
        self.status_code = status_code
        self.error = error
        self.message = message
        super().__init__(f"{status_code} {error}: {message}")


def error_response(status_code: int, error: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=error, message=message)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def _validation_message(error: dict) -> str:
    message = error.get("msg", "Invalid value")
    # pydantic prefixes messages raised from custom validators
    return message.removeprefix("Value error, ")


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    return error_response(exc.status_code, exc.error, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = ", ".join(_validation_message(error) for error in exc.errors())
    logger.warning("Validation failed: %s", message)
    return error_response(status.HTTP_400_BAD_REQUEST, VALIDATION_ERROR, message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        return error_response(exc.status_code, INTERNAL_SERVER_ERROR, "An unexpected error occurred")

    if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
        logger.warning("404 - Route not found: %s %s", request.method, request.url.path)
        return error_response(status.HTTP_404_NOT_FOUND, NOT_FOUND, "Route not found")

    return error_response(exc.status_code, VALIDATION_ERROR, str(exc.detail))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        INTERNAL_SERVER_ERROR,
        "An unexpected error occurred"
    )

"""
API Request and Response Schemas

This module defines all Pydantic models for API requests and responses.
Separated from endpoints to keep concerns separated and enable reuse.

Design Principles:
- Request models: first line of input validation (shape, bounds, format)
- Response models: camelCase JSON keys, snake_case attributes
- The service layer re-validates everything; these checks only produce
  early, aggregated messages for the client
"""

import re
from typing import List, Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

from url_shortener.core.validators import (
    MAX_URL_LENGTH,
    MAX_VALIDITY_MINUTES,
    MIN_VALIDITY_MINUTES,
    normalize_url,
)
from url_shortener.core.exceptions import InvalidURLError
from url_shortener.services.short_code_generator import (
    MAX_CODE_LENGTH,
    MIN_CODE_LENGTH,
    REQUEST_RESERVED_WORDS,
)

_ALPHANUMERIC_RE = re.compile(r"^[a-zA-Z0-9]+$")


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateShortURLRequest(BaseModel):
    """Request model for POST /shorturls."""
    url: Optional[str] = Field(default=None, description="The long URL to shorten")
    shortcode: Optional[str] = Field(default=None, description="Optional custom short code")
    validity: Optional[int] = Field(default=None, description="Lifetime in minutes (default 30)")

    @field_validator("url")
    @classmethod
    def check_url(cls, value: Optional[str]) -> Optional[str]:
        # Empty values are reported as MISSING_URL by the endpoint
        if not value:
            return value
        if len(value) > MAX_URL_LENGTH:
            raise ValueError(f"URL cannot exceed {MAX_URL_LENGTH} characters")
        try:
            parsed = urlparse(normalize_url(value))
            parsed.port
        except (InvalidURLError, ValueError):
            raise ValueError("Invalid URL format")
        if not parsed.hostname:
            raise ValueError("Invalid URL format")
        return value

    @field_validator("shortcode")
    @classmethod
    def check_shortcode(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        errors = []
        if not MIN_CODE_LENGTH <= len(value) <= MAX_CODE_LENGTH:
            errors.append(
                f"Shortcode must be between {MIN_CODE_LENGTH} and {MAX_CODE_LENGTH} characters"
            )
        if not _ALPHANUMERIC_RE.match(value):
            errors.append("Shortcode can only contain alphanumeric characters")
        if value.lower() in REQUEST_RESERVED_WORDS:
            errors.append("Shortcode cannot be a reserved word")
        if errors:
            raise ValueError(", ".join(errors))
        return value

    @field_validator("validity", mode="before")
    @classmethod
    def reject_boolean_validity(cls, value):
        # JSON true/false would otherwise be coerced to 1/0
        if isinstance(value, bool):
            raise ValueError("Validity must be an integer number of minutes")
        return value

    @field_validator("validity")
    @classmethod
    def check_validity(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and not MIN_VALIDITY_MINUTES <= value <= MAX_VALIDITY_MINUTES:
            raise ValueError(
                f"Validity must be between {MIN_VALIDITY_MINUTES} and "
                f"{MAX_VALIDITY_MINUTES} minutes (1 year)"
            )
        return value


class CreateShortURLResponse(CamelModel):
    """Response model for POST /shorturls."""
    short_link: str = Field(..., alias="shortLink", description="The complete short URL")
    expiry: str = Field(..., description="ISO-8601 expiry timestamp")


class ClickData(CamelModel):
    timestamp: str
    referrer: Optional[str] = None
    location: str
    ip_address: str = Field(..., alias="ipAddress")
    user_agent: str = Field(..., alias="userAgent")


class StatsResponse(CamelModel):
    """Response model for GET /shorturls/{short_code}."""
    short_code: str = Field(..., alias="shortCode")
    original_url: str = Field(..., alias="originalUrl")
    created_at: str = Field(..., alias="createdAt")
    expires_at: str = Field(..., alias="expiresAt")
    total_clicks: int = Field(..., alias="totalClicks")
    click_data: List[ClickData] = Field(default_factory=list, alias="clickData")


class HealthResponse(BaseModel):
    success: bool = True
    message: str
    timestamp: str
    version: str


class ErrorResponse(BaseModel):
    success: Literal[False] = False
    error: str
    message: str

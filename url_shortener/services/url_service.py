"""
URL Shortening Service

This service handles the core business logic:
- Creating short URLs (validate -> pick a code -> compute expiry -> persist)
- Resolving short codes for redirection, with lazy deactivation of expired
  URLs and access analytics
- Assembling usage statistics

Design Decisions:
- Storage is reached only through URLRepository, passed in by the caller
- The clock is injectable so expiry logic is testable
- Side effects are split into two paths:
  * must-succeed (insert, counter update): errors propagate
  * best-effort (analytics insert, deactivation on expiry, click history
    read): errors are logged and swallowed by run_best_effort()
- access_count is the authoritative click total; it can run ahead of the
  analytics rows when a best-effort insert failed
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional, TypeVar

from url_shortener.core.exceptions import (
    DatabaseError,
    DuplicateShortCodeError,
    ShortCodeConflictError,
    ShortCodeNotFoundError,
    ShortURLExpiredError,
    ShortURLInactiveError,
)
from url_shortener.core.validators import (
    calculate_expiry,
    is_expired,
    isoformat_utc,
    utcnow,
    validate_url,
    validate_validity,
)
from url_shortener.db.models import AccessRecord, ShortURL
from url_shortener.db.repository import URLRepository
from url_shortener.services.geo_location import UNKNOWN_LOCATION, get_location_from_ip
from url_shortener.services.short_code_generator import generate_unique_code

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ClientInfo:
    """Request metadata recorded with each access."""
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: Optional[str] = None


async def run_best_effort(label: str, operation: Awaitable[T], default: Optional[T] = None) -> Optional[T]:
    """
    Await a side effect whose failure must not change the caller's outcome.

    Storage errors are logged and ``default`` is returned instead.
    """
    try:
        return await operation
    except DatabaseError:
        logger.warning("Best-effort operation failed: %s", label, exc_info=True)
        return default


class URLService:
    """
    Core business logic for URL shortening.

    Separated from the API layer for testability: everything it needs
    (repository, base URL, clock) is passed in.
    """

    def __init__(
        self,
        repository: URLRepository,
        base_url: str,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.base_url = base_url.rstrip("/")
        self.clock = clock

    async def is_code_available(self, short_code: str) -> bool:
        return not await self.repository.code_exists(short_code)

    async def create_short_url(
        self,
        url: str,
        shortcode: Optional[str] = None,
        validity: Optional[int] = None,
    ) -> dict:
        """
        Create a new short URL.

        Args:
            url: The long URL to shorten (https:// is assumed when no scheme)
            shortcode: Optional custom short code
            validity: Optional lifetime in minutes (default 30)

        Returns:
            {"shortLink": <base URL>/<code>, "expiry": <ISO-8601>}

        Raises:
            InvalidURLError, InvalidValidityError, InvalidShortCodeError:
                Input rejected
            ShortCodeConflictError: Custom code taken (or lost an insert race)
            CodeGenerationExhaustedError: No free random code found
            DatabaseError: Storage failure
        """
        logger.info("Creating short URL for: %s", url)

        normalized_url = validate_url(url)
        valid_minutes = validate_validity(validity)

        short_code = await generate_unique_code(self.is_code_available, custom_code=shortcode)

        now = self.clock()
        expires_at = calculate_expiry(valid_minutes, now)

        short_url = ShortURL(
            original_url=normalized_url,
            short_code=short_code,
            created_at=now,
            expires_at=expires_at,
            is_active=True,
            access_count=0,
        )
        try:
            await self.repository.insert_url(short_url)
        except DuplicateShortCodeError:
            logger.warning("Short code %s was taken between check and insert", short_code)
            raise ShortCodeConflictError(short_code)

        logger.info("Short URL created successfully: %s", short_code)
        return {
            "shortLink": f"{self.base_url}/{short_code}",
            "expiry": isoformat_utc(expires_at),
        }

    async def get_original_url(self, short_code: str, client_info: Optional[ClientInfo] = None) -> str:
        """
        Resolve a short code for redirection and record the access.

        Raises:
            ShortCodeNotFoundError: Unknown code
            ShortURLInactiveError: Code was deactivated earlier
            ShortURLExpiredError: Code expired now (it is deactivated as a side effect)
            DatabaseError: Lookup or counter update failed
        """
        logger.info("Retrieving original URL for: %s", short_code)

        short_url = await self.repository.find_by_code(short_code)
        if short_url is None:
            raise ShortCodeNotFoundError(short_code)

        if not short_url.is_active:
            raise ShortURLInactiveError(short_code)

        original_url = short_url.original_url
        now = self.clock()

        if is_expired(short_url.expires_at, now):
            await run_best_effort(
                f"deactivate {short_code}",
                self.repository.deactivate(short_code),
            )
            raise ShortURLExpiredError(short_code)

        client_info = client_info or ClientInfo()
        record = AccessRecord(
            short_code=short_code,
            accessed_at=now,
            ip_address=client_info.ip,
            user_agent=client_info.user_agent,
            referrer=client_info.referrer,
            location=get_location_from_ip(client_info.ip or ""),
        )
        await run_best_effort(
            f"record analytics for {short_code}",
            self.repository.insert_access_record(record),
        )

        await self.repository.update_access_info(short_code, accessed_at=now)

        logger.info("URL accessed successfully: %s -> %s", short_code, original_url)
        return original_url

    async def get_url_stats(self, short_code: str) -> dict:
        """
        Usage statistics for a short code, regardless of its active/expired state.

        totalClicks is the stored counter; clickData lists recorded accesses,
        most recent first.

        Raises:
            ShortCodeNotFoundError: Unknown code
            DatabaseError: Lookup failed
        """
        logger.info("Retrieving stats for: %s", short_code)

        short_url = await self.repository.find_by_code(short_code)
        if short_url is None:
            raise ShortCodeNotFoundError(short_code)

        records = await run_best_effort(
            f"load click data for {short_code}",
            self.repository.list_access_records(short_code),
            default=[],
        )

        return {
            "shortCode": short_url.short_code,
            "originalUrl": short_url.original_url,
            "createdAt": isoformat_utc(short_url.created_at),
            "expiresAt": isoformat_utc(short_url.expires_at),
            "totalClicks": short_url.access_count or 0,
            "clickData": [
                {
                    "timestamp": isoformat_utc(record.accessed_at),
                    "referrer": record.referrer,
                    "location": record.location or UNKNOWN_LOCATION,
                    "ipAddress": record.ip_address or "Unknown",
                    "userAgent": record.user_agent or "Unknown",
                }
                for record in records
            ],
        }

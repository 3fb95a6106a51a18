"""
Input Validators and Sanitizers

This module provides validation functions for user inputs and the
time helpers used for expiry bookkeeping.

Security Considerations:
- Only http/https targets are accepted
- Targets on localhost or private networks are rejected, so the service
  cannot be used to mint redirects into private infrastructure
- Length limits prevent DoS attacks
"""

import ipaddress
import logging
import re
import socket
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union
from urllib.parse import urlparse

from url_shortener.core.exceptions import InvalidURLError, InvalidValidityError

logger = logging.getLogger(__name__)

MAX_URL_LENGTH = 2048
ALLOWED_SCHEMES = frozenset({"http", "https"})
DEFAULT_SCHEME = "https"

DEFAULT_VALIDITY_MINUTES = 30
MIN_VALIDITY_MINUTES = 1
MAX_VALIDITY_MINUTES = 525600  # one year

MAX_SHORT_CODE_LENGTH = 20

_SCHEME_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.-]*)://")
_PSEUDO_SCHEME_RE = re.compile(r"^(javascript|data|file|vbscript|mailto):", re.IGNORECASE)
_SHORT_CODE_RE = re.compile(r"^[0-9a-zA-Z]+$")
_NUMERIC_LABEL_RE = re.compile(r"^(0x[0-9a-f]+|[0-9]+)$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat_utc(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return ensure_utc(value).isoformat()


def sanitize_short_code(short_code: str) -> Optional[str]:
    """
    Sanitize and validate short code format.

    Short codes should only contain base62 characters: [0-9a-zA-Z]
    This prevents injection attacks and ensures consistency.

    Args:
        short_code: The short code to sanitize

    Returns:
        Sanitized short code if valid, None otherwise
    """
    if not short_code or not isinstance(short_code, str):
        return None

    short_code = short_code.strip()

    if not short_code or len(short_code) > MAX_SHORT_CODE_LENGTH:
        return None

    if not _SHORT_CODE_RE.match(short_code):
        return None

    return short_code


def _canonical_ipv4(hostname: str) -> Optional[ipaddress.IPv4Address]:
    """
    Resolve numeric IPv4 spellings the way browsers do: shorthand
    (``127.1``), octal (``0177.0.0.1``) and hex (``0x7f.0.0.1``) labels.
    """
    labels = hostname.split(".")
    if len(labels) > 4 or not all(_NUMERIC_LABEL_RE.match(label) for label in labels):
        return None
    try:
        return ipaddress.IPv4Address(socket.inet_aton(hostname))
    except OSError:
        return None


def _parse_ip(hostname: str) -> Optional[Union[ipaddress.IPv4Address, ipaddress.IPv6Address]]:
    try:
        return ipaddress.ip_address(hostname)
    except ValueError:
        return _canonical_ipv4(hostname)


def _normalize_hostname(hostname: str) -> str:
    hostname = hostname.lower().strip("[]")
    if hostname.endswith("."):
        hostname = hostname[:-1]
    return hostname


def is_private_or_localhost(hostname: str) -> bool:
    """
    Check whether a hostname is a localhost name or an IP address (in any
    numeric spelling) in a loopback, private or link-local range.
    """
    hostname = _normalize_hostname(hostname)
    if hostname == "localhost" or hostname.endswith(".localhost"):
        return True

    address = _parse_ip(hostname)
    if address is None:
        return False

    return (
        address.is_loopback
        or address.is_private
        or address.is_link_local
        or address.is_unspecified
    )


def _is_ip_literal(hostname: str) -> bool:
    return _parse_ip(_normalize_hostname(hostname)) is not None


def normalize_url(url: str) -> str:
    """
    Trim the URL and prepend https:// when no scheme is present.

    Raises:
        InvalidURLError: If the URL carries a scheme that is not allowed
    """
    normalized = url.strip()

    match = _SCHEME_RE.match(normalized)
    if match:
        if match.group(1).lower() not in ALLOWED_SCHEMES:
            raise InvalidURLError(url, reason="Only HTTP and HTTPS protocols are allowed")
        return normalized

    if _PSEUDO_SCHEME_RE.match(normalized):
        raise InvalidURLError(url, reason="Only HTTP and HTTPS protocols are allowed")

    return f"{DEFAULT_SCHEME}://{normalized}"


def validate_url(url: Any) -> str:
    """
    Validate a URL and return its normalized form.

    Args:
        url: The raw URL supplied by the client

    Returns:
        Normalized absolute URL with an explicit http/https scheme

    Raises:
        InvalidURLError: If the URL is missing, too long, malformed, uses a
            disallowed scheme or points at localhost/private networks
    """
    if not url or not isinstance(url, str):
        raise InvalidURLError(url, reason="URL is required and must be a string")

    if len(url) > MAX_URL_LENGTH:
        raise InvalidURLError(url, reason=f"URL cannot exceed {MAX_URL_LENGTH} characters")

    normalized = normalize_url(url)

    if any(char.isspace() for char in normalized):
        raise InvalidURLError(url, reason="Invalid URL format")

    try:
        parsed = urlparse(normalized)
        hostname = parsed.hostname
        # Accessing .port validates it
        parsed.port
    except ValueError:
        raise InvalidURLError(url, reason="Invalid URL format")

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise InvalidURLError(url, reason="Only HTTP and HTTPS protocols are allowed")

    if not parsed.netloc or not hostname:
        raise InvalidURLError(url, reason="Invalid URL format")

    if is_private_or_localhost(hostname):
        raise InvalidURLError(
            url,
            reason="URLs pointing to localhost or private networks are not allowed"
        )

    if "." not in hostname and not _is_ip_literal(hostname):
        raise InvalidURLError(url, reason="Invalid URL format")

    if len(normalized) > MAX_URL_LENGTH:
        raise InvalidURLError(url, reason=f"URL cannot exceed {MAX_URL_LENGTH} characters")

    logger.debug("URL validated successfully: %s", normalized)
    return normalized


def validate_validity(minutes: Any = None) -> int:
    """
    Validate a validity period in minutes.

    Args:
        minutes: Requested lifetime; None selects the default of 30 minutes

    Returns:
        The validated number of minutes

    Raises:
        InvalidValidityError: If the value is not an integer in [1, 525600].
            Out-of-range values are rejected, never clamped.
    """
    if minutes is None:
        return DEFAULT_VALIDITY_MINUTES

    if isinstance(minutes, bool):
        raise InvalidValidityError(minutes, "Validity must be an integer number of minutes")

    if isinstance(minutes, float) and minutes.is_integer():
        minutes = int(minutes)

    if not isinstance(minutes, int):
        raise InvalidValidityError(minutes, "Validity must be an integer number of minutes")

    if minutes < MIN_VALIDITY_MINUTES:
        raise InvalidValidityError(
            minutes, f"Validity must be at least {MIN_VALIDITY_MINUTES} minute"
        )

    if minutes > MAX_VALIDITY_MINUTES:
        raise InvalidValidityError(
            minutes, f"Validity cannot exceed {MAX_VALIDITY_MINUTES} minutes (1 year)"
        )

    return minutes


def calculate_expiry(valid_minutes: int, now: datetime) -> datetime:
    return now + timedelta(minutes=valid_minutes)


def is_expired(expires_at: datetime, now: datetime) -> bool:
    """Strict comparison: a URL is still valid at exactly its expiry instant."""
    return ensure_utc(now) > ensure_utc(expires_at)

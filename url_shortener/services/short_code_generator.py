"""
Short Code Generator

Produces random short codes and validates client-chosen ones.

Design Decisions:
- Base62 alphabet [0-9A-Za-z]: URL-safe, case-sensitive, compact
- Random codes (secrets module) instead of sequential IDs: codes are not
  guessable from one another
- Uniqueness is checked through an injected async predicate, so this module
  has no storage dependency and can be tested without a database
- Custom codes are never varied: a taken custom code is a conflict, while a
  taken random code is simply retried
"""

import logging
import re
import secrets
import string
from typing import Awaitable, Callable, Optional

from url_shortener.core.exceptions import (
    CodeGenerationExhaustedError,
    InvalidShortCodeError,
    ShortCodeConflictError,
)

logger = logging.getLogger(__name__)

ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
DEFAULT_CODE_LENGTH = 6
MIN_CODE_LENGTH = 3
MAX_CODE_LENGTH = 20
DEFAULT_MAX_RETRIES = 10

# Codes that would shadow routes or look official
RESERVED_WORDS = frozenset({"api", "admin", "www", "app", "stats", "analytics", "health"})
# The request layer also guards the collection route name
REQUEST_RESERVED_WORDS = RESERVED_WORDS | {"shorturls"}

_CODE_RE = re.compile(r"^[a-zA-Z0-9]+$")

AvailabilityCheck = Callable[[str], Awaitable[bool]]


def generate_random_code(length: int = DEFAULT_CODE_LENGTH) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def validate_custom_code(code: str, reserved_words: frozenset = RESERVED_WORDS) -> None:
    """
    Validate a client-chosen short code.

    Args:
        code: The requested short code
        reserved_words: Lower-case words that may not be used as codes

    Raises:
        InvalidShortCodeError: With a reason describing the first failed rule
    """
    if not code:
        raise InvalidShortCodeError(code, "Short code cannot be empty")

    if len(code) < MIN_CODE_LENGTH:
        raise InvalidShortCodeError(
            code, f"Short code must be at least {MIN_CODE_LENGTH} characters long"
        )

    if len(code) > MAX_CODE_LENGTH:
        raise InvalidShortCodeError(
            code, f"Short code cannot exceed {MAX_CODE_LENGTH} characters"
        )

    if not _CODE_RE.match(code):
        raise InvalidShortCodeError(
            code, "Short code can only contain alphanumeric characters"
        )

    if code.lower() in reserved_words:
        raise InvalidShortCodeError(code, "Short code cannot be a reserved word")


async def generate_unique_code(
    is_available: AvailabilityCheck,
    custom_code: Optional[str] = None,
    max_retries: int = DEFAULT_MAX_RETRIES,
    generate: Callable[[], str] = generate_random_code,
) -> str:
    """
    Return a short code that is not yet in use.

    Args:
        is_available: Async predicate, True when the code is free
        custom_code: Client-chosen code; validated and used as-is
        max_retries: Number of random codes to try before giving up
        generate: Random code factory

    Returns:
        The custom code, or the first free random code

    Raises:
        InvalidShortCodeError: Custom code fails format checks
        ShortCodeConflictError: Custom code is already taken
        CodeGenerationExhaustedError: Every random attempt collided
    """
    if custom_code is not None:
        validate_custom_code(custom_code)

        if not await is_available(custom_code):
            raise ShortCodeConflictError(custom_code)

        logger.info("Using custom short code: %s", custom_code)
        return custom_code

    for attempt in range(1, max_retries + 1):
        code = generate()
        if await is_available(code):
            logger.info("Generated unique short code: %s (attempt %d)", code, attempt)
            return code

        logger.warning("Short code collision detected: %s (attempt %d)", code, attempt)

    logger.error("Gave up generating a short code after %d attempts", max_retries)
    raise CodeGenerationExhaustedError(max_retries)

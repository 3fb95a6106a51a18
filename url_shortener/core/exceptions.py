"""
Custom Exceptions

This module defines the exception hierarchy used by the service layer.
The API layer maps each family to an HTTP status code:

- ValidationError  -> 400
- ConflictError    -> 409
- NotFoundError    -> 404
- GoneError        -> 410
- DatabaseError    -> 500
"""

from typing import Optional


class URLShortenerException(Exception):
    """Base exception for URL shortener service."""
    pass


class ValidationError(URLShortenerException):
    """Raised when user input is rejected."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class InvalidURLError(ValidationError):
    """Raised when URL validation fails."""

    def __init__(self, url: object, reason: str = "Invalid URL format"):
        self.url = url
        super().__init__(reason)


class InvalidValidityError(ValidationError):
    """Raised when the requested validity period is out of bounds."""

    def __init__(self, minutes: object, reason: str):
        self.minutes = minutes
        super().__init__(reason)


class InvalidShortCodeError(ValidationError):
    """Raised when a custom short code fails format or reserved-word checks."""

    def __init__(self, short_code: object, reason: str):
        self.short_code = short_code
        super().__init__(reason)


class ConflictError(URLShortenerException):
    pass


class ShortCodeConflictError(ConflictError):
    """Raised when a requested short code is already taken."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__("Custom short code is already in use")


class NotFoundError(URLShortenerException):
    pass


class ShortCodeNotFoundError(NotFoundError):
    """Raised when a short code is not found in the database."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__("Short URL not found")


class GoneError(URLShortenerException):
    """Raised when a short URL exists but can no longer be followed."""
    pass


class ShortURLExpiredError(GoneError):

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__("Short URL has expired")


class ShortURLInactiveError(GoneError):

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__("Short URL is inactive")


class CodeGenerationExhaustedError(URLShortenerException):
    """Raised when no free random code was found within the retry budget."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__("Failed to generate unique short code after maximum retries")


class DatabaseError(URLShortenerException):
    """Raised when database operations fail."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")


class DuplicateShortCodeError(DatabaseError):
    """Raised when an insert hits the unique constraint on short_code."""

    def __init__(self, short_code: str, original_error: Optional[Exception] = None):
        self.short_code = short_code
        super().__init__(
            f"short code '{short_code}' violates unique constraint",
            original_error=original_error
        )

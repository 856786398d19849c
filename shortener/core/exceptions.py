"""
Custom Exceptions

This module defines custom exceptions for better error handling
and more specific error messages.

Cache misses and admission rejections are not exceptions: a miss is a
``None`` lookup result and a rejection is an ``AdmissionResult`` with
``allowed=False``. Persistence failures are not wrapped and reach the
caller unchanged.
"""


class URLShortenerException(Exception):
    """Base exception for URL shortener service."""

    status_code = 500


class InvalidURLError(URLShortenerException):
    """Raised when URL validation fails."""

    status_code = 400

    def __init__(self, url: str, reason: str = "Invalid URL format"):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason}: {url}")


class InvalidExpirationError(URLShortenerException):
    """Raised when an expiration date is malformed or not in the future."""

    status_code = 400

    def __init__(self, reason: str = "Expiration date must be in the future"):
        self.reason = reason
        super().__init__(reason)


class ShortCodeNotFoundError(URLShortenerException):
    """Raised when a short code is not found in the database."""

    status_code = 404

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' not found")


class ShortURLExpiredError(URLShortenerException):
    """Raised when a short code exists but its canonical record has expired."""

    status_code = 410

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' has expired")


class AllocationExhaustedError(URLShortenerException):
    """Raised when every generated short code collided with an existing one."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Failed to generate a unique short code after {attempts} attempts"
        )

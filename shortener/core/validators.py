"""
Input Validators and Sanitizers

This module provides validation and sanitization functions for user inputs.
These functions help prevent security issues and ensure data integrity.

Security Considerations:
- Input validation prevents injection attacks
- Length limits prevent DoS attacks
"""

import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

SHORT_CODE_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')

ALLOWED_SCHEMES = {'http', 'https'}


def sanitize_short_code(short_code: str) -> Optional[str]:
    """
    Sanitize and validate short code format.

    Short codes only contain URL-safe characters: [A-Za-z0-9_-]

    Args:
        short_code: The short code to sanitize

    Returns:
        Sanitized short code if valid, None otherwise
    """
    if not short_code or not isinstance(short_code, str):
        return None

    short_code = short_code.strip()

    # Generated codes are 7 chars; anything much longer is not ours
    if len(short_code) > 20:
        return None

    if not SHORT_CODE_PATTERN.match(short_code):
        return None

    return short_code


def validate_url_length(url: str, max_length: int = 2048) -> bool:
    """
    Validate URL length to prevent DoS attacks.

    Args:
        url: The URL to validate
        max_length: Maximum allowed length (default: 2048 per RFC 7230)

    Returns:
        True if URL length is valid, False otherwise
    """
    return bool(url) and len(url) <= max_length


def is_valid_url(url: str, max_length: int = 2048) -> bool:
    """
    Validate URL format.

    Checks that the URL uses http/https and has a host. Other schemes
    (javascript:, file:, data:, ...) are rejected.

    Args:
        url: The URL string to validate
        max_length: Maximum accepted length

    Returns:
        True if valid, False otherwise
    """
    if not url or not isinstance(url, str):
        return False

    if not validate_url_length(url, max_length):
        return False

    try:
        result = urlparse(url.strip())
    except ValueError:
        return False

    if result.scheme.lower() not in ALLOWED_SCHEMES:
        return False

    return bool(result.hostname)


def normalize_category(category: Optional[str]) -> Optional[str]:
    """Lowercase and trim a category label; blank labels become None."""
    if category is None:
        return None
    category = category.strip().lower()
    return category or None


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_future(value: datetime, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return ensure_aware(value) > now

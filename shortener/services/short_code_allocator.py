"""
Short Code Allocator

Generates random fixed-length short codes and checks the repository until
it finds one that is not taken.

Design Decisions:
- Random codes over the URL-safe alphabet [A-Za-z0-9_-] (64 symbols);
  7 characters give 64^7 (~4.4e12) codes, so collisions are rare
- Bounded probing: after max_attempts collisions the allocation fails with
  AllocationExhaustedError instead of retrying forever
- Repository errors are not caught here
"""

import logging
import secrets
import string
from typing import Callable, Optional

from shortener.core.exceptions import AllocationExhaustedError
from shortener.db.repository import URLRepository

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_letters + string.digits + "_-"

DEFAULT_CODE_LENGTH = 7
DEFAULT_MAX_ATTEMPTS = 5


def generate_short_code(length: int = DEFAULT_CODE_LENGTH) -> str:
    """Return a random code of ``length`` characters from CODE_ALPHABET."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


class ShortCodeAllocator:
    """
    Allocates short codes that are unused in the repository.

    The check is a plain lookup, so two concurrent allocations can still pick
    the same fresh code; the unique index on short_code rejects the second
    insert.
    """

    def __init__(
        self,
        repository: URLRepository,
        length: int = DEFAULT_CODE_LENGTH,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        code_factory: Optional[Callable[[], str]] = None
    ):
        """
        Initialize the allocator.

        Args:
            repository: Store searched for existing codes
            length: Length of generated codes
            max_attempts: Codes tried before giving up
            code_factory: Zero-argument code generator (defaults to random codes of ``length``)
        """
        if max_attempts <= 0:
            raise ValueError("max_attempts must be positive")

        self.repository = repository
        self.length = length
        self.max_attempts = max_attempts
        self._code_factory = code_factory or (lambda: generate_short_code(self.length))

    async def allocate(self) -> str:
        """
        Return a short code not present in the repository.

        Raises:
            AllocationExhaustedError: If every attempt collided
        """
        for attempt in range(1, self.max_attempts + 1):
            code = self._code_factory()
            existing = await self.repository.find_by_short_code(code)
            if existing is None:
                return code
            logger.debug(f"Short code collision on attempt {attempt}: {code}")

        logger.error(f"Failed to generate unique short code after {self.max_attempts} attempts")
        raise AllocationExhaustedError(self.max_attempts)

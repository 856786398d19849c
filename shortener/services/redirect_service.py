"""
Redirect Service

This service handles URL redirection logic.

Lookup order:
1. Fingerprint cache. A hit redirects immediately; the click is recorded
   afterwards by a background task so the response never waits on it.
2. Canonical record. A miss reads the database, refuses expired links,
   backfills the cache and records the click before redirecting.

Only non-expiring mappings are ever cached (see url_service), so a cache hit
never needs an expiry check. The backfill is conditional on the cache
eviction generation read before the database lookup: a delete or expiry
update that lands while the lookup is in flight wins over the stale read.
"""

import logging
from dataclasses import dataclass

from shortener.core.cache import FingerprintCache
from shortener.core.exceptions import ShortCodeNotFoundError, ShortURLExpiredError
from shortener.db.repository import Click, URLRepository
from shortener.services.url_service import remember_in_cache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RedirectTarget:
    """
    Where to send the client.

    ``click_recorded`` is False on the cache-hit path: the caller is expected
    to schedule the click increment without waiting for it.
    """
    short_code: str
    url: str
    from_cache: bool
    click_recorded: bool


class RedirectService:
    """Service for handling URL redirections."""

    def __init__(self, repository: URLRepository, cache: FingerprintCache):
        """
        Initialize the redirect service.

        Args:
            repository: Canonical short URL store
            cache: Shared fingerprint cache
        """
        self.repository = repository
        self.cache = cache

    async def resolve(self, short_code: str, click: Click) -> RedirectTarget:
        """
        Resolve a short code to its target URL.

        Args:
            short_code: The short code to look up
            click: Click details recorded on the cache-miss path

        Returns:
            RedirectTarget for the code

        Raises:
            ShortCodeNotFoundError: If the code does not exist
            ShortURLExpiredError: If the canonical record has expired
        """
        cached_url = self.cache.get(short_code)
        if cached_url is not None:
            return RedirectTarget(
                short_code=short_code,
                url=cached_url,
                from_cache=True,
                click_recorded=False,
            )

        generation = self.cache.generation(short_code)
        record = await self.repository.find_by_short_code(short_code)
        if record is None:
            logger.warning(f"Short code not found: {short_code}")
            raise ShortCodeNotFoundError(short_code)

        if record.is_expired():
            logger.warning(f"Expired URL access attempted: {short_code}")
            raise ShortURLExpiredError(short_code)

        remember_in_cache(self.cache, record, generation)
        await self.repository.increment_clicks_and_append_history(short_code, click)

        return RedirectTarget(
            short_code=short_code,
            url=record.original_url,
            from_cache=False,
            click_recorded=True,
        )

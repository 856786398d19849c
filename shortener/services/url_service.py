"""
URL Shortening Service

This service handles the write side of URL shortening:
- Idempotent creation: the same target URL always maps to the same code
- Code allocation through ShortCodeAllocator
- Keeping the fingerprint cache in step with the canonical records
- Deletion, expiration updates and bulk creation

Design Decisions:
- Records with an expiry are never cached. Expiry is decided from the
  canonical record only, so a cache hit must never need it.
- The cache is written after the database, and evicted after a delete, so
  it never holds a mapping the database has not seen. Writes that follow a
  database read are conditional on the cache eviction generation taken
  before the read.
- Repeat creation of an existing target leaves the cache alone; the
  redirect path backfills it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy.exc import IntegrityError

from shortener.core.cache import FingerprintCache
from shortener.core.exceptions import (
    InvalidExpirationError,
    InvalidURLError,
    ShortCodeNotFoundError,
    URLShortenerException,
)
from shortener.core.validators import ensure_aware, is_future, is_valid_url, normalize_category
from shortener.db.models import ShortURL
from shortener.db.repository import URLRepository
from shortener.services.short_code_allocator import ShortCodeAllocator

logger = logging.getLogger(__name__)


@dataclass
class CreateResult:
    record: ShortURL
    created: bool


@dataclass
class BulkItem:
    original_url: str
    expires_at: Optional[datetime] = None
    category: Optional[str] = None


@dataclass
class BulkFailure:
    original_url: str
    error: str


@dataclass
class BulkResult:
    successful: List[CreateResult] = field(default_factory=list)
    failed: List[BulkFailure] = field(default_factory=list)


def remember_in_cache(
    cache: FingerprintCache,
    record: ShortURL,
    generation: Optional[int] = None
) -> None:
    """
    Cache a record's mapping, or evict it when the record carries an expiry.

    With ``generation`` (read from the cache before the record was loaded)
    the mapping is only stored if nothing evicted the code in between, so a
    stale read never overwrites a concurrent delete or expiry update.
    """
    if record.expires_at is not None:
        cache.delete(record.short_code)
    elif generation is None:
        cache.set(record.short_code, record.original_url)
    else:
        cache.set_if_generation(record.short_code, record.original_url, generation)


class URLShorteningService:
    """
    Core business logic for creating and managing short URLs.

    Separated from the API layer for testability; every collaborator is
    passed in explicitly.
    """

    def __init__(
        self,
        repository: URLRepository,
        cache: FingerprintCache,
        allocator: ShortCodeAllocator,
        max_url_length: int = 2048
    ):
        """
        Initialize the URL shortening service.

        Args:
            repository: Canonical short URL store
            cache: Shared fingerprint cache
            allocator: Short code allocator (checks the same repository)
            max_url_length: Longest accepted target URL
        """
        self.repository = repository
        self.cache = cache
        self.allocator = allocator
        self.max_url_length = max_url_length

    def _validate(self, original_url: str, expires_at: Optional[datetime]) -> None:
        if not is_valid_url(original_url, self.max_url_length):
            raise InvalidURLError(
                original_url,
                reason="Invalid URL format. URL must use http:// or https:// and have a valid host"
            )
        if expires_at is not None and not is_future(expires_at):
            raise InvalidExpirationError()

    async def create_short_url(
        self,
        original_url: str,
        expires_at: Optional[datetime] = None,
        category: Optional[str] = None
    ) -> CreateResult:
        """
        Create a new short URL or return the existing one for the same target.

        Matching is on the target URL only; expiry and category of a repeat
        request are ignored when a record already exists.

        Args:
            original_url: The long URL to shorten
            expires_at: Optional future expiry
            category: Optional grouping label

        Returns:
            CreateResult with the record and whether it was newly created

        Raises:
            InvalidURLError: If URL format is invalid
            InvalidExpirationError: If expires_at is not in the future
            AllocationExhaustedError: If no free short code was found
        """
        original_url = original_url.strip() if isinstance(original_url, str) else original_url
        self._validate(original_url, expires_at)

        existing = await self.repository.find_by_original_url(original_url)
        if existing is not None:
            logger.info(f"URL already exists, returning existing short code {existing.short_code}")
            return CreateResult(record=existing, created=False)

        short_code = await self.allocator.allocate()
        generation = self.cache.generation(short_code)
        record = ShortURL(
            original_url=original_url,
            short_code=short_code,
            clicks=0,
            expires_at=ensure_aware(expires_at) if expires_at is not None else None,
            category=normalize_category(category),
        )

        try:
            record = await self.repository.create(record)
        except IntegrityError:
            # Lost a race against a concurrent create of the same target
            existing = await self.repository.find_by_original_url(original_url)
            if existing is None:
                raise
            return CreateResult(record=existing, created=False)

        remember_in_cache(self.cache, record, generation)
        logger.info(f"URL shortened successfully: {short_code} -> {original_url[:100]}")
        return CreateResult(record=record, created=True)

    async def bulk_create(self, items: Sequence[BulkItem]) -> BulkResult:
        """
        Create short URLs for many targets.

        Each item goes through create_short_url on its own; validation and
        allocation failures are collected per item instead of aborting the
        batch. Database errors still propagate.
        """
        result = BulkResult()
        for item in items:
            try:
                created = await self.create_short_url(
                    item.original_url,
                    expires_at=item.expires_at,
                    category=item.category,
                )
            except URLShortenerException as e:
                result.failed.append(BulkFailure(original_url=item.original_url or "", error=str(e)))
                continue
            result.successful.append(created)

        logger.info(
            f"Bulk shorten completed: {len(result.successful)} successful, "
            f"{len(result.failed)} failed"
        )
        return result

    async def get_short_url(self, short_code: str) -> Optional[ShortURL]:
        return await self.repository.find_by_short_code(short_code)

    async def delete_short_url(self, short_code: str) -> bool:
        """
        Delete a short URL and evict it from the cache.

        Returns:
            True if a record was deleted, False if the code was unknown
        """
        deleted = await self.repository.delete(short_code)
        self.cache.delete(short_code)
        if deleted:
            logger.info(f"URL deleted successfully: {short_code}")
        return deleted

    async def update_expiration(self, short_code: str, expires_at: Optional[datetime]) -> ShortURL:
        """
        Set or clear the expiry of a short URL.

        Setting an expiry evicts the code from the cache; clearing it puts
        the mapping back.

        Raises:
            InvalidExpirationError: If expires_at is given and not in the future
            ShortCodeNotFoundError: If the code is unknown
        """
        if expires_at is not None:
            if not is_future(expires_at):
                raise InvalidExpirationError()
            expires_at = ensure_aware(expires_at)

        generation = self.cache.generation(short_code)
        record = await self.repository.update_expiration(short_code, expires_at)
        if record is None:
            raise ShortCodeNotFoundError(short_code)

        remember_in_cache(self.cache, record, generation)
        logger.info(f"Expiration updated: {short_code} expires_at={record.expires_at}")
        return record

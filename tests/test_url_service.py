"""
Tests for URL validation and the URL shortening service.

Service tests run against a real SQLite file database (see conftest.py).
"""

from datetime import datetime, timedelta, timezone

import pytest

from shortener.core.exceptions import (
    AllocationExhaustedError,
    InvalidExpirationError,
    InvalidURLError,
    ShortCodeNotFoundError,
)
from shortener.core.validators import (
    is_future,
    is_valid_url,
    normalize_category,
    sanitize_short_code,
)
from shortener.services.short_code_allocator import ShortCodeAllocator
from shortener.services.url_service import BulkItem, URLShorteningService


def in_future(**kwargs):
    return datetime.now(timezone.utc) + timedelta(**kwargs)


class TestURLValidation:
    """Test URL validation function."""

    def test_valid_urls(self):
        """Test that valid URLs are accepted."""
        valid_urls = [
            "http://example.com",
            "https://example.com",
            "https://www.example.com/path/to/page",
            "http://subdomain.example.com:8080/path?query=value",
            "http://localhost:3000",
        ]
        for url in valid_urls:
            assert is_valid_url(url), f"Should be valid: {url}"

    def test_invalid_urls(self):
        """Test that invalid URLs are rejected."""
        invalid_urls = [
            "not-a-url",
            "ftp://example.com",  # FTP not supported
            "example.com",  # Missing scheme
            "",
            "http://",  # Missing domain
            "javascript:alert(1)",
            None,
        ]
        for url in invalid_urls:
            assert not is_valid_url(url), f"Should be invalid: {url}"

    def test_length_limit(self):
        url = "https://example.com/" + "a" * 2100
        assert not is_valid_url(url)
        assert is_valid_url(url, max_length=4096)


class TestInputHelpers:

    def test_sanitize_short_code(self):
        assert sanitize_short_code("abc_12-Z") == "abc_12-Z"
        assert sanitize_short_code("  abc1234 ") == "abc1234"
        assert sanitize_short_code("bad!code") is None
        assert sanitize_short_code("") is None
        assert sanitize_short_code("a" * 21) is None

    def test_normalize_category(self):
        assert normalize_category("  News ") == "news"
        assert normalize_category("   ") is None
        assert normalize_category(None) is None

    def test_is_future_treats_naive_as_utc(self):
        now = datetime(2030, 1, 1, tzinfo=timezone.utc)
        assert is_future(datetime(2030, 1, 2), now=now)
        assert not is_future(datetime(2029, 12, 31), now=now)


class TestCreateShortURL:

    async def test_creates_and_caches(self, url_service, cache):
        result = await url_service.create_short_url("https://example.com/page")

        assert result.created
        record = result.record
        assert len(record.short_code) == 7
        assert record.original_url == "https://example.com/page"
        assert record.clicks == 0
        assert cache.get(record.short_code) == "https://example.com/page"

    async def test_same_target_returns_same_code(self, url_service, repository):
        first = await url_service.create_short_url("https://example.com/same")
        second = await url_service.create_short_url("https://example.com/same")

        assert first.created
        assert not second.created
        assert second.record.short_code == first.record.short_code
        assert len(await repository.list_recent(10)) == 1

    async def test_whitespace_is_stripped(self, url_service):
        first = await url_service.create_short_url("https://example.com/trim")
        second = await url_service.create_short_url("  https://example.com/trim  ")
        assert second.record.short_code == first.record.short_code

    async def test_distinct_targets_get_distinct_codes(self, url_service):
        a = await url_service.create_short_url("https://example.com/a")
        b = await url_service.create_short_url("https://example.com/b")
        assert a.record.short_code != b.record.short_code

    async def test_invalid_url_is_rejected(self, url_service, repository):
        with pytest.raises(InvalidURLError):
            await url_service.create_short_url("ftp://example.com/file")
        assert await repository.list_recent(10) == []

    async def test_past_expiry_is_rejected(self, url_service):
        with pytest.raises(InvalidExpirationError):
            await url_service.create_short_url(
                "https://example.com/old",
                expires_at=datetime.now(timezone.utc) - timedelta(seconds=1),
            )

    async def test_expiring_record_is_not_cached(self, url_service, cache):
        result = await url_service.create_short_url(
            "https://example.com/soon",
            expires_at=in_future(hours=1),
        )
        assert result.record.expires_at is not None
        assert cache.get(result.record.short_code) is None

    async def test_category_is_normalized(self, url_service):
        result = await url_service.create_short_url("https://example.com/cat", category=" Docs ")
        assert result.record.category == "docs"

    async def test_allocation_exhaustion_propagates(self, repository, cache, url_service):
        existing = await url_service.create_short_url("https://example.com/taken")
        allocator = ShortCodeAllocator(
            repository,
            code_factory=lambda: existing.record.short_code,
        )
        service = URLShorteningService(repository, cache, allocator)

        with pytest.raises(AllocationExhaustedError):
            await service.create_short_url("https://example.com/other")


class TestDeleteAndExpiration:

    async def test_delete_evicts_cache(self, url_service, cache):
        record = (await url_service.create_short_url("https://example.com/gone")).record

        assert await url_service.delete_short_url(record.short_code) is True
        assert cache.get(record.short_code) is None
        assert await url_service.get_short_url(record.short_code) is None
        assert await url_service.delete_short_url(record.short_code) is False

    async def test_setting_expiry_evicts_and_clearing_recaches(self, url_service, cache):
        record = (await url_service.create_short_url("https://example.com/toggle")).record
        code = record.short_code

        updated = await url_service.update_expiration(code, in_future(days=1))
        assert updated.expires_at is not None
        assert cache.get(code) is None

        cleared = await url_service.update_expiration(code, None)
        assert cleared.expires_at is None
        assert cache.get(code) == "https://example.com/toggle"

    async def test_update_unknown_code(self, url_service):
        with pytest.raises(ShortCodeNotFoundError):
            await url_service.update_expiration("nope123", in_future(days=1))

    async def test_update_with_past_expiry(self, url_service):
        record = (await url_service.create_short_url("https://example.com/past")).record
        with pytest.raises(InvalidExpirationError):
            await url_service.update_expiration(
                record.short_code,
                datetime.now(timezone.utc) - timedelta(minutes=5),
            )


class TestBulkCreate:

    async def test_collects_per_item_failures(self, url_service):
        result = await url_service.bulk_create([
            BulkItem("https://example.com/one"),
            BulkItem("not a url"),
            BulkItem("https://example.com/two", category="Batch"),
            BulkItem("https://example.com/old", expires_at=datetime(2000, 1, 1, tzinfo=timezone.utc)),
        ])

        assert [r.record.original_url for r in result.successful] == [
            "https://example.com/one",
            "https://example.com/two",
        ]
        assert result.successful[1].record.category == "batch"
        assert [f.original_url for f in result.failed] == [
            "not a url",
            "https://example.com/old",
        ]
        assert "Invalid URL format" in result.failed[0].error

    async def test_bulk_is_idempotent(self, url_service):
        single = await url_service.create_short_url("https://example.com/dup")
        result = await url_service.bulk_create([
            BulkItem("https://example.com/dup"),
            BulkItem("https://example.com/dup"),
        ])

        codes = {r.record.short_code for r in result.successful}
        assert codes == {single.record.short_code}
        assert not any(r.created for r in result.successful)

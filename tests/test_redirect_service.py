"""Tests for redirect resolution through the cache and the canonical store."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from shortener.core.exceptions import ShortCodeNotFoundError, ShortURLExpiredError
from shortener.db.models import ShortURL
from shortener.db.repository import Click
from shortener.services.redirect_service import RedirectService


@pytest.fixture
def redirect_service(repository, cache):
    return RedirectService(repository, cache)


async def stored(repository, code, url, expires_at=None):
    return await repository.create(ShortURL(original_url=url, short_code=code, expires_at=expires_at))


class SlowReadRepository:
    """
    Wraps a repository so find_by_short_code stops after reading, until
    released. The returned record is a detached copy, as a separate
    request session would see it.
    """

    def __init__(self, inner):
        self.inner = inner
        self.read_done = asyncio.Event()
        self.release = asyncio.Event()

    async def find_by_short_code(self, short_code):
        record = await self.inner.find_by_short_code(short_code)
        snapshot = None
        if record is not None:
            snapshot = ShortURL(
                original_url=record.original_url,
                short_code=record.short_code,
                expires_at=record.expires_at,
            )
        self.read_done.set()
        await self.release.wait()
        return snapshot

    def __getattr__(self, name):
        return getattr(self.inner, name)


class TestResolve:

    async def test_cache_miss_reads_record_and_records_click(self, redirect_service, repository, cache):
        await stored(repository, "miss001", "https://example.com/miss")

        target = await redirect_service.resolve("miss001", Click(ip_address="10.0.0.1"))

        assert target.url == "https://example.com/miss"
        assert not target.from_cache
        assert target.click_recorded
        assert cache.get("miss001") == "https://example.com/miss"

        record = await repository.find_by_short_code("miss001")
        await repository.session.refresh(record)
        assert record.clicks == 1
        clicks = await repository.recent_clicks("miss001", 10)
        assert [c.ip_address for c in clicks] == ["10.0.0.1"]

    async def test_cache_hit_skips_database(self, redirect_service, repository, cache):
        await stored(repository, "hit0001", "https://example.com/hit")
        cache.set("hit0001", "https://example.com/hit")

        target = await redirect_service.resolve("hit0001", Click())

        assert target.from_cache
        assert not target.click_recorded
        assert target.url == "https://example.com/hit"
        assert await repository.recent_clicks("hit0001", 10) == []

    async def test_second_resolve_hits_backfilled_cache(self, redirect_service, repository):
        await stored(repository, "twice01", "https://example.com/twice")

        first = await redirect_service.resolve("twice01", Click())
        second = await redirect_service.resolve("twice01", Click())

        assert not first.from_cache
        assert second.from_cache

    async def test_unknown_code(self, redirect_service):
        with pytest.raises(ShortCodeNotFoundError):
            await redirect_service.resolve("unknown", Click())

    async def test_expired_record_is_refused(self, redirect_service, repository, cache):
        await stored(
            repository,
            "expired",
            "https://example.com/expired",
            expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
        )

        with pytest.raises(ShortURLExpiredError):
            await redirect_service.resolve("expired", Click())

        assert cache.get("expired") is None
        assert await repository.recent_clicks("expired", 10) == []

    async def test_expiry_set_after_caching_is_enforced(self, redirect_service, url_service, repository):
        record = (await url_service.create_short_url("https://example.com/later")).record
        code = record.short_code
        assert (await redirect_service.resolve(code, Click())).from_cache

        await url_service.update_expiration(code, datetime.now(timezone.utc) + timedelta(hours=1))
        # Let the expiry lapse without going through validation
        await repository.update_expiration(code, datetime.now(timezone.utc) - timedelta(seconds=1))

        with pytest.raises(ShortURLExpiredError):
            await redirect_service.resolve(code, Click())

    async def test_future_expiry_still_redirects_without_caching(self, redirect_service, repository, cache):
        await stored(
            repository,
            "future1",
            "https://example.com/future",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        )

        target = await redirect_service.resolve("future1", Click())

        assert target.url == "https://example.com/future"
        assert target.click_recorded
        assert cache.get("future1") is None


class TestBackfillRace:
    """A delete or expiry update during a cache-miss read wins over the read."""

    async def start_slow_resolve(self, repository, cache, code):
        slow = SlowReadRepository(repository)
        task = asyncio.create_task(RedirectService(slow, cache).resolve(code, Click()))
        await slow.read_done.wait()
        return slow, task

    async def test_expiry_set_during_read_is_not_overwritten(self, repository, cache, url_service):
        code = (await url_service.create_short_url("https://example.com/race")).record.short_code
        cache.delete(code)

        slow, task = await self.start_slow_resolve(repository, cache, code)
        await url_service.update_expiration(code, datetime.now(timezone.utc) + timedelta(hours=1))
        slow.release.set()
        target = await task

        assert not target.from_cache
        assert cache.get(code) is None

        await repository.update_expiration(code, datetime.now(timezone.utc) - timedelta(seconds=1))
        with pytest.raises(ShortURLExpiredError):
            await RedirectService(repository, cache).resolve(code, Click())

    async def test_delete_during_read_is_not_overwritten(self, repository, cache, url_service):
        code = (await url_service.create_short_url("https://example.com/race-delete")).record.short_code
        cache.delete(code)

        slow, task = await self.start_slow_resolve(repository, cache, code)
        assert await url_service.delete_short_url(code)
        slow.release.set()
        await task

        assert cache.get(code) is None
        with pytest.raises(ShortCodeNotFoundError):
            await RedirectService(repository, cache).resolve(code, Click())

    async def test_read_without_eviction_still_backfills(self, repository, cache):
        await stored(repository, "calm001", "https://example.com/calm")

        slow, task = await self.start_slow_resolve(repository, cache, "calm001")
        slow.release.set()
        await task

        assert cache.get("calm001") == "https://example.com/calm"

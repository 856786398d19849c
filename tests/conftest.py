"""
Shared test fixtures.

Every test gets its own SQLite file under tmp_path and its own application
instance, so cache and admission state never leak between tests.
"""

from contextlib import ExitStack

import pytest
from fastapi.testclient import TestClient

from shortener.core.cache import FingerprintCache
from shortener.core.rate_limit import limiter
from shortener.core.setting import Settings
from shortener.db.repository import SQLURLRepository
from shortener.db.session import build_engine, build_session_maker, create_tables
from shortener.main import create_app
from shortener.services.short_code_allocator import ShortCodeAllocator
from shortener.services.url_service import URLShorteningService

BASE_URL = "http://sho.rt"


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        BASE_URL=BASE_URL,
        LOG_LEVEL="WARNING",
        CACHE_BUCKET_COUNT=64,
        RATE_LIMIT_WINDOW_MS=60000,
        RATE_LIMIT_MAX_REQUESTS=10,
    )


@pytest.fixture
async def engine(settings):
    engine = build_engine(settings.DATABASE_URL)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    session_maker = build_session_maker(engine)
    async with session_maker() as session:
        yield session


@pytest.fixture
def repository(session):
    return SQLURLRepository(session)


@pytest.fixture
def cache():
    return FingerprintCache(bucket_count=64)


@pytest.fixture
def url_service(repository, cache):
    return URLShorteningService(repository, cache, ShortCodeAllocator(repository))


@pytest.fixture
def client(settings, clock):
    limiter.reset()
    app = create_app(settings, clock=clock)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def make_client(settings, clock):
    """Build a started TestClient with settings overrides."""
    with ExitStack() as stack:
        def factory(**overrides):
            limiter.reset()
            app = create_app(settings.model_copy(update=overrides), clock=clock)
            return stack.enter_context(TestClient(app))

        yield factory

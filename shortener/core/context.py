"""
Service Context

Holds the process-wide shared state of one application instance:
- the fingerprint cache
- the write admission controller and its cleanup sweeper
- the database engine and session factory

Design:
- Built explicitly by the app factory and attached to ``app.state``; there
  are no module-level singletons, so tests can run several independent
  instances side by side
- Started and stopped by the application lifespan
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from shortener.core.admission import AdmissionSweeper, Clock, SlidingWindowAdmission
from shortener.core.cache import FingerprintCache
from shortener.core.setting import Settings
from shortener.db.session import build_engine, build_session_maker, create_tables

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    settings: Settings
    cache: FingerprintCache
    admission: SlidingWindowAdmission
    sweeper: AdmissionSweeper
    engine: AsyncEngine
    session_maker: async_sessionmaker
    started_at: float = field(default_factory=time.monotonic)

    def uptime(self) -> float:
        return time.monotonic() - self.started_at


def build_context(settings: Settings, clock: Optional[Clock] = None) -> ServiceContext:
    """
    Construct every shared component from settings.

    Args:
        settings: Application settings
        clock: Optional millisecond clock for the admission controller
    """
    cache = FingerprintCache(bucket_count=settings.CACHE_BUCKET_COUNT)
    admission = SlidingWindowAdmission(
        window_ms=settings.RATE_LIMIT_WINDOW_MS,
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        clock=clock,
    )
    sweeper = AdmissionSweeper(admission, interval_ms=settings.cleanup_interval_ms)
    engine = build_engine(settings.DATABASE_URL)

    return ServiceContext(
        settings=settings,
        cache=cache,
        admission=admission,
        sweeper=sweeper,
        engine=engine,
        session_maker=build_session_maker(engine),
    )


async def start_context(context: ServiceContext) -> None:
    """Prepare the database and start background maintenance."""
    if context.settings.DATABASE_AUTO_CREATE:
        await create_tables(context.engine)
    context.sweeper.start()
    logger.info(
        f"Service context started: "
        f"cache_buckets={context.cache.bucket_count}, "
        f"window_ms={context.admission.window_ms}, "
        f"max_requests={context.admission.max_requests}"
    )


async def stop_context(context: ServiceContext) -> None:
    """Stop background maintenance and release database connections."""
    await context.sweeper.stop()
    await context.engine.dispose()
    logger.info("Service context stopped")

"""
FastAPI Dependencies

Wires the per-application ServiceContext into request handlers:
database sessions, repositories, services and write admission control.
"""

import logging
from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from shortener.core.admission import AdmissionResult
from shortener.core.context import ServiceContext
from shortener.core.rate_limit import client_identifier
from shortener.db.repository import SQLURLRepository
from shortener.services.redirect_service import RedirectService
from shortener.services.short_code_allocator import ShortCodeAllocator
from shortener.services.stats_service import StatsService
from shortener.services.url_service import URLShorteningService

logger = logging.getLogger(__name__)


def get_context(request: Request) -> ServiceContext:
    return request.app.state.context


async def get_session(
    context: ServiceContext = Depends(get_context)
) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a database session for one request.

    Commits on success, rolls back on any exception; the session is closed
    by the context manager.
    """
    async with context.session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_repository(session: AsyncSession = Depends(get_session)) -> SQLURLRepository:
    return SQLURLRepository(session)


def get_url_service(
    context: ServiceContext = Depends(get_context),
    repository: SQLURLRepository = Depends(get_repository)
) -> URLShorteningService:
    settings = context.settings
    allocator = ShortCodeAllocator(
        repository,
        length=settings.SHORT_CODE_LENGTH,
        max_attempts=settings.SHORT_CODE_MAX_ATTEMPTS,
    )
    return URLShorteningService(
        repository,
        context.cache,
        allocator,
        max_url_length=settings.MAX_URL_LENGTH,
    )


def get_redirect_service(
    context: ServiceContext = Depends(get_context),
    repository: SQLURLRepository = Depends(get_repository)
) -> RedirectService:
    return RedirectService(repository, context.cache)


def get_stats_service(
    context: ServiceContext = Depends(get_context),
    repository: SQLURLRepository = Depends(get_repository)
) -> StatsService:
    return StatsService(
        repository,
        base_url=context.settings.BASE_URL,
        recent_clicks_limit=context.settings.RECENT_CLICKS_LIMIT,
    )


def enforce_admission(
    request: Request,
    response: Response,
    context: ServiceContext = Depends(get_context)
) -> AdmissionResult:
    """
    Admission check for write endpoints.

    Rejected requests get 429 with a Retry-After header (at least 1 second);
    admitted ones carry X-RateLimit-Remaining / X-RateLimit-Limit.

    Raises:
        HTTPException 429: If the client exhausted its window
    """
    identifier = client_identifier(request)
    result = context.admission.is_allowed(identifier)

    if not result.allowed:
        retry_after = max(1, result.retry_after_seconds or 0)
        logger.warning(f"Rate limit exceeded: ip={identifier} retry_after={retry_after}s")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "Too many requests",
                "retry_after": retry_after,
                "message": f"Rate limit exceeded. Please try again in {retry_after} seconds.",
            },
            headers={"Retry-After": str(retry_after)},
        )

    response.headers["X-RateLimit-Remaining"] = str(result.remaining)
    response.headers["X-RateLimit-Limit"] = str(context.admission.max_requests)
    return result

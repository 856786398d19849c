"""
Background Task Helpers

Provides helper functions for background tasks that create their own database sessions.
Background tasks cannot use the endpoint's session as it's closed after the endpoint returns.
"""

import logging

from sqlalchemy.ext.asyncio import async_sessionmaker

from shortener.db.repository import Click, SQLURLRepository

logger = logging.getLogger(__name__)


async def record_click_background(
    session_maker: async_sessionmaker,
    short_code: str,
    click: Click
) -> None:
    """
    Background task to record a click on the cache-hit redirect path.

    Creates its own database session as the endpoint session is closed.
    Failures are logged; the redirect has already been sent.

    Args:
        session_maker: Session factory of the running application
        short_code: The short code that was accessed
        click: Visitor details for the click history
    """
    try:
        async with session_maker() as session:
            repository = SQLURLRepository(session)
            await repository.increment_clicks_and_append_history(short_code, click)
    except Exception as e:
        logger.error(
            f"Failed to record click for {short_code}: {str(e)}",
            exc_info=True
        )

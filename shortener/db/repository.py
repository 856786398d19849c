"""
URL Repository

The persistence collaborator used by the services: the canonical store of
short URL records and their click history.

URLRepository is the contract; SQLURLRepository implements it on an async
SQLModel session. Errors raised by the database driver are not wrapped here;
they reach the caller unchanged.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shortener.db.models import ClickEvent, ShortURL, utcnow

USER_AGENT_MAX_LENGTH = 500


@dataclass
class Click:
    """One redirect, as recorded in the click history."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    clicked_at: datetime = field(default_factory=utcnow)


class URLRepository(ABC):
    """Contract for the canonical short URL store."""

    @abstractmethod
    async def find_by_original_url(self, original_url: str) -> Optional[ShortURL]:
        """Return the record shortening ``original_url``, if any."""

    @abstractmethod
    async def find_by_short_code(self, short_code: str) -> Optional[ShortURL]:
        """Return the record for ``short_code``, if any."""

    @abstractmethod
    async def create(self, record: ShortURL) -> ShortURL:
        """Persist a new record and return it with generated fields populated."""

    @abstractmethod
    async def increment_clicks_and_append_history(self, short_code: str, click: Click) -> None:
        """Bump the click counter and append one click history row."""

    @abstractmethod
    async def delete(self, short_code: str) -> bool:
        """Delete a record; return whether one existed."""

    @abstractmethod
    async def update_expiration(self, short_code: str, expires_at: Optional[datetime]) -> Optional[ShortURL]:
        """Set or clear the expiry of a record; None if the code is unknown."""

    @abstractmethod
    async def list_recent(self, limit: int) -> List[ShortURL]:
        """Most recently created records first."""

    @abstractmethod
    async def list_by_category(self, category: str) -> List[ShortURL]:
        """Records in a category, most recent first."""

    @abstractmethod
    async def distinct_categories(self) -> List[str]:
        """Every category in use, sorted."""

    @abstractmethod
    async def recent_clicks(self, short_code: str, limit: int) -> List[ClickEvent]:
        """Latest click history rows for a code, newest first."""


class SQLURLRepository(URLRepository):
    """
    URLRepository backed by SQLModel tables.

    Writes commit immediately: the redirect path records clicks outside any
    request transaction, and creation has to be visible to concurrent
    idempotency lookups as soon as it returns.
    """

    def __init__(self, session: AsyncSession):
        """
        Args:
            session: Async database session for database operations
        """
        self.session = session

    async def find_by_original_url(self, original_url: str) -> Optional[ShortURL]:
        statement = select(ShortURL).where(ShortURL.original_url == original_url).limit(1)
        result = await self.session.execute(statement)
        return result.scalars().first()

    async def find_by_short_code(self, short_code: str) -> Optional[ShortURL]:
        statement = select(ShortURL).where(ShortURL.short_code == short_code)
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    async def create(self, record: ShortURL) -> ShortURL:
        self.session.add(record)
        try:
            await self.session.flush()
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise
        await self.session.refresh(record)
        return record

    async def increment_clicks_and_append_history(self, short_code: str, click: Click) -> None:
        """
        Record one click.

        Uses a database-level UPDATE for the counter so concurrent clicks
        never lose increments. Unknown codes are ignored.
        """
        statement = (
            update(ShortURL)
            .where(ShortURL.short_code == short_code)
            .values(clicks=ShortURL.clicks + 1)
        )
        result = await self.session.execute(statement)
        if result.rowcount:
            user_agent = click.user_agent
            if user_agent:
                user_agent = user_agent[:USER_AGENT_MAX_LENGTH]
            self.session.add(ClickEvent(
                short_code=short_code,
                clicked_at=click.clicked_at,
                ip_address=click.ip_address,
                user_agent=user_agent,
            ))
        await self.session.commit()

    async def delete(self, short_code: str) -> bool:
        result = await self.session.execute(
            delete(ShortURL).where(ShortURL.short_code == short_code)
        )
        if not result.rowcount:
            return False
        await self.session.execute(
            delete(ClickEvent).where(ClickEvent.short_code == short_code)
        )
        await self.session.commit()
        return True

    async def update_expiration(self, short_code: str, expires_at: Optional[datetime]) -> Optional[ShortURL]:
        record = await self.find_by_short_code(short_code)
        if record is None:
            return None
        record.expires_at = expires_at
        self.session.add(record)
        await self.session.commit()
        await self.session.refresh(record)
        return record

    async def list_recent(self, limit: int) -> List[ShortURL]:
        statement = (
            select(ShortURL)
            .order_by(ShortURL.created_at.desc(), ShortURL.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def list_by_category(self, category: str) -> List[ShortURL]:
        statement = (
            select(ShortURL)
            .where(ShortURL.category == category)
            .order_by(ShortURL.created_at.desc(), ShortURL.id.desc())
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def distinct_categories(self) -> List[str]:
        statement = (
            select(ShortURL.category)
            .where(ShortURL.category.is_not(None))
            .distinct()
            .order_by(ShortURL.category)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def recent_clicks(self, short_code: str, limit: int) -> List[ClickEvent]:
        statement = (
            select(ClickEvent)
            .where(ClickEvent.short_code == short_code)
            .order_by(ClickEvent.clicked_at.desc(), ClickEvent.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())


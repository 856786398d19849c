"""
Database Models for URL Shortener Service

This module defines the SQLModel database schemas for:
- ShortURL: The canonical record mapping a short code to its target URL
- ClickEvent: One row per redirect, the click history used for analytics

Design Decisions:
- Separate ClickEvent table so history can grow without bloating lookups
- Unique index on short_code (hot lookup path) and index on original_url
  (idempotent creation looks records up by target)
- clicks denormalized in ShortURL for quick stats without joins
- expires_at lives only here; the in-memory cache never stores it
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text
from sqlmodel import Column, Field, SQLModel

from shortener.core.validators import ensure_aware


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ShortURL(SQLModel, table=True):
    """
    Canonical short URL record.

    Fields:
    - id: Auto-incrementing primary key
    - original_url: The long URL that was shortened
    - short_code: Unique random short code
    - clicks: Denormalized click counter
    - created_at: Timestamp when URL was shortened
    - expires_at: Optional expiry; None means the link never expires
    - category: Optional lowercase label used for grouping
    """
    __tablename__ = "short_urls"

    id: Optional[int] = Field(default=None, primary_key=True)
    original_url: str = Field(sa_column=Column(Text, nullable=False, index=True))
    short_code: str = Field(
        sa_column=Column(String(20), nullable=False, unique=True, index=True),
        max_length=20
    )
    clicks: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    expires_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True, index=True)
    )
    category: Optional[str] = Field(
        default=None,
        sa_column=Column(String(100), nullable=True, index=True)
    )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or utcnow()
        return now > ensure_aware(self.expires_at)


class ClickEvent(SQLModel, table=True):
    """
    Click history row written on every redirect.

    Kept apart from ShortURL so it can be partitioned or moved to a
    time-series store without touching the lookup table.
    """
    __tablename__ = "click_events"

    id: Optional[int] = Field(default=None, primary_key=True)
    short_code: str = Field(
        sa_column=Column(String(20), nullable=False, index=True)
    )
    clicked_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    ip_address: Optional[str] = Field(
        default=None,
        sa_column=Column(String(45), nullable=True)  # IPv6 max length
    )
    user_agent: Optional[str] = Field(
        default=None,
        sa_column=Column(String(500), nullable=True)
    )

"""
Statistics Service

This service handles read-only views over the canonical records:
per-code analytics, recent URL listings and categories.

Design Decisions:
- Reads straight from the repository; the cache holds no click data
- Click history is returned newest first and capped (RECENT_CLICKS_LIMIT)
"""

from typing import List, Optional

from shortener.db.models import ShortURL
from shortener.db.repository import URLRepository


def summarize(record: ShortURL, base_url: str) -> dict:
    """Public representation of a record (no click history)."""
    return {
        "original_url": record.original_url,
        "short_code": record.short_code,
        "short_url": f"{base_url}/{record.short_code}",
        "clicks": record.clicks,
        "created_at": record.created_at,
        "expires_at": record.expires_at,
        "category": record.category,
        "is_expired": record.is_expired(),
    }


class StatsService:
    """Service for retrieving URL statistics and listings."""

    def __init__(self, repository: URLRepository, base_url: str, recent_clicks_limit: int = 50):
        self.repository = repository
        self.base_url = base_url
        self.recent_clicks_limit = recent_clicks_limit

    async def get_analytics(self, short_code: str) -> Optional[dict]:
        """
        Get analytics for a short URL.

        Returns:
            Dictionary with the target, total clicks, creation time and the
            most recent clicks, or None if the code is unknown.
        """
        record = await self.repository.find_by_short_code(short_code)
        if record is None:
            return None

        clicks = await self.repository.recent_clicks(short_code, self.recent_clicks_limit)

        return {
            "original_url": record.original_url,
            "short_code": record.short_code,
            "short_url": f"{self.base_url}/{record.short_code}",
            "total_clicks": record.clicks,
            "created_at": record.created_at,
            "recent_clicks": [
                {"timestamp": click.clicked_at, "ip_address": click.ip_address}
                for click in clicks
            ],
        }

    async def list_urls(self, limit: int) -> List[dict]:
        records = await self.repository.list_recent(limit)
        return [summarize(record, self.base_url) for record in records]

    async def list_by_category(self, category: str) -> List[dict]:
        records = await self.repository.list_by_category(category)
        return [summarize(record, self.base_url) for record in records]

    async def list_categories(self) -> List[str]:
        return await self.repository.distinct_categories()

"""
API Request and Response Schemas

This module defines all Pydantic models for API requests and responses.
Separated from endpoints to keep concerns separated and enable reuse.

Design Principles:
- Request models: Define input validation
- Response models: Define output structure
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ShortenRequest(BaseModel):
    """
    Request model for URL shortening endpoint.

    The URL is kept exactly as submitted (validated by the service, like
    bulk entries) so repeat requests match the stored record.
    """
    url: str = Field(..., description="The long URL to shorten")
    expires_at: Optional[datetime] = Field(default=None, description="Optional expiry (must be in the future)")
    category: Optional[str] = Field(default=None, max_length=100, description="Optional grouping label")


class ShortURLResponse(BaseModel):
    """A short URL as returned by creation endpoints."""
    short_code: str = Field(..., description="The generated short code")
    short_url: str = Field(..., description="The complete short URL")
    original_url: str = Field(..., description="The original long URL")
    clicks: int = 0
    created_at: datetime
    expires_at: Optional[datetime] = None
    category: Optional[str] = None


class URLSummaryResponse(ShortURLResponse):
    """A short URL as returned by listing endpoints."""
    is_expired: bool = False


class BulkShortenItem(BaseModel):
    """
    One entry of a bulk request.

    The URL is a plain string so an invalid entry fails on its own instead
    of rejecting the whole request.
    """
    url: str = Field(..., description="The long URL to shorten")
    expires_at: Optional[datetime] = None
    category: Optional[str] = Field(default=None, max_length=100)


class BulkShortenRequest(BaseModel):
    """Request model for bulk URL shortening."""
    urls: List[BulkShortenItem] = Field(..., min_length=1)


class BulkFailureResponse(BaseModel):
    original_url: str
    error: str


class BulkShortenResponse(BaseModel):
    successful: List[ShortURLResponse]
    failed: List[BulkFailureResponse]


class ClickResponse(BaseModel):
    timestamp: datetime
    ip_address: Optional[str] = None


class AnalyticsResponse(BaseModel):
    """Response model for the analytics endpoint."""
    original_url: str
    short_code: str
    short_url: str
    total_clicks: int
    created_at: datetime
    recent_clicks: List[ClickResponse]


class ExpirationUpdateRequest(BaseModel):
    """Set (future datetime) or clear (null) the expiry of a short URL."""
    expires_at: Optional[datetime] = None


class ExpirationUpdateResponse(BaseModel):
    short_code: str
    expires_at: Optional[datetime] = None


class MessageResponse(BaseModel):
    message: str

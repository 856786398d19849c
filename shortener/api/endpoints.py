"""
FastAPI Endpoints for URL Shortener Service

This module defines all REST API endpoints with minimal logic.
Endpoints only handle:
- Request validation (Pydantic models)
- Write admission control and read rate limiting
- HTTP responses
- Delegating to service layer

Domain errors raised by the services (URLShortenerException subclasses) are
turned into HTTP responses by the application-level handler in main.py.

The redirect route is a catch-all and is declared last.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response, status
from fastapi.responses import RedirectResponse

from shortener.api.dependencies import (
    enforce_admission,
    get_context,
    get_redirect_service,
    get_stats_service,
    get_url_service,
)
from shortener.api.schemas import (
    AnalyticsResponse,
    BulkFailureResponse,
    BulkShortenRequest,
    BulkShortenResponse,
    ExpirationUpdateRequest,
    ExpirationUpdateResponse,
    MessageResponse,
    ShortenRequest,
    ShortURLResponse,
    URLSummaryResponse,
)
from shortener.core.admission import AdmissionResult
from shortener.core.context import ServiceContext
from shortener.core.rate_limit import RATE_LIMITS, client_identifier, limiter
from shortener.core.validators import normalize_category, sanitize_short_code
from shortener.db.models import ShortURL
from shortener.db.repository import Click
from shortener.services.background_tasks import record_click_background
from shortener.services.redirect_service import RedirectService
from shortener.services.stats_service import StatsService
from shortener.services.url_service import BulkItem, URLShorteningService

router = APIRouter()


def require_short_code(short_code: str) -> str:
    """Path dependency rejecting malformed short codes with 400."""
    sanitized_code = sanitize_short_code(short_code)
    if not sanitized_code:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid short code format: '{short_code}'"
        )
    return sanitized_code


def to_response(record: ShortURL, base_url: str) -> ShortURLResponse:
    return ShortURLResponse(
        short_code=record.short_code,
        short_url=f"{base_url}/{record.short_code}",
        original_url=record.original_url,
        clicks=record.clicks,
        created_at=record.created_at,
        expires_at=record.expires_at,
        category=record.category,
    )


@router.post(
    "/api/shorten",
    response_model=ShortURLResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a short URL",
    description="Takes a long URL and returns a shortened version; repeat calls for the same URL return the same code"
)
async def create_short_url(
    body: ShortenRequest,
    response: Response,
    admission: AdmissionResult = Depends(enforce_admission),
    context: ServiceContext = Depends(get_context),
    url_service: URLShorteningService = Depends(get_url_service)
) -> ShortURLResponse:
    """
    Create a new short URL from a long URL.

    Returns:
        201 with the new short URL, or 200 with the existing one

    Raises:
        HTTPException 400: If the URL or expiry is invalid
        HTTPException 429: If the client exceeded its write budget
        HTTPException 500: If no unique short code could be allocated
    """
    result = await url_service.create_short_url(
        body.url,
        expires_at=body.expires_at,
        category=body.category,
    )
    if not result.created:
        response.status_code = status.HTTP_200_OK

    return to_response(result.record, context.settings.BASE_URL)


@router.post(
    "/api/bulk-shorten",
    response_model=BulkShortenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create many short URLs",
    description="Shortens up to BULK_SHORTEN_MAX URLs; invalid entries are reported individually"
)
async def bulk_shorten(
    body: BulkShortenRequest,
    admission: AdmissionResult = Depends(enforce_admission),
    context: ServiceContext = Depends(get_context),
    url_service: URLShorteningService = Depends(get_url_service)
) -> BulkShortenResponse:
    max_items = context.settings.BULK_SHORTEN_MAX
    if len(body.urls) > max_items:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Maximum {max_items} URLs allowed per bulk operation"
        )

    result = await url_service.bulk_create([
        BulkItem(original_url=item.url, expires_at=item.expires_at, category=item.category)
        for item in body.urls
    ])

    base_url = context.settings.BASE_URL
    return BulkShortenResponse(
        successful=[to_response(created.record, base_url) for created in result.successful],
        failed=[
            BulkFailureResponse(original_url=failure.original_url, error=failure.error)
            for failure in result.failed
        ],
    )


@router.get(
    "/api/urls",
    response_model=list[URLSummaryResponse],
    summary="List recent short URLs"
)
async def list_urls(
    context: ServiceContext = Depends(get_context),
    stats_service: StatsService = Depends(get_stats_service)
) -> list[URLSummaryResponse]:
    urls = await stats_service.list_urls(context.settings.URL_LIST_LIMIT)
    return [URLSummaryResponse(**url) for url in urls]


@router.get(
    "/api/urls/category/{category}",
    response_model=list[URLSummaryResponse],
    summary="List short URLs in a category"
)
async def list_urls_by_category(
    category: str,
    stats_service: StatsService = Depends(get_stats_service)
) -> list[URLSummaryResponse]:
    normalized = normalize_category(category)
    if not normalized:
        return []
    urls = await stats_service.list_by_category(normalized)
    return [URLSummaryResponse(**url) for url in urls]


@router.get(
    "/api/categories",
    response_model=list[str],
    summary="List categories in use"
)
async def list_categories(
    stats_service: StatsService = Depends(get_stats_service)
) -> list[str]:
    return await stats_service.list_categories()


@router.get(
    "/api/analytics/{short_code}",
    response_model=AnalyticsResponse,
    summary="Get URL analytics",
    description="Returns total clicks and the most recent clicks for a short URL"
)
@limiter.limit(RATE_LIMITS["analytics"])
async def get_url_analytics(
    request: Request,  # Required for rate limiting (slowapi expects parameter named 'request')
    short_code: str = Depends(require_short_code),
    stats_service: StatsService = Depends(get_stats_service)
) -> AnalyticsResponse:
    """
    Raises:
        HTTPException 400: If short code format is invalid
        HTTPException 404: If short code not found
        HTTPException 429: If rate limit exceeded
    """
    analytics = await stats_service.get_analytics(short_code)
    if not analytics:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Short code '{short_code}' not found"
        )
    return AnalyticsResponse(**analytics)


@router.delete(
    "/api/urls/{short_code}",
    response_model=MessageResponse,
    summary="Delete a short URL"
)
async def delete_short_url(
    short_code: str = Depends(require_short_code),
    admission: AdmissionResult = Depends(enforce_admission),
    url_service: URLShorteningService = Depends(get_url_service)
) -> MessageResponse:
    deleted = await url_service.delete_short_url(short_code)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Short code '{short_code}' not found"
        )
    return MessageResponse(message="URL deleted successfully")


@router.patch(
    "/api/urls/{short_code}/expiration",
    response_model=ExpirationUpdateResponse,
    summary="Set or clear the expiry of a short URL"
)
async def update_expiration(
    body: ExpirationUpdateRequest,
    short_code: str = Depends(require_short_code),
    admission: AdmissionResult = Depends(enforce_admission),
    url_service: URLShorteningService = Depends(get_url_service)
) -> ExpirationUpdateResponse:
    record = await url_service.update_expiration(short_code, body.expires_at)
    return ExpirationUpdateResponse(short_code=record.short_code, expires_at=record.expires_at)


@router.get(
    "/{short_code}",
    status_code=status.HTTP_302_FOUND,
    summary="Redirect to original URL",
    description="Takes a short code and redirects to the original long URL"
)
@limiter.limit(RATE_LIMITS["redirect"])
async def redirect_to_url(
    request: Request,
    background_tasks: BackgroundTasks,
    short_code: str = Depends(require_short_code),
    context: ServiceContext = Depends(get_context),
    redirect_service: RedirectService = Depends(get_redirect_service)
) -> RedirectResponse:
    """
    Redirect to the original URL for a given short code.

    On a cache hit the click is recorded by a background task after the
    response is sent; on a miss it is recorded before redirecting.

    Raises:
        HTTPException 400: If short code format is invalid
        HTTPException 404: If short code not found
        HTTPException 410: If the link has expired
        HTTPException 429: If rate limit exceeded
    """
    click = Click(
        ip_address=client_identifier(request),
        user_agent=request.headers.get("User-Agent"),
    )
    target = await redirect_service.resolve(short_code, click)

    if not target.click_recorded:
        background_tasks.add_task(
            record_click_background,
            context.session_maker,
            target.short_code,
            click
        )

    return RedirectResponse(
        url=target.url,
        status_code=status.HTTP_302_FOUND
    )

"""
FastAPI Application Entry Point

This module builds the FastAPI application and configures:
- The shared service context (cache, admission control, database)
- API routes
- Middleware (logging, security headers, CORS)
- Error handlers

Design Decisions:
- App factory: create_app(settings) builds an independent instance, which
  keeps tests isolated from each other and from the environment
- Lifespan starts/stops the context (tables, admission sweeper, engine)
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shortener.api import endpoints
from shortener.core.admission import Clock
from shortener.core.context import build_context, start_context, stop_context
from shortener.core.exceptions import URLShortenerException
from shortener.core.logging_config import configure_logging
from shortener.core.rate_limit import limiter
from shortener.core.setting import Settings, settings as default_settings
from shortener.db.session import check_connection
from shortener.middleware.logging import add_logging_middleware
from shortener.middleware.security import add_security_middleware

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


async def handle_domain_error(request: Request, exc: URLShortenerException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}: {exc}",
        exc_info=exc
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> FastAPI:
    """
    Build a FastAPI application with its own service context.

    Args:
        settings: Settings to use (defaults to the environment-loaded settings)
        clock: Optional millisecond clock for admission control (tests)
    """
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    context = build_context(settings, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await start_context(context)
        logger.info(
            f"Server started: environment={settings.ENV_SETTING.value} base_url={settings.BASE_URL}"
        )
        try:
            yield
        finally:
            await stop_context(context)

    app = FastAPI(
        title="URL Shortener Service",
        description="URL shortening with in-memory lookup cache and per-client write admission control",
        version=VERSION,
        docs_url="/docs",  # Swagger UI documentation
        redoc_url="/redoc",  # ReDoc documentation
        lifespan=lifespan,
    )
    app.state.context = context

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(URLShortenerException, handle_domain_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    add_logging_middleware(app)
    add_security_middleware(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.CORS_ORIGIN],
        allow_credentials=settings.CORS_ORIGIN != "*",
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )

    # Health endpoints defined before router to match before catch-all route
    @app.head("/", tags=["Health"], include_in_schema=False)
    async def root_head():
        return Response(status_code=200)

    @app.get("/", tags=["Health"])
    async def root():
        return {
            "message": "URL Shortener Service",
            "version": VERSION,
            "docs": "/docs"
        }

    @app.get("/healthz", tags=["Health"])
    async def liveness():
        """Minimal liveness check; does not touch the database."""
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": context.uptime(),
        }

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health status including database connectivity and in-memory state."""
        database_ok = await check_connection(context.engine)
        return {
            "status": "OK" if database_ok else "DEGRADED",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": context.uptime(),
            "environment": settings.ENV_SETTING.value,
            "database": "connected" if database_ok else "disconnected",
            "cache_entries": context.cache.count(),
            "rate_limited_clients": context.admission.tracked_identifiers(),
        }

    app.include_router(endpoints.router, tags=["URL Shortener"])

    return app


app = create_app()

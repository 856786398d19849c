"""
Logging Middleware for Request/Response Logging

This middleware logs all HTTP requests and responses for observability.
It captures:
- Request method and path
- Response status code
- Request processing time
- Client IP address and user agent

Responses with status >= 400 are logged at WARNING, the rest at INFO.
"""

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from shortener.core.rate_limit import client_identifier

logger = logging.getLogger("shortener.access")

# Liveness checks are hit constantly; keep them out of the access log
QUIET_PATHS = {"/", "/healthz"}


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging HTTP requests and responses.

    It wraps the request/response cycle to add logging without
    modifying endpoint code.
    """

    async def dispatch(self, request: Request, call_next):
        """
        Process request and log details.

        Args:
            request: The incoming HTTP request
            call_next: The next middleware/endpoint in the chain

        Returns:
            Response object
        """
        client_ip = client_identifier(request)
        start_time = time.perf_counter()

        response = await call_next(request)

        process_time = time.perf_counter() - start_time

        if request.url.path not in QUIET_PATHS:
            user_agent = (request.headers.get("User-Agent") or "")[:100]
            # Format: METHOD PATH STATUS_CODE PROCESS_TIME_MS CLIENT_IP USER_AGENT
            message = (
                f"{request.method} {request.url.path} "
                f"{response.status_code} {process_time*1000:.2f}ms "
                f"IP:{client_ip} UA:{user_agent}"
            )
            if response.status_code >= 400:
                logger.warning(message)
            else:
                logger.info(message)

        response.headers["X-Process-Time"] = str(process_time)

        return response


def add_logging_middleware(app):
    """
    Add logging middleware to FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_middleware(LoggingMiddleware)

"""
Read Rate Limiting Configuration

Write endpoints go through the sliding-window admission controller
(shortener.core.admission). Read endpoints keep a coarse per-IP limit
through slowapi.

Design Decisions:
- Uses slowapi for read limits (lightweight, FastAPI-compatible)
- IP-based limiting; both limiters identify the client with get_client_ip
- X-Forwarded-For is only trusted for the configured number of proxy hops
  (TRUSTED_PROXY_HOPS). Entries to the left of those hops are written by
  the client and are never used as its identity
"""

from typing import List

from fastapi import Request
from slowapi import Limiter


def _forwarded_chain(request: Request) -> List[str]:
    header = request.headers.get("X-Forwarded-For", "")
    return [entry.strip() for entry in header.split(",") if entry.strip()]


def get_client_ip(request: Request, trusted_proxy_hops: int = 0) -> str:
    """
    Extract the client IP address from a request.

    With ``trusted_proxy_hops`` = N > 0 the address is the N-th
    X-Forwarded-For entry from the right, i.e. the one appended by the
    outermost trusted proxy. Otherwise (or when the chain is shorter than
    N) the socket peer address is used.

    Args:
        request: FastAPI Request object
        trusted_proxy_hops: Number of reverse proxies in front of the service

    Returns:
        IP address as string
    """
    if trusted_proxy_hops > 0:
        chain = _forwarded_chain(request)
        if len(chain) >= trusted_proxy_hops:
            return chain[-trusted_proxy_hops]

    return request.client.host if request.client else "unknown"


def client_identifier(request: Request) -> str:
    """get_client_ip using the running application's proxy settings."""
    context = getattr(request.app.state, "context", None)
    hops = context.settings.TRUSTED_PROXY_HOPS if context is not None else 0
    return get_client_ip(request, hops)


limiter = Limiter(key_func=client_identifier)

# Format: "count/period" (e.g., "100/minute" means 100 requests per minute)
RATE_LIMITS = {
    "redirect": "100/minute",  # Redirects: 100 per minute per IP
    "analytics": "30/minute",  # Analytics queries: 30 per minute per IP
}

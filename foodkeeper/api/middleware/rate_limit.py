"""
Rate limiting with slowapi.

Fixed-window counters keyed by client IP, stored in memory or in Redis when
REDIS_URL is set. A default limit applies to every route through
SlowAPIMiddleware; sensitive routes add their own stricter limit with
`@limiter.limit(...)`.

When the counter store fails, requests are let through if
RATE_LIMIT_FAIL_OPEN is set and rejected otherwise.
"""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from foodkeeper.api.config import get_settings
from foodkeeper.api.errors import error_response

settings = get_settings()
logger = logging.getLogger(__name__)

# ============================================================================
# Rate Limiter Configuration
# ============================================================================

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    storage_uri=settings.REDIS_URL or "memory://",
    strategy="fixed-window",
    swallow_errors=settings.RATE_LIMIT_FAIL_OPEN,
    enabled=settings.RATE_LIMIT_ENABLED,
)


def _retry_after_seconds(exc: RateLimitExceeded) -> int:
    """Length of the window that was exhausted."""
    try:
        return int(exc.limit.limit.get_expiry())
    except AttributeError:
        return 60


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with Retry-After in the application's error format."""
    retry_after = _retry_after_seconds(exc)
    logger.warning(
        f"Rate limit exceeded: {get_remote_address(request)} {request.method} "
        f"{request.url.path} ({exc.detail})"
    )
    return error_response(
        status.HTTP_429_TOO_MANY_REQUESTS,
        "rate_limit_exceeded",
        f"Rate limit exceeded: {exc.detail}. Try again in {retry_after} seconds.",
        headers={"Retry-After": str(retry_after)},
    )

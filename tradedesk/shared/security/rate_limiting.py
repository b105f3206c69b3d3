"""
Rate limiting configuration and setup.

Uses slowapi to enforce per-endpoint rate limits. Endpoints that reach
the broker carry the heavier limit so a misbehaving client cannot
exhaust the broker's own request quota.

The limit strings are bound when the route decorators run at import, so
they always come from the environment. Only the on/off switch follows the
settings handed to ``create_app``.
"""

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from tradedesk.core.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit_default],
    enabled=settings.rate_limit_enabled,
)

HEAVY_RATE_LIMIT = settings.rate_limit_heavy


async def rate_limit_exceeded_handler(
    _request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Handle rate limit exceeded errors with a clean JSON response.

    Args:
        _request: The incoming HTTP request.
        exc: The rate limit exceeded exception.

    Returns:
        A 429 JSON envelope with a clear error message.
    """
    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "message": "Rate limit exceeded",
            "error": str(exc.detail),
        },
    )

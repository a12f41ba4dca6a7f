# backend/app/middleware/rate_limit.py
"""
Rate limiting for API protection.

Uses slowapi, keyed by client IP. Besides shielding the service itself,
this protects the market data provider's credit quota: every valuation
fans out into one upstream request per distinct symbol, so market data
and valuation endpoints get tighter limits than plain ledger reads.

Limits live in app/services/constants.py:
    RATE_LIMIT_DEFAULT      ledger reads
    RATE_LIMIT_WRITE        ledger / favorites mutations
    RATE_LIMIT_MARKET_DATA  quote, search, profile, history
    RATE_LIMIT_VALUATION    portfolio valuation
    RATE_LIMIT_HEALTH       health checks

Usage:
    @router.get("/{symbol}/quote")
    @limiter.limit(RATE_LIMIT_MARKET_DATA)
    async def get_quote(request: Request, symbol: str):
        ...
"""

import logging

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from app.config import settings
from app.services.constants import (
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_WRITE,
    RATE_LIMIT_MARKET_DATA,
    RATE_LIMIT_VALUATION,
    RATE_LIMIT_HEALTH,
)

logger = logging.getLogger(__name__)

# Seconds advertised in Retry-After when a local limit trips
DEFAULT_RETRY_AFTER = 60


def _client_ip(request: Request) -> str:
    """
    Rate limit key: the caller's IP.

    Forwarded headers are honoured only when the direct peer is a trusted
    proxy (or trust_proxy_headers is set), so clients cannot pick their own
    key by sending X-Forwarded-For.
    """
    peer = get_remote_address(request)

    if settings.trust_proxy_headers or peer in settings.trusted_proxy_ips:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()

    return peer


# In-memory storage (single instance). Multi-instance deployments pass
# storage_uri="redis://..." here.
limiter = Limiter(
    key_func=_client_ip,
    default_limits=[RATE_LIMIT_DEFAULT],
    enabled=not settings.is_test,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 in the same ErrorDetail shape as every other API error."""
    limit_info = str(exc.detail) if exc.detail else "rate limit exceeded"
    logger.warning(f"Rate limit exceeded for {_client_ip(request)} on {request.url.path}: {limit_info}")

    return JSONResponse(
        status_code=429,
        content={
            "error": "RateLimitError",
            "message": f"Too many requests: {limit_info}",
            "details": {"retry_after": DEFAULT_RETRY_AFTER},
        },
        headers={"Retry-After": str(DEFAULT_RETRY_AFTER)},
    )


__all__ = [
    "limiter",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_WRITE",
    "RATE_LIMIT_MARKET_DATA",
    "RATE_LIMIT_VALUATION",
    "RATE_LIMIT_HEALTH",
]

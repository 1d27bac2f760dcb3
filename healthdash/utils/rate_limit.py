"""
Per-client rate limiting for the auth endpoints
"""
import logging

from fastapi import HTTPException, Request
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter

from healthdash.config import settings

logger = logging.getLogger(__name__)

AUTH_LIMIT = parse(settings.AUTH_RATE_LIMIT)

_storage = MemoryStorage()
_limiter = FixedWindowRateLimiter(_storage)


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def limit_auth_requests(request: Request) -> None:
    """
    Router dependency counting auth requests per client address

    Raises:
        HTTPException: 429 once the client exceeds AUTH_LIMIT in the window
    """
    key = client_key(request)
    if not _limiter.hit(AUTH_LIMIT, "auth", key):
        logger.warning("Auth rate limit exceeded for %s", key)
        raise HTTPException(status_code=429, detail="Too many requests, please try again later.")


def reset() -> None:
    _storage.reset()

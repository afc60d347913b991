"""FastAPI dependencies for authentication and shared resources."""

import secrets

from fastapi import Header, HTTPException, status

from api.models.responses import ErrorCodes
from core.cache import ActivityCache
from core.config import CACHE_FILE, CACHE_TTL_SECONDS, TIMESHEET_API_KEY

_activity_cache: ActivityCache | None = None


async def verify_api_key(x_api_key: str = Header(..., alias="X-API-Key")) -> str:
    """
    Verify API key from X-API-Key header.

    Raises:
        HTTPException: 401 if key is missing or invalid
    """
    if not TIMESHEET_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "API key not configured on server",
                "code": ErrorCodes.INTERNAL_ERROR,
                "details": [],
            },
        )

    # Use constant-time comparison to prevent timing attacks
    if not secrets.compare_digest(x_api_key, TIMESHEET_API_KEY):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "Invalid or missing API key",
                "code": ErrorCodes.UNAUTHORIZED,
                "details": [],
            },
        )

    return x_api_key


def get_activity_cache() -> ActivityCache:
    """Process-wide cache instance; hit/miss stats accumulate across requests."""
    global _activity_cache
    if _activity_cache is None:
        _activity_cache = ActivityCache(CACHE_FILE, ttl_seconds=CACHE_TTL_SECONDS)
    return _activity_cache

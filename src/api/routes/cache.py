"""Cache inspection and maintenance endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from api.dependencies import get_activity_cache, verify_api_key
from api.models.responses import (
    CacheClearRequest,
    CacheClearResponse,
    CacheStatsResponse,
    ErrorCodes,
)
from core.cache import ActivityCache
from core.dates import InputError

router = APIRouter(prefix="/v1/cache")


@router.get("/stats", response_model=CacheStatsResponse)
async def cache_stats(
    cache: ActivityCache = Depends(get_activity_cache),
    _api_key: str = Depends(verify_api_key),
):
    """Hit/miss counters since process start or the last full clear."""
    return cache.stats().to_dict()


@router.post("/clear", response_model=CacheClearResponse)
async def clear_cache(
    body: CacheClearRequest,
    cache: ActivityCache = Depends(get_activity_cache),
    _api_key: str = Depends(verify_api_key),
):
    """Clear cached provider data by scope and report remaining entries."""
    try:
        async with cache:
            await cache.clear(body.scope)
    except InputError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Invalid cache scope",
                "code": ErrorCodes.INVALID_REQUEST,
                "details": [str(e)],
            },
        )
    except OSError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Cache file could not be written",
                "code": ErrorCodes.INTERNAL_ERROR,
                "details": [str(e)],
            },
        )

    return {"scope": body.scope, "entries": cache.info()["entries"]}

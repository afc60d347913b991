"""Health check endpoint."""

import os
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from api.models.responses import HealthResponse
from core.config import API_VERSION, CACHE_FILE
from models.activity import ProviderKind
from services.providers import is_configured

router = APIRouter()


def cache_writable() -> bool:
    """Whether the cache file (or its directory, before first write) is writable."""
    if CACHE_FILE.exists():
        return os.access(CACHE_FILE, os.W_OK)
    return os.access(CACHE_FILE.parent, os.W_OK)


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint for monitoring.

    Returns 200 if healthy, 503 if unhealthy.
    """
    writable = cache_writable()
    configured = [kind.value for kind in ProviderKind if is_configured(kind)]
    timestamp = datetime.now(timezone.utc).isoformat()

    if writable and configured:
        return HealthResponse(
            status="healthy",
            version=API_VERSION,
            cache_writable=True,
            providers_configured=configured,
            timestamp=timestamp,
        )

    error = "Cache file is not writable" if not writable else "No providers are configured"
    return JSONResponse(
        status_code=503,
        content=HealthResponse(
            status="unhealthy",
            version=API_VERSION,
            cache_writable=writable,
            providers_configured=configured,
            timestamp=timestamp,
            error=error,
        ).model_dump(),
    )

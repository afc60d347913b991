"""API request/response models."""

from .responses import (
    ActivityRequest,
    ActivityResponse,
    CacheClearRequest,
    CacheClearResponse,
    CacheStatsResponse,
    ErrorCodes,
    ErrorResponse,
    HealthResponse,
)

__all__ = [
    "ActivityRequest",
    "ActivityResponse",
    "CacheClearRequest",
    "CacheClearResponse",
    "CacheStatsResponse",
    "ErrorCodes",
    "ErrorResponse",
    "HealthResponse",
]

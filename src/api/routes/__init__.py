"""API route modules."""

from .activity import router as activity_router
from .cache import router as cache_router
from .health import router as health_router

__all__ = ["activity_router", "cache_router", "health_router"]

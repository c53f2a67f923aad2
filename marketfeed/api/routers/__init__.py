"""API routers package."""
from .analytics import router as analytics_router
from .feed import router as feed_router
from .health import router as health_router
from .videos import router as videos_router

__all__ = ["analytics_router", "feed_router", "health_router", "videos_router"]

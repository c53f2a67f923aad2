"""API package - FastAPI routes and dependencies."""
from .dependencies import get_product_feed_service, get_video_feed_service
from .routers import analytics_router, feed_router, health_router, videos_router

__all__ = [
    "analytics_router",
    "feed_router",
    "get_product_feed_service",
    "get_video_feed_service",
    "health_router",
    "videos_router",
]

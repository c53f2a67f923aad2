"""
Dependency injection container.
Creates and wires all application components.
Uses FastAPI's dependency injection system.
"""
from functools import lru_cache

from fastapi import Depends

from marketfeed.config import (
    ProductRankingConfig,
    VideoRankingConfig,
    get_settings,
)
from marketfeed.core.circuit_breaker import CircuitBreaker
from marketfeed.models.interfaces import (
    FeatureFlagService,
    PreferenceRepository,
    ProductRepository,
    SellerAccountRepository,
    VideoRepository,
)
from marketfeed.repositories.memory import (
    InMemoryPreferenceRepository,
    InMemoryProductRepository,
    InMemorySellerAccountRepository,
    InMemoryVideoRepository,
)
from marketfeed.services.analytics import ProductAnalyticsService
from marketfeed.services.engagement import EngagementFeedback, EngagementService
from marketfeed.services.feature_flags import ConfigBasedFeatureFlagService
from marketfeed.services.feed import ProductFeedService, VideoFeedService
from marketfeed.services.preferences import PreferenceService


# =============================================================================
# Singleton Instances (Application Lifetime)
# =============================================================================


@lru_cache()
def get_video_repository() -> InMemoryVideoRepository:
    """Get singleton video repository."""
    return InMemoryVideoRepository()


@lru_cache()
def get_product_repository() -> InMemoryProductRepository:
    """Get singleton product repository."""
    return InMemoryProductRepository()


@lru_cache()
def get_preference_repository() -> InMemoryPreferenceRepository:
    """Get singleton preference repository."""
    return InMemoryPreferenceRepository(video_repo=get_video_repository())


@lru_cache()
def get_seller_account_repository() -> InMemorySellerAccountRepository:
    """Get singleton seller account repository."""
    return InMemorySellerAccountRepository()


@lru_cache()
def get_feature_flag_service() -> ConfigBasedFeatureFlagService:
    """Get singleton feature flag service."""
    return ConfigBasedFeatureFlagService(
        rollout_percentage=get_settings().ROLLOUT_PERCENTAGE,
    )


@lru_cache()
def get_engagement_feedback() -> EngagementFeedback:
    """Get singleton fire-and-forget counter scheduler."""
    return EngagementFeedback()


@lru_cache()
def get_video_circuit_breaker() -> CircuitBreaker:
    """Get singleton circuit breaker for the video candidate source."""
    settings = get_settings()
    return CircuitBreaker(
        name="video_candidates",
        failure_threshold=settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
        recovery_timeout_sec=settings.CIRCUIT_BREAKER_RECOVERY_TIMEOUT_SEC,
    )


@lru_cache()
def get_product_circuit_breaker() -> CircuitBreaker:
    """Get singleton circuit breaker for the product candidate source."""
    settings = get_settings()
    return CircuitBreaker(
        name="product_candidates",
        failure_threshold=settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
        recovery_timeout_sec=settings.CIRCUIT_BREAKER_RECOVERY_TIMEOUT_SEC,
    )


# =============================================================================
# Request-Scoped Dependencies (Per-Request Lifetime)
# =============================================================================


def get_preference_service(
    preference_repo: PreferenceRepository = Depends(get_preference_repository),
    feature_flags: FeatureFlagService = Depends(get_feature_flag_service),
) -> PreferenceService:
    return PreferenceService(preference_repo, feature_flags)


def get_video_feed_service(
    video_repo: VideoRepository = Depends(get_video_repository),
    preference_service: PreferenceService = Depends(get_preference_service),
    circuit_breaker: CircuitBreaker = Depends(get_video_circuit_breaker),
    feedback: EngagementFeedback = Depends(get_engagement_feedback),
) -> VideoFeedService:
    """Video feed service with all dependencies wired."""
    return VideoFeedService(
        video_repo=video_repo,
        preference_service=preference_service,
        config=VideoRankingConfig.from_settings(get_settings()),
        circuit_breaker=circuit_breaker,
        feedback=feedback,
    )


def get_product_feed_service(
    product_repo: ProductRepository = Depends(get_product_repository),
    preference_service: PreferenceService = Depends(get_preference_service),
    circuit_breaker: CircuitBreaker = Depends(get_product_circuit_breaker),
    feedback: EngagementFeedback = Depends(get_engagement_feedback),
) -> ProductFeedService:
    """Smart feed service with all dependencies wired."""
    return ProductFeedService(
        product_repo=product_repo,
        preference_service=preference_service,
        config=ProductRankingConfig.from_settings(get_settings()),
        circuit_breaker=circuit_breaker,
        feedback=feedback,
    )


def get_engagement_service(
    video_repo: VideoRepository = Depends(get_video_repository),
    seller_repo: SellerAccountRepository = Depends(get_seller_account_repository),
) -> EngagementService:
    return EngagementService(
        video_repo=video_repo,
        seller_repo=seller_repo,
        daily_promotion_cost=get_settings().DAILY_PROMOTION_COST,
    )


def get_analytics_service(
    product_repo: ProductRepository = Depends(get_product_repository),
) -> ProductAnalyticsService:
    return ProductAnalyticsService(product_repo)


# =============================================================================
# Cleanup Functions
# =============================================================================


def clear_caches() -> None:
    """Clear all cached singleton instances (for testing)."""
    get_video_repository.cache_clear()
    get_product_repository.cache_clear()
    get_preference_repository.cache_clear()
    get_seller_account_repository.cache_clear()
    get_feature_flag_service.cache_clear()
    get_engagement_feedback.cache_clear()
    get_video_circuit_breaker.cache_clear()
    get_product_circuit_breaker.cache_clear()

"""Services package - business logic layer."""
from .analytics import ProductAnalyticsService
from .assembler import (
    FeedAssembler,
    InterleavedFeedAssembler,
    ScoreOrderedFeedAssembler,
)
from .engagement import EngagementFeedback, EngagementService
from .feature_flags import ConfigBasedFeatureFlagService
from .feed import ProductFeedService, VideoFeedService
from .gate import PerformanceGate
from .preferences import PreferenceService
from .scoring import (
    ProductScoringModel,
    ScoringContext,
    ScoringModel,
    VideoScoringModel,
)

__all__ = [
    "ConfigBasedFeatureFlagService",
    "EngagementFeedback",
    "EngagementService",
    "FeedAssembler",
    "InterleavedFeedAssembler",
    "PerformanceGate",
    "PreferenceService",
    "ProductAnalyticsService",
    "ProductFeedService",
    "ProductScoringModel",
    "ScoreOrderedFeedAssembler",
    "ScoringContext",
    "ScoringModel",
    "VideoFeedService",
    "VideoScoringModel",
]

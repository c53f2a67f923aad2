"""Models package - domain entities and interfaces."""
from .interfaces import (
    EngagementRecorder,
    FeatureFlagService,
    PreferenceRepository,
    ProductRepository,
    SellerAccountRepository,
    VideoRepository,
)
from .schemas import (
    Candidate,
    CandidateFilter,
    ErrorResponse,
    PreferenceProfile,
    ProductCandidate,
    ProductFeedItem,
    ProductFeedResponse,
    ScoredProduct,
    ScoredVideo,
    VideoCandidate,
    VideoFeedItem,
    VideoFeedResponse,
)

__all__ = [
    # Interfaces
    "EngagementRecorder",
    "FeatureFlagService",
    "PreferenceRepository",
    "ProductRepository",
    "SellerAccountRepository",
    "VideoRepository",
    # Schemas
    "Candidate",
    "CandidateFilter",
    "ErrorResponse",
    "PreferenceProfile",
    "ProductCandidate",
    "ProductFeedItem",
    "ProductFeedResponse",
    "ScoredProduct",
    "ScoredVideo",
    "VideoCandidate",
    "VideoFeedItem",
    "VideoFeedResponse",
]

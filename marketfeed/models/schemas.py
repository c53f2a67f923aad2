"""
Domain models using Pydantic.
Candidates, viewer preferences, scored results and API envelopes.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_json_list(raw: Optional[str], candidate_id: str, field: str) -> Optional[List[Any]]:
    """
    Decode a stored JSON array column.

    Returns None when nothing is stored and an empty list when the payload
    is corrupt or not an array.
    """
    if raw is None or raw == "":
        return None
    try:
        value = json.loads(raw)
    except (TypeError, ValueError, RecursionError):
        logger.warning(
            f"Malformed {field} payload for candidate {candidate_id}",
            extra={"candidate_id": candidate_id},
        )
        return []
    if not isinstance(value, list):
        logger.warning(
            f"Unexpected {field} payload type for candidate {candidate_id}",
            extra={"candidate_id": candidate_id},
        )
        return []
    return value


# =============================================================================
# Candidates
# =============================================================================


class Candidate(BaseModel):
    """Fields shared by every rankable item."""

    id: str = Field(..., description="Unique candidate identifier")
    store_id: str = Field(..., description="Owning store")
    store_name: str = Field(default="", description="Owning store display name")
    views_count: int = Field(default=0, ge=0)
    is_active: bool = Field(default=True, description="False once soft-deleted")
    is_promoted: bool = Field(default=False)
    promotion_end_date: Optional[datetime] = Field(
        default=None,
        description="End of the paid promotion window",
    )
    created_at: datetime = Field(..., description="Publication time")

    @field_validator("created_at", "promotion_end_date")
    @classmethod
    def _ensure_timezone(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


class VideoCandidate(Candidate):
    """Short-form Fy video linked to a product."""

    video_url: str = Field(..., description="Media host URL")
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    product_category: Optional[str] = Field(
        default=None,
        description="Category name of the linked product",
    )
    likes_count: int = Field(default=0, ge=0)
    product_clicks_count: int = Field(default=0, ge=0, description="Conversions")
    comments_count: int = Field(default=0, ge=0)
    ad_attributed_sales_count: int = Field(default=0, ge=0)


class ProductCandidate(Candidate):
    """Catalog product shown on the smart storefront."""

    name: str
    price: float = Field(default=0.0, ge=0)
    seller_city: Optional[str] = None
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None
    total_sold: int = Field(default=0, ge=0, description="Units sold (conversions)")
    shipping_options_json: Optional[str] = Field(
        default=None,
        description="Stored JSON array of shipping options ({city_id, ...})",
    )
    variants_json: Optional[str] = Field(
        default=None,
        description="Stored JSON array of variant definitions",
    )

    def shipping_options(self) -> Optional[List[Any]]:
        return parse_json_list(self.shipping_options_json, self.id, "shipping_options")

    def variants(self) -> List[Any]:
        return parse_json_list(self.variants_json, self.id, "variants") or []


class CandidateFilter(BaseModel):
    """Optional narrowing of the active candidate pool."""

    store_id: Optional[str] = None
    category: Optional[str] = None


# =============================================================================
# Viewer preferences
# =============================================================================


class PreferenceProfile(BaseModel):
    """
    What one viewer has already interacted with.
    Built per request; empty for anonymous viewers.
    """

    viewer_id: Optional[str] = None
    favorite_categories: Set[str] = Field(
        default_factory=set,
        description="Category and subcategory identifiers",
    )
    videos_seen: Set[str] = Field(default_factory=set)
    liked_video_ids: Set[str] = Field(default_factory=set)

    @classmethod
    def anonymous(cls) -> "PreferenceProfile":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not (self.favorite_categories or self.videos_seen or self.liked_video_ids)


# =============================================================================
# Scored candidates
# =============================================================================


class ScoredVideo(BaseModel):
    """Video with the derived rates and score of one ranking pass."""

    video: VideoCandidate
    conversion_rate: float
    like_rate: float
    recency_score: float
    final_score: float
    score_breakdown: Dict[str, float] = Field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.video.id


class ScoredProduct(BaseModel):
    """Product with the derived rates and score of one ranking pass."""

    product: ProductCandidate
    conversion_rate: float
    recency_score: float
    personal_score: float
    exploration: float
    locality_factor: float
    shipping_options: Optional[List[Any]] = None
    promoted: bool
    final_score: float
    score_breakdown: Dict[str, float] = Field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.product.id


# =============================================================================
# API Models (External)
# =============================================================================


class VideoFeedItem(BaseModel):
    """Single video in a feed response."""

    id: str
    video_url: str
    store_id: str
    store_name: str
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    product_category: Optional[str] = None
    views_count: int
    likes_count: int
    product_clicks_count: int
    comments_count: int
    is_promoted: bool
    promotion_end_date: Optional[datetime] = None
    created_at: datetime
    has_liked: bool = False
    conversion_rate: float
    like_rate: float
    recency_score: float
    final_score: float


class ProductFeedItem(BaseModel):
    """Single product in a smart feed response."""

    id: str
    name: str
    price: float
    store_id: str
    store_name: str
    seller_city: Optional[str] = None
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None
    views_count: int
    total_sold: int
    is_promoted: bool
    created_at: datetime
    shipping_options: List[Any] = Field(default_factory=list)
    variants: List[Any] = Field(default_factory=list)
    conversion_rate: float
    final_score: float


class VideoFeedResponse(BaseModel):
    """Fy feed response envelope."""

    success: bool = True
    message: str = ""
    personalized: bool = False
    videos: List[VideoFeedItem] = Field(default_factory=list)


class ProductFeedResponse(BaseModel):
    """Smart feed response envelope."""

    success: bool = True
    personalized: bool = False
    products: List[ProductFeedItem] = Field(default_factory=list)


class VideoDetailResponse(BaseModel):
    success: bool = True
    video: VideoCandidate
    has_liked: bool = False


class CounterResponse(BaseModel):
    """Result of an engagement counter increment."""

    success: bool = True
    message: str
    value: Optional[int] = None


class LikeToggleResponse(BaseModel):
    success: bool = True
    message: str
    liked: bool
    new_likes_count: int


class PromotionRequest(BaseModel):
    days: int = Field(..., description="Promotion length in days")


class PromotionResponse(BaseModel):
    success: bool = True
    message: str
    promotion_ends: datetime
    cost: float


class ProductMetric(BaseModel):
    id: str
    name: str
    price: float
    views_count: int
    total_sold: int
    conversion: Optional[float] = Field(
        default=None,
        description="Units sold per 100 views",
    )


class ProductAnalyticsResponse(BaseModel):
    success: bool = True
    top_sold: List[ProductMetric] = Field(default_factory=list)
    top_viewed: List[ProductMetric] = Field(default_factory=list)
    top_conversion: List[ProductMetric] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Standard error response format."""

    success: bool = False
    error: Dict[str, Any] = Field(..., description="Error details")

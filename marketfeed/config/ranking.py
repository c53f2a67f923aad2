"""
Immutable ranking configuration.

Every weight, threshold and size used by the scoring models, the performance
gate and the feed assemblers lives here and is passed in through constructors.
"""
from datetime import timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from marketfeed.config.settings import Settings


class LikeRateMode(str, Enum):
    """Which value a scored video reports in its ``like_rate`` field."""

    LEGACY = "legacy"  # like_rate mirrors conversion_rate
    CORRECTED = "corrected"  # like_rate is likes / views


class VideoRankingConfig(BaseModel):
    """Parameters of the Fy video feed."""

    model_config = ConfigDict(frozen=True)

    test_audience_size: int = Field(default=100, ge=0)
    min_conversion_rate: float = Field(default=0.01, ge=0)
    min_like_rate: float = Field(default=0.05, ge=0)
    weight_conversion: float = 0.6
    weight_like: float = 0.3
    weight_recency: float = 0.1
    recency_horizon_days: float = Field(default=7, gt=0)
    target_size: int = Field(default=50, ge=0)
    promotion_interval: int = Field(default=6, ge=1)
    like_rate_mode: LikeRateMode = LikeRateMode.LEGACY
    feedback_top_k: int = Field(default=0, ge=0)

    @property
    def recency_horizon(self) -> timedelta:
        return timedelta(days=self.recency_horizon_days)

    @classmethod
    def from_settings(cls, settings: Settings) -> "VideoRankingConfig":
        return cls(
            test_audience_size=settings.VIDEO_TEST_AUDIENCE_SIZE,
            min_conversion_rate=settings.VIDEO_MIN_CONVERSION_RATE,
            min_like_rate=settings.VIDEO_MIN_LIKE_RATE,
            weight_conversion=settings.VIDEO_WEIGHT_CONVERSION,
            weight_like=settings.VIDEO_WEIGHT_LIKE,
            weight_recency=settings.VIDEO_WEIGHT_RECENCY,
            recency_horizon_days=settings.VIDEO_RECENCY_HORIZON_DAYS,
            target_size=settings.VIDEO_FEED_TARGET_SIZE,
            promotion_interval=settings.VIDEO_PROMOTION_INTERVAL,
            like_rate_mode=LikeRateMode(settings.VIDEO_LIKE_RATE_MODE),
            feedback_top_k=settings.VIDEO_FEEDBACK_TOP_K,
        )


class ProductRankingConfig(BaseModel):
    """Parameters of the smart product feed."""

    model_config = ConfigDict(frozen=True)

    weight_conversion: float = 0.5
    weight_recency: float = 0.2
    weight_personal: float = 0.2
    weight_exploration: float = 0.1
    promotion_bonus: float = 5.0
    recency_horizon_days: float = Field(default=30, gt=0)
    region_penalty: float = Field(default=0.5, ge=0)
    target_size: int = Field(default=100, ge=0)
    feedback_top_k: int = Field(default=20, ge=0)
    exploration_seed: Optional[int] = None

    @property
    def recency_horizon(self) -> timedelta:
        return timedelta(days=self.recency_horizon_days)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProductRankingConfig":
        return cls(
            weight_conversion=settings.PRODUCT_WEIGHT_CONVERSION,
            weight_recency=settings.PRODUCT_WEIGHT_RECENCY,
            weight_personal=settings.PRODUCT_WEIGHT_PERSONAL,
            weight_exploration=settings.PRODUCT_WEIGHT_EXPLORATION,
            promotion_bonus=settings.PRODUCT_PROMOTION_BONUS,
            recency_horizon_days=settings.PRODUCT_RECENCY_HORIZON_DAYS,
            region_penalty=settings.PRODUCT_REGION_PENALTY,
            target_size=settings.PRODUCT_FEED_TARGET_SIZE,
            feedback_top_k=settings.PRODUCT_FEEDBACK_TOP_K,
            exploration_seed=settings.PRODUCT_EXPLORATION_SEED,
        )

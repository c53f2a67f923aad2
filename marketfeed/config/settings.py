"""
Centralized configuration using Pydantic BaseSettings.
All environment variables are loaded here - no hardcoded values.
"""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Marketplace Feed API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Feature Flags
    PERSONALIZATION_ENABLED: bool = True
    KILL_SWITCH_ACTIVE: bool = False
    ROLLOUT_PERCENTAGE: int = 100  # Percentage of viewers receiving personalized feeds

    # Authentication (viewer identity is optional on every feed)
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"

    # Telemetry
    ENABLE_OTEL: bool = False  # Default to False to prevent gRPC errors in dev
    ENABLE_PROMETHEUS: bool = True

    # Circuit Breaker (candidate repository)
    CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = 5
    CIRCUIT_BREAKER_RECOVERY_TIMEOUT_SEC: int = 30

    # Fy video feed
    VIDEO_TEST_AUDIENCE_SIZE: int = 100
    VIDEO_MIN_CONVERSION_RATE: float = 0.01
    VIDEO_MIN_LIKE_RATE: float = 0.05
    VIDEO_WEIGHT_CONVERSION: float = 0.6
    VIDEO_WEIGHT_LIKE: float = 0.3
    VIDEO_WEIGHT_RECENCY: float = 0.1
    VIDEO_RECENCY_HORIZON_DAYS: float = 7
    VIDEO_FEED_TARGET_SIZE: int = 50
    VIDEO_PROMOTION_INTERVAL: int = 6
    VIDEO_LIKE_RATE_MODE: str = "legacy"  # "legacy" or "corrected"
    VIDEO_FEEDBACK_TOP_K: int = 0

    # Smart product feed
    PRODUCT_WEIGHT_CONVERSION: float = 0.5
    PRODUCT_WEIGHT_RECENCY: float = 0.2
    PRODUCT_WEIGHT_PERSONAL: float = 0.2
    PRODUCT_WEIGHT_EXPLORATION: float = 0.1
    PRODUCT_PROMOTION_BONUS: float = 5.0
    PRODUCT_RECENCY_HORIZON_DAYS: float = 30
    PRODUCT_REGION_PENALTY: float = 0.5
    PRODUCT_FEED_TARGET_SIZE: int = 100
    PRODUCT_FEEDBACK_TOP_K: int = 20
    PRODUCT_EXPLORATION_SEED: Optional[int] = None

    # Paid promotion
    DAILY_PROMOTION_COST: float = 5.00

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance - singleton pattern."""
    return Settings()

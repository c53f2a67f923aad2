"""Configuration package - settings, logging and ranking parameters."""
from .ranking import LikeRateMode, ProductRankingConfig, VideoRankingConfig
from .settings import Settings, get_settings

__all__ = [
    "LikeRateMode",
    "ProductRankingConfig",
    "Settings",
    "VideoRankingConfig",
    "get_settings",
]

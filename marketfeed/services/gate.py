"""
Performance gate for the Fy video feed.

Videos still on trial (fewer views than the test audience) always pass. Once
the test audience is reached a video must sustain both minimum rates.
"""
import logging
from typing import List, Optional

from marketfeed.config.ranking import VideoRankingConfig
from marketfeed.models.schemas import VideoCandidate
from marketfeed.services.scoring import engagement_rate

logger = logging.getLogger(__name__)


class PerformanceGate:
    """Drops videos that were judged on a full test audience and failed."""

    def __init__(self, config: Optional[VideoRankingConfig] = None) -> None:
        self._config = config or VideoRankingConfig()

    def passes(self, video: VideoCandidate) -> bool:
        config = self._config
        if video.views_count < config.test_audience_size:
            return True

        conversion = engagement_rate(video.product_clicks_count, video.views_count)
        likes = engagement_rate(video.likes_count, video.views_count)
        return conversion >= config.min_conversion_rate and likes >= config.min_like_rate

    def apply(self, videos: List[VideoCandidate]) -> List[VideoCandidate]:
        passed = [video for video in videos if self.passes(video)]
        if len(passed) < len(videos):
            logger.debug(f"Performance gate removed {len(videos) - len(passed)} videos")
        return passed

"""
Settings-backed personalization switches.

A viewer is personalized only when the kill switch is off, personalization is
enabled globally and the viewer's rollout bucket falls under the current
percentage.
"""
import hashlib
import logging

from marketfeed.config import get_settings
from marketfeed.models.interfaces import FeatureFlagService

logger = logging.getLogger(__name__)


def _clamp_percentage(percentage: float) -> float:
    return max(0.0, min(100.0, float(percentage)))


class ConfigBasedFeatureFlagService(FeatureFlagService):
    """
    Feature flags read from ``Settings`` on every call, so toggling the kill
    switch or ``PERSONALIZATION_ENABLED`` takes effect immediately. The rollout
    percentage is held by the instance and may be changed at runtime.
    """

    def __init__(self, rollout_percentage: float = 100.0) -> None:
        """
        Args:
            rollout_percentage: Share of identified viewers to personalize (0-100)
        """
        self._rollout_percentage = _clamp_percentage(rollout_percentage)

    @property
    def rollout_percentage(self) -> float:
        return self._rollout_percentage

    def is_personalization_enabled(self, viewer_id: str) -> bool:
        """Whether ``viewer_id`` gets a feed shaped by their preference profile."""
        settings = get_settings()
        if settings.KILL_SWITCH_ACTIVE or not settings.PERSONALIZATION_ENABLED:
            return False
        if self._rollout_percentage >= 100.0:
            return True
        return self.rollout_bucket(viewer_id) < self._rollout_percentage

    def is_kill_switch_active(self) -> bool:
        return get_settings().KILL_SWITCH_ACTIVE

    @staticmethod
    def rollout_bucket(viewer_id: str) -> int:
        """Stable bucket in [0, 100) derived from the MD5 of the viewer id."""
        digest = hashlib.md5(viewer_id.encode()).digest()
        return int.from_bytes(digest[:4], byteorder="big") % 100

    def set_rollout_percentage(self, percentage: float) -> None:
        self._rollout_percentage = _clamp_percentage(percentage)
        logger.info(f"Personalization rollout set to {self._rollout_percentage:.0f}%")

"""
Unit tests for the settings-backed feature flag service.
"""
import pytest

from marketfeed.config import get_settings
from marketfeed.services.feature_flags import ConfigBasedFeatureFlagService


@pytest.fixture
def settings():
    settings = get_settings()
    original = (settings.PERSONALIZATION_ENABLED, settings.KILL_SWITCH_ACTIVE)
    yield settings
    settings.PERSONALIZATION_ENABLED, settings.KILL_SWITCH_ACTIVE = original


class TestConfigBasedFeatureFlagService:
    def test_enabled_by_default(self, settings):
        assert ConfigBasedFeatureFlagService().is_personalization_enabled("buyer_1") is True

    def test_kill_switch_wins(self, settings):
        settings.KILL_SWITCH_ACTIVE = True
        service = ConfigBasedFeatureFlagService()

        assert service.is_kill_switch_active() is True
        assert service.is_personalization_enabled("buyer_1") is False

    def test_personalization_disabled(self, settings):
        settings.PERSONALIZATION_ENABLED = False
        assert ConfigBasedFeatureFlagService().is_personalization_enabled("buyer_1") is False

    def test_zero_rollout_excludes_everyone(self, settings):
        service = ConfigBasedFeatureFlagService(rollout_percentage=0)
        assert not any(service.is_personalization_enabled(f"viewer_{i}") for i in range(50))

    def test_rollout_bucket_is_stable(self):
        bucket = ConfigBasedFeatureFlagService.rollout_bucket("buyer_1")

        assert 0 <= bucket < 100
        assert ConfigBasedFeatureFlagService.rollout_bucket("buyer_1") == bucket

    def test_partial_rollout_follows_bucket(self, settings):
        service = ConfigBasedFeatureFlagService(rollout_percentage=50)
        for i in range(30):
            viewer_id = f"viewer_{i}"
            expected = ConfigBasedFeatureFlagService.rollout_bucket(viewer_id) < 50
            assert service.is_personalization_enabled(viewer_id) is expected

    def test_set_rollout_percentage_clamps(self, settings):
        service = ConfigBasedFeatureFlagService(rollout_percentage=0)
        service.set_rollout_percentage(250)

        assert service.is_personalization_enabled("anyone") is True

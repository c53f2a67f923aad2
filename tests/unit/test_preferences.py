"""
Unit tests for preference profiles and the preference service.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from marketfeed.models.schemas import PreferenceProfile
from marketfeed.repositories.memory import InMemoryPreferenceRepository
from marketfeed.services.preferences import (
    PreferenceService,
    merge_profiles,
    profile_from_purchases,
    profile_from_video_history,
)


def _flags(enabled: bool = True) -> MagicMock:
    flags = MagicMock()
    flags.is_personalization_enabled.return_value = enabled
    return flags


class TestProfileBuilders:
    def test_purchases_collect_category_and_subcategory(self):
        rows = [
            {"category_id": "c1", "subcategory_id": "c1-phones"},
            {"category_id": "c2", "subcategory_id": None},
        ]
        profile = profile_from_purchases("u", rows)

        assert profile.favorite_categories == {"c1", "c1-phones", "c2"}

    def test_purchases_only_most_recent_rows(self):
        rows = [{"category_id": f"c{i}"} for i in range(15)]
        profile = profile_from_purchases("u", rows)

        assert profile.favorite_categories == {f"c{i}" for i in range(10)}

    def test_video_history_ids_become_strings(self):
        profile = profile_from_video_history("u", seen=[1, 2], liked=[3], categories=["home"])

        assert profile.videos_seen == {"1", "2"}
        assert profile.liked_video_ids == {"3"}
        assert profile.favorite_categories == {"home"}

    def test_merge_is_union(self):
        merged = merge_profiles(
            PreferenceProfile(viewer_id="u", videos_seen={"a"}),
            PreferenceProfile(viewer_id="u", favorite_categories={"c1"}, videos_seen={"b"}),
        )

        assert merged.viewer_id == "u"
        assert merged.videos_seen == {"a", "b"}
        assert merged.favorite_categories == {"c1"}

    def test_anonymous_profile_is_empty(self):
        assert PreferenceProfile.anonymous().is_empty is True


class TestPreferenceService:
    @pytest.mark.asyncio
    async def test_anonymous_viewer_gets_empty_profile(self):
        repo = MagicMock()
        repo.fetch_preference_profile = AsyncMock()
        service = PreferenceService(repo, _flags())

        profile = await service.load(None)

        assert profile.is_empty
        repo.fetch_preference_profile.assert_not_called()

    @pytest.mark.asyncio
    async def test_disabled_personalization_skips_lookup(self):
        repo = MagicMock()
        repo.fetch_preference_profile = AsyncMock()
        service = PreferenceService(repo, _flags(enabled=False))

        profile = await service.load("buyer_1")

        assert profile.is_empty
        assert service.is_personalized("buyer_1") is False
        repo.fetch_preference_profile.assert_not_called()

    @pytest.mark.asyncio
    async def test_lookup_failure_degrades_to_empty(self):
        repo = MagicMock()
        repo.fetch_preference_profile = AsyncMock(side_effect=ConnectionError("db down"))
        service = PreferenceService(repo, _flags())

        profile = await service.load("buyer_1")

        assert profile.is_empty

    @pytest.mark.asyncio
    async def test_missing_profile_keeps_viewer_id(self):
        repo = MagicMock()
        repo.fetch_preference_profile = AsyncMock(return_value=None)
        service = PreferenceService(repo, _flags())

        profile = await service.load("new_buyer")

        assert profile.viewer_id == "new_buyer"
        assert profile.is_empty

    @pytest.mark.asyncio
    async def test_seeded_repository_profile(self, mock_video_repo):
        service = PreferenceService(InMemoryPreferenceRepository(mock_video_repo), _flags())

        profile = await service.load("buyer_1")

        assert profile.videos_seen == {"v6"}
        assert profile.liked_video_ids == {"v8"}
        assert {"electronics", "fashion", "c2", "c2-shoes"} <= profile.favorite_categories

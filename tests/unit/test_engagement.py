"""
Unit tests for engagement recording, likes and paid promotion.
"""
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from marketfeed.core.exceptions import InsufficientBalanceError, NotFoundError, ValidationError
from marketfeed.services.engagement import EngagementFeedback, EngagementService


@pytest.fixture
def service(mock_video_repo, mock_seller_repo):
    return EngagementService(mock_video_repo, mock_seller_repo, daily_promotion_cost=5.00)


class TestEngagementFeedback:
    @pytest.mark.asyncio
    async def test_increments_every_id(self, mock_video_repo):
        feedback = EngagementFeedback()

        feedback.schedule(mock_video_repo, ["v1", "v2"], "views_count")
        await feedback.wait_idle()

        assert (await mock_video_repo.get_video("v1")).views_count == 51
        assert (await mock_video_repo.get_video("v2")).views_count == 201
        assert feedback.pending == 0

    @pytest.mark.asyncio
    async def test_failures_are_swallowed_per_id(self):
        recorder = MagicMock()
        recorder.increment_counter = AsyncMock(side_effect=[RuntimeError("boom"), 7])
        feedback = EngagementFeedback()

        task = feedback.schedule(recorder, ["a", "b"], "views_count")
        await task

        assert task.exception() is None
        assert recorder.increment_counter.await_count == 2

    def test_nothing_scheduled_for_empty_ids(self):
        assert EngagementFeedback().schedule(MagicMock(), [], "views_count") is None


class TestEngagementService:
    @pytest.mark.asyncio
    async def test_record_view(self, service):
        assert await service.record("v1", "views_count") == 51

    @pytest.mark.asyncio
    async def test_record_unknown_counter(self, service):
        with pytest.raises(ValidationError):
            await service.record("v1", "likes_count")

    @pytest.mark.asyncio
    async def test_record_missing_video(self, service):
        with pytest.raises(NotFoundError):
            await service.record("missing", "views_count")

    @pytest.mark.asyncio
    async def test_get_video_with_like_state(self, service):
        video, has_liked = await service.get_video("v8", "buyer_1")

        assert video.id == "v8"
        assert has_liked is True

    @pytest.mark.asyncio
    async def test_inactive_video_not_found(self, service):
        with pytest.raises(NotFoundError):
            await service.get_video("v7")

    @pytest.mark.asyncio
    async def test_toggle_like_round_trip(self, service):
        liked, count = await service.toggle_like("v1", "buyer_2")
        assert (liked, count) == (True, 6)

        liked, count = await service.toggle_like("v1", "buyer_2")
        assert (liked, count) == (False, 5)

    @pytest.mark.asyncio
    async def test_promote_debits_and_sets_window(self, service, mock_video_repo, mock_seller_repo, now):
        end_date, cost = await service.promote("v1", "seller_1", 3, now=now)

        assert cost == 15.0
        assert end_date == now + timedelta(days=3)
        assert await mock_seller_repo.get_balance("seller_1") == 35.0
        video = await mock_video_repo.get_video("v1")
        assert video.is_promoted is True
        assert video.promotion_end_date == end_date

    @pytest.mark.asyncio
    @pytest.mark.parametrize("days", [0, -2, True])
    async def test_promote_invalid_days(self, service, days):
        with pytest.raises(ValidationError):
            await service.promote("v1", "seller_1", days)

    @pytest.mark.asyncio
    async def test_promote_someone_elses_video(self, service):
        with pytest.raises(NotFoundError):
            await service.promote("v2", "seller_1", 1)

    @pytest.mark.asyncio
    async def test_promote_insufficient_balance(self, service, mock_video_repo, mock_seller_repo):
        with pytest.raises(InsufficientBalanceError):
            await service.promote("v2", "seller_2", 1)

        assert await mock_seller_repo.get_balance("seller_2") == 2.0
        assert (await mock_video_repo.get_video("v2")).is_promoted is False

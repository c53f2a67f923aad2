"""
Engagement recording.

``EngagementFeedback`` runs post-response counter bumps as detached tasks;
``EngagementService`` backs the explicit view/click/like/promotion endpoints.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Set, Tuple

from marketfeed.core.exceptions import (
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from marketfeed.core.telemetry import FEEDBACK_FAILURES
from marketfeed.models.interfaces import (
    EngagementRecorder,
    SellerAccountRepository,
    VideoRepository,
)
from marketfeed.models.schemas import VideoCandidate

logger = logging.getLogger(__name__)

# Counters anyone (including anonymous viewers) may bump on a video
PUBLIC_VIDEO_COUNTERS = ("views_count", "product_clicks_count", "ad_attributed_sales_count")


class EngagementFeedback:
    """
    Fire-and-forget counter increments.

    Tasks are detached from the request; failures are logged and counted,
    never raised.
    """

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule(
        self,
        recorder: EngagementRecorder,
        candidate_ids: List[str],
        counter_name: str,
    ) -> Optional[asyncio.Task]:
        if not candidate_ids:
            return None

        task = asyncio.create_task(self._bump_all(recorder, list(candidate_ids), counter_name))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for every scheduled increment to settle."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _bump_all(
        self,
        recorder: EngagementRecorder,
        candidate_ids: List[str],
        counter_name: str,
    ) -> None:
        for candidate_id in candidate_ids:
            try:
                await recorder.increment_counter(candidate_id, counter_name)
            except Exception as e:
                FEEDBACK_FAILURES.labels(counter=counter_name).inc()
                logger.warning(
                    f"Feedback increment failed for {candidate_id}: {e}",
                    extra={"candidate_id": candidate_id, "counter": counter_name},
                )


class EngagementService:
    """Explicit engagement and promotion operations on Fy videos."""

    def __init__(
        self,
        video_repo: VideoRepository,
        seller_repo: SellerAccountRepository,
        daily_promotion_cost: float = 5.00,
    ) -> None:
        self._video_repo = video_repo
        self._seller_repo = seller_repo
        self._daily_promotion_cost = daily_promotion_cost

    async def get_video(self, video_id: str, viewer_id: Optional[str] = None) -> Tuple[VideoCandidate, bool]:
        """Return an active video and whether the viewer liked it."""
        video = await self._video_repo.get_video(video_id)
        if video is None:
            raise NotFoundError("Video", video_id)
        has_liked = bool(viewer_id) and await self._video_repo.has_liked(video_id, viewer_id)
        return video, has_liked

    async def record(self, video_id: str, counter_name: str) -> int:
        """Increment a public counter, returning its new value."""
        if counter_name not in PUBLIC_VIDEO_COUNTERS:
            raise ValidationError(
                f"Unknown counter: {counter_name}",
                details={"allowed": list(PUBLIC_VIDEO_COUNTERS)},
            )
        value = await self._video_repo.increment_counter(video_id, counter_name)
        if value is None:
            raise NotFoundError("Video", video_id)
        return value

    async def toggle_like(self, video_id: str, viewer_id: str) -> Tuple[bool, int]:
        result = await self._video_repo.toggle_like(video_id, viewer_id)
        if result is None:
            raise NotFoundError("Video", video_id)
        return result

    async def promote(
        self,
        video_id: str,
        seller_id: str,
        days: int,
        now: Optional[datetime] = None,
    ) -> Tuple[datetime, float]:
        """
        Buy a promotion window for a seller's own video.

        Returns:
            (promotion end date, amount debited)
        """
        if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
            raise ValidationError("Invalid number of days", details={"days": days})

        video = await self._video_repo.get_video(video_id)
        if video is None or await self._seller_repo.get_store_owner(video.store_id) != seller_id:
            raise NotFoundError("Video", video_id)

        cost = days * self._daily_promotion_cost
        if not await self._seller_repo.debit(seller_id, cost):
            balance = await self._seller_repo.get_balance(seller_id)
            raise InsufficientBalanceError(balance, cost)

        end_date = (now or datetime.now(timezone.utc)) + timedelta(days=days)
        await self._video_repo.set_promotion(video_id, end_date)

        logger.info(
            f"Video {video_id} promoted for {days} days (cost={cost:.2f})",
            extra={"candidate_id": video_id},
        )
        return end_date, cost

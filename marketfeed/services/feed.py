"""
Feed services - main business logic orchestrators.
Coordinate candidate fetching, preference loading, scoring and assembly for
the Fy video feed and the smart product feed.
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, TypeVar

from marketfeed.config.ranking import ProductRankingConfig, VideoRankingConfig
from marketfeed.core.circuit_breaker import CircuitBreaker
from marketfeed.core.exceptions import CandidateSourceError, CircuitBreakerOpenError
from marketfeed.core.telemetry import GATED_CANDIDATES, record_feed_served
from marketfeed.models.interfaces import ProductRepository, VideoRepository
from marketfeed.models.schemas import (
    CandidateFilter,
    PreferenceProfile,
    ProductFeedItem,
    ProductFeedResponse,
    ScoredProduct,
    ScoredVideo,
    VideoFeedItem,
    VideoFeedResponse,
)
from marketfeed.services.assembler import (
    FeedAssembler,
    InterleavedFeedAssembler,
    ScoreOrderedFeedAssembler,
)
from marketfeed.services.engagement import EngagementFeedback
from marketfeed.services.gate import PerformanceGate
from marketfeed.services.preferences import PreferenceService
from marketfeed.services.scoring import (
    ProductScoringModel,
    ScoringContext,
    VideoScoringModel,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _fetch_candidates(
    feed: str,
    circuit_breaker: CircuitBreaker,
    fetch: Callable[[], Awaitable[List[T]]],
) -> List[T]:
    """Load the candidate pool; failures abort the request."""
    try:
        return await circuit_breaker.call(fetch)
    except CircuitBreakerOpenError:
        raise
    except Exception as e:
        logger.error(f"Candidate fetch failed for {feed} feed: {e}", extra={"feed": feed})
        raise CandidateSourceError(feed) from e


def to_video_item(scored: ScoredVideo, profile: PreferenceProfile) -> VideoFeedItem:
    video = scored.video
    return VideoFeedItem(
        id=video.id,
        video_url=video.video_url,
        store_id=video.store_id,
        store_name=video.store_name,
        product_id=video.product_id,
        product_name=video.product_name,
        product_category=video.product_category,
        views_count=video.views_count,
        likes_count=video.likes_count,
        product_clicks_count=video.product_clicks_count,
        comments_count=video.comments_count,
        is_promoted=video.is_promoted,
        promotion_end_date=video.promotion_end_date,
        created_at=video.created_at,
        has_liked=video.id in profile.liked_video_ids,
        conversion_rate=round(scored.conversion_rate, 4),
        like_rate=round(scored.like_rate, 4),
        recency_score=round(scored.recency_score, 4),
        final_score=round(scored.final_score, 4),
    )


def to_product_item(scored: ScoredProduct) -> ProductFeedItem:
    product = scored.product
    return ProductFeedItem(
        id=product.id,
        name=product.name,
        price=product.price,
        store_id=product.store_id,
        store_name=product.store_name,
        seller_city=product.seller_city,
        category_id=product.category_id,
        subcategory_id=product.subcategory_id,
        views_count=product.views_count,
        total_sold=product.total_sold,
        is_promoted=scored.promoted,
        created_at=product.created_at,
        shipping_options=scored.shipping_options or [],
        variants=product.variants(),
        conversion_rate=round(scored.conversion_rate, 4),
        final_score=round(scored.final_score, 4),
    )


class VideoFeedService:
    """
    Fy video feed.

    Pipeline: fetch → performance gate → score → sort → priority-bucket
    interleave.
    """

    def __init__(
        self,
        video_repo: VideoRepository,
        preference_service: PreferenceService,
        config: Optional[VideoRankingConfig] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        feedback: Optional[EngagementFeedback] = None,
        scoring_model: Optional[VideoScoringModel] = None,
        assembler: Optional[FeedAssembler[ScoredVideo]] = None,
    ) -> None:
        self._config = config or VideoRankingConfig()
        self._video_repo = video_repo
        self._preferences = preference_service
        self._circuit_breaker = circuit_breaker or CircuitBreaker(name="video_candidates")
        self._feedback = feedback or EngagementFeedback()
        self._gate = PerformanceGate(self._config)
        self._scoring = scoring_model or VideoScoringModel(self._config)
        self._assembler = assembler or InterleavedFeedAssembler(
            target_size=self._config.target_size,
            promotion_interval=self._config.promotion_interval,
        )

    async def get_feed(
        self,
        viewer_id: Optional[str] = None,
        now: Optional[datetime] = None,
        candidate_filter: Optional[CandidateFilter] = None,
    ) -> VideoFeedResponse:
        """
        Get the Fy feed for a viewer.

        Args:
            viewer_id: Identified viewer, None for anonymous
            now: Request time (defaults to current UTC time)
            candidate_filter: Optional narrowing of the candidate pool

        Returns:
            VideoFeedResponse with at most ``target_size`` videos
        """
        start_time = time.time()
        now = now or datetime.now(timezone.utc)
        personalized = self._preferences.is_personalized(viewer_id)
        message = "Personalized feed" if personalized else "Global feed"

        candidates, profile = await asyncio.gather(
            _fetch_candidates(
                "video",
                self._circuit_breaker,
                lambda: self._video_repo.fetch_active_candidates(candidate_filter),
            ),
            self._preferences.load(viewer_id),
        )

        if not candidates:
            record_feed_served("video", personalized, 0)
            return VideoFeedResponse(message=message, personalized=personalized, videos=[])

        gated = self._gate.apply(candidates)
        GATED_CANDIDATES.inc(len(candidates) - len(gated))

        ranked = self._scoring.score_all(gated, ScoringContext(now=now, profile=profile))
        feed = self._assembler.assemble(ranked, profile, now)

        if self._config.feedback_top_k:
            self._feedback.schedule(
                self._video_repo,
                [item.id for item in feed[: self._config.feedback_top_k]],
                "views_count",
            )

        record_feed_served("video", personalized, len(feed))
        elapsed_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Video feed served: candidates={len(candidates)}, gated={len(gated)}, "
            f"items={len(feed)}, personalized={personalized}, elapsed_ms={elapsed_ms:.2f}",
            extra={"feed": "video", "viewer_id": viewer_id},
        )

        return VideoFeedResponse(
            message=message,
            personalized=personalized,
            videos=[to_video_item(item, profile) for item in feed],
        )


class ProductFeedService:
    """
    Smart product feed.

    Promotion is folded into the score, so assembly is a plain sort.
    """

    def __init__(
        self,
        product_repo: ProductRepository,
        preference_service: PreferenceService,
        config: Optional[ProductRankingConfig] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        feedback: Optional[EngagementFeedback] = None,
        scoring_model: Optional[ProductScoringModel] = None,
        assembler: Optional[FeedAssembler[ScoredProduct]] = None,
    ) -> None:
        self._config = config or ProductRankingConfig()
        self._product_repo = product_repo
        self._preferences = preference_service
        self._circuit_breaker = circuit_breaker or CircuitBreaker(name="product_candidates")
        self._feedback = feedback or EngagementFeedback()
        self._scoring = scoring_model or ProductScoringModel(self._config)
        self._assembler = assembler or ScoreOrderedFeedAssembler(self._config.target_size)

    async def get_smart_feed(
        self,
        viewer_id: Optional[str] = None,
        viewer_region: Optional[str] = None,
        now: Optional[datetime] = None,
        candidate_filter: Optional[CandidateFilter] = None,
    ) -> ProductFeedResponse:
        """
        Get the smart storefront for a viewer.

        Args:
            viewer_id: Identified viewer, None for anonymous
            viewer_region: City the viewer wants delivery to
            now: Request time (defaults to current UTC time)
            candidate_filter: Optional narrowing of the candidate pool

        Returns:
            ProductFeedResponse ordered by final score
        """
        start_time = time.time()
        now = now or datetime.now(timezone.utc)
        personalized = self._preferences.is_personalized(viewer_id)

        candidates, profile = await asyncio.gather(
            _fetch_candidates(
                "product",
                self._circuit_breaker,
                lambda: self._product_repo.fetch_active_candidates(candidate_filter),
            ),
            self._preferences.load(viewer_id),
        )

        if not candidates:
            record_feed_served("product", personalized, 0)
            return ProductFeedResponse(personalized=personalized, products=[])

        context = ScoringContext(now=now, profile=profile, region=viewer_region)
        ranked = self._scoring.score_all(candidates, context)
        feed = self._assembler.assemble(ranked, profile, now)

        if self._config.feedback_top_k:
            self._feedback.schedule(
                self._product_repo,
                [item.id for item in feed[: self._config.feedback_top_k]],
                "views_count",
            )

        record_feed_served("product", personalized, len(feed))
        elapsed_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Smart feed served: candidates={len(candidates)}, items={len(feed)}, "
            f"region={viewer_region}, elapsed_ms={elapsed_ms:.2f}",
            extra={"feed": "product", "viewer_id": viewer_id},
        )

        return ProductFeedResponse(
            personalized=personalized,
            products=[to_product_item(item) for item in feed],
        )

"""
Scoring models for the Fy video feed and the smart product feed.

Scoring is a pure function of a candidate's counters and timestamps, the
viewer's preference profile and the request time. The only non-determinism is
the exploration term of the product model, drawn from an injected random
source so that tests can seed it.
"""
import logging
import random
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Generic, List, Optional, Protocol, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from marketfeed.config.ranking import (
    LikeRateMode,
    ProductRankingConfig,
    VideoRankingConfig,
)
from marketfeed.models.schemas import (
    Candidate,
    PreferenceProfile,
    ProductCandidate,
    ScoredProduct,
    ScoredVideo,
    VideoCandidate,
)

logger = logging.getLogger(__name__)

C = TypeVar("C", bound=Candidate)
S = TypeVar("S")


class RandomSource(Protocol):
    """Anything with ``random() -> float`` in [0, 1), e.g. ``random.Random``."""

    def random(self) -> float:
        ...


class ScoringContext(BaseModel):
    """Per-request inputs shared by every candidate of one scoring pass."""

    model_config = ConfigDict(frozen=True)

    now: datetime
    profile: PreferenceProfile = Field(default_factory=PreferenceProfile.anonymous)
    region: Optional[str] = None


# =============================================================================
# Scoring primitives
# =============================================================================


def engagement_rate(count: int, views: int) -> float:
    """Interactions per view; zero views count as one."""
    return (count or 0) / max(views or 0, 1)


def recency_score(created_at: datetime, now: datetime, horizon: timedelta) -> float:
    """Linear decay from 1.0 at publication to 0.0 at ``horizon``."""
    age = max(timedelta(0), now - created_at)
    return max(0.0, 1.0 - age / horizon)


def is_promotion_active(candidate: Candidate, now: datetime) -> bool:
    """A promotion counts only while its end date lies in the future."""
    return (
        candidate.is_promoted
        and candidate.promotion_end_date is not None
        and candidate.promotion_end_date > now
    )


# =============================================================================
# Scoring Models (Strategy Pattern)
# =============================================================================


class ScoringModel(ABC, Generic[C, S]):
    """Abstract base class for per-feed scoring models."""

    @abstractmethod
    def score(self, candidate: C, context: ScoringContext) -> S:
        """Score one candidate."""
        pass

    def score_all(self, candidates: List[C], context: ScoringContext) -> List[S]:
        """Score candidates and sort them by descending final score (stable)."""
        scored = [self.score(candidate, context) for candidate in candidates]
        scored.sort(key=lambda item: item.final_score, reverse=True)
        return scored


class VideoScoringModel(ScoringModel[VideoCandidate, ScoredVideo]):
    """
    Fy video score: weighted conversion rate, like rate and recency.

    Promotion plays no part here; the interleaving assembler places promoted
    videos explicitly.
    """

    def __init__(self, config: Optional[VideoRankingConfig] = None) -> None:
        self._config = config or VideoRankingConfig()

    def score(self, candidate: VideoCandidate, context: ScoringContext) -> ScoredVideo:
        config = self._config
        conversion = engagement_rate(candidate.product_clicks_count, candidate.views_count)
        likes = engagement_rate(candidate.likes_count, candidate.views_count)
        recency = recency_score(candidate.created_at, context.now, config.recency_horizon)

        final_score = (
            conversion * config.weight_conversion
            + likes * config.weight_like
            + recency * config.weight_recency
        )

        # Older clients read the conversion rate from the like_rate field
        reported_like_rate = (
            conversion if config.like_rate_mode == LikeRateMode.LEGACY else likes
        )

        return ScoredVideo(
            video=candidate,
            conversion_rate=conversion,
            like_rate=reported_like_rate,
            recency_score=recency,
            final_score=final_score,
            score_breakdown={
                "conversion": conversion * config.weight_conversion,
                "like": likes * config.weight_like,
                "recency": recency * config.weight_recency,
                "final": final_score,
            },
        )


class ProductScoringModel(ScoringModel[ProductCandidate, ScoredProduct]):
    """
    Smart feed score.

    Weighted conversion, recency, personal affinity and exploration noise,
    plus a flat bonus while a promotion is active, all scaled by a locality
    factor. The bonus dwarfs the organic terms so promoted products sort first.
    """

    def __init__(
        self,
        config: Optional[ProductRankingConfig] = None,
        rng: Optional[RandomSource] = None,
    ) -> None:
        self._config = config or ProductRankingConfig()
        self._rng = rng or random.Random(self._config.exploration_seed)

    def score(self, candidate: ProductCandidate, context: ScoringContext) -> ScoredProduct:
        config = self._config
        conversion = engagement_rate(candidate.total_sold, candidate.views_count)
        recency = recency_score(candidate.created_at, context.now, config.recency_horizon)
        personal = self.personal_score(candidate, context.profile)
        exploration = self._rng.random()
        promoted = is_promotion_active(candidate, context.now)
        shipping_options = candidate.shipping_options()
        locality = self.locality_factor(shipping_options, context.region)

        combined = (
            conversion * config.weight_conversion
            + recency * config.weight_recency
            + personal * config.weight_personal
            + exploration * config.weight_exploration
        )
        bonus = config.promotion_bonus if promoted else 0.0
        final_score = (combined + bonus) * locality

        return ScoredProduct(
            product=candidate,
            conversion_rate=conversion,
            recency_score=recency,
            personal_score=personal,
            exploration=exploration,
            locality_factor=locality,
            shipping_options=shipping_options,
            promoted=promoted,
            final_score=final_score,
            score_breakdown={
                "conversion": conversion * config.weight_conversion,
                "recency": recency * config.weight_recency,
                "personal": personal * config.weight_personal,
                "exploration": exploration * config.weight_exploration,
                "promotion": bonus,
                "locality": locality,
                "final": final_score,
            },
        )

    @staticmethod
    def personal_score(candidate: ProductCandidate, profile: PreferenceProfile) -> float:
        """1.0 on a subcategory match, 0.5 on a category-only match."""
        interacted = profile.favorite_categories
        if candidate.subcategory_id is not None and candidate.subcategory_id in interacted:
            return 1.0
        if candidate.category_id is not None and candidate.category_id in interacted:
            return 0.5
        return 0.0

    def locality_factor(self, options: Optional[List[Any]], region: Optional[str]) -> float:
        """Penalize products whose parsed shipping options skip the viewer's region."""
        if not region:
            return 1.0
        if options is None:
            return 1.0
        for option in options:
            if isinstance(option, dict) and str(option.get("city_id")) == str(region):
                return 1.0
        return self._config.region_penalty

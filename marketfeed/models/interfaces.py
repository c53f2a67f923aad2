"""
Repository interfaces (abstractions).
Using Protocol for structural subtyping (duck typing with type hints).
The ranking core only ever sees already-fetched, in-memory candidates; these
are the collaborators that fetch them and record engagement.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Protocol, Tuple, runtime_checkable

from marketfeed.models.schemas import (
    CandidateFilter,
    PreferenceProfile,
    ProductCandidate,
    VideoCandidate,
)


@runtime_checkable
class EngagementRecorder(Protocol):
    """
    Interface for bumping engagement counters.
    Production: single UPDATE ... SET counter = counter + 1.
    """

    async def increment_counter(self, candidate_id: str, counter_name: str) -> Optional[int]:
        """
        Increment one counter of one candidate.

        Args:
            candidate_id: Candidate identifier
            counter_name: Counter column, e.g. ``views_count``

        Returns:
            The new counter value, or None if the candidate does not exist

        Raises:
            ValueError: If the counter is not known for this candidate type
        """
        ...


@runtime_checkable
class VideoRepository(EngagementRecorder, Protocol):
    """
    Interface for Fy video data access.
    Production: SQL store joined with stores/products/categories.
    Testing: In-memory mock implementation.
    """

    async def fetch_active_candidates(
        self, candidate_filter: Optional[CandidateFilter] = None
    ) -> List[VideoCandidate]:
        """
        Fetch all active (non-deleted) videos with counters and promotion fields.

        Raises:
            Exception: Any storage failure; callers treat it as fatal for the request
        """
        ...

    async def get_video(self, video_id: str) -> Optional[VideoCandidate]:
        """Fetch one active video, None if missing or deactivated."""
        ...

    async def has_liked(self, video_id: str, viewer_id: str) -> bool:
        """Check whether the viewer has liked the video."""
        ...

    async def toggle_like(self, video_id: str, viewer_id: str) -> Optional[Tuple[bool, int]]:
        """
        Like or unlike a video.

        Returns:
            (liked, new_likes_count), or None if the video does not exist
        """
        ...

    async def set_promotion(self, video_id: str, end_date: datetime) -> None:
        """Mark the video as promoted until ``end_date``."""
        ...


@runtime_checkable
class ProductRepository(EngagementRecorder, Protocol):
    """
    Interface for catalog product data access.
    Production: SQL store with units sold aggregated from order items.
    """

    async def fetch_active_candidates(
        self, candidate_filter: Optional[CandidateFilter] = None
    ) -> List[ProductCandidate]:
        """Fetch all active products with counters, promotion and category fields."""
        ...


@runtime_checkable
class PreferenceRepository(Protocol):
    """
    Interface for viewer interaction history.
    Production: recent purchases, likes and watch history.
    """

    async def fetch_preference_profile(self, viewer_id: str) -> PreferenceProfile:
        """
        Build the viewer's preference profile from recent interactions.

        Args:
            viewer_id: Identified viewer

        Returns:
            PreferenceProfile (empty for viewers without history)
        """
        ...


@runtime_checkable
class SellerAccountRepository(Protocol):
    """
    Interface for store ownership and seller balances.
    Production: stores and users tables, debited inside a transaction.
    """

    async def get_store_owner(self, store_id: str) -> Optional[str]:
        """Return the seller id owning a store."""
        ...

    async def get_balance(self, seller_id: str) -> float:
        """Return the seller's available balance."""
        ...

    async def debit(self, seller_id: str, amount: float) -> bool:
        """Debit ``amount`` if the balance covers it; False otherwise."""
        ...


class FeatureFlagService(ABC):
    """
    Abstract base class for feature flag evaluation.
    Supports kill switch and gradual rollout of personalization.
    """

    @abstractmethod
    def is_personalization_enabled(self, viewer_id: str) -> bool:
        """
        Check if personalization is enabled for this viewer.

        Args:
            viewer_id: Viewer identifier for percentage rollout

        Returns:
            True if the viewer's preference profile should be applied
        """
        pass

    @abstractmethod
    def is_kill_switch_active(self) -> bool:
        """
        Check if global kill switch is activated.

        Returns:
            True if all personalization should be disabled
        """
        pass

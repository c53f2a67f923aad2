"""
Viewer preference profiles.

Builders turn raw interaction history into a ``PreferenceProfile``; the
service loads one per request and never lets a lookup failure reach the feed.
"""
import logging
from typing import Any, Iterable, Mapping, Optional

from marketfeed.models.interfaces import FeatureFlagService, PreferenceRepository
from marketfeed.models.schemas import PreferenceProfile

logger = logging.getLogger(__name__)

# Only the most recent purchases shape the storefront
PURCHASE_HISTORY_LIMIT = 10


def profile_from_purchases(
    viewer_id: str,
    purchases: Iterable[Mapping[str, Any]],
    limit: int = PURCHASE_HISTORY_LIMIT,
) -> PreferenceProfile:
    """
    Collect category and subcategory ids from purchase rows.

    Args:
        viewer_id: Buyer the rows belong to
        purchases: Rows with ``category_id`` / ``subcategory_id``, newest first
        limit: Number of rows considered
    """
    categories = set()
    for index, row in enumerate(purchases):
        if index >= limit:
            break
        for key in ("category_id", "subcategory_id"):
            value = row.get(key)
            if value is not None:
                categories.add(str(value))
    return PreferenceProfile(viewer_id=viewer_id, favorite_categories=categories)


def profile_from_video_history(
    viewer_id: str,
    seen: Iterable[Any] = (),
    liked: Iterable[Any] = (),
    categories: Iterable[Any] = (),
) -> PreferenceProfile:
    """Build a Fy profile from watch history, likes and favourite categories."""
    return PreferenceProfile(
        viewer_id=viewer_id,
        videos_seen={str(video_id) for video_id in seen},
        liked_video_ids={str(video_id) for video_id in liked},
        favorite_categories={str(category) for category in categories},
    )


def merge_profiles(*profiles: PreferenceProfile) -> PreferenceProfile:
    """Union of several partial profiles of the same viewer."""
    merged = PreferenceProfile()
    for profile in profiles:
        merged = PreferenceProfile(
            viewer_id=merged.viewer_id or profile.viewer_id,
            favorite_categories=merged.favorite_categories | profile.favorite_categories,
            videos_seen=merged.videos_seen | profile.videos_seen,
            liked_video_ids=merged.liked_video_ids | profile.liked_video_ids,
        )
    return merged


class PreferenceService:
    """
    Best-effort profile loader.
    Anonymous viewers, disabled personalization and lookup failures all
    yield the anonymous profile.
    """

    def __init__(
        self,
        preference_repo: PreferenceRepository,
        feature_flag_service: FeatureFlagService,
    ) -> None:
        self._preference_repo = preference_repo
        self._feature_flags = feature_flag_service

    def is_personalized(self, viewer_id: Optional[str]) -> bool:
        return bool(viewer_id) and self._feature_flags.is_personalization_enabled(viewer_id)

    async def load(self, viewer_id: Optional[str]) -> PreferenceProfile:
        if not self.is_personalized(viewer_id):
            return PreferenceProfile.anonymous()

        try:
            profile = await self._preference_repo.fetch_preference_profile(viewer_id)
        except Exception as e:
            logger.warning(
                f"Preference lookup failed, serving anonymous profile: {e}",
                extra={"viewer_id": viewer_id},
            )
            return PreferenceProfile.anonymous()

        if profile is None:
            return PreferenceProfile(viewer_id=viewer_id)
        return profile

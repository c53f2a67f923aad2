"""
Feed assembly strategies.

The two feeds inject promoted content differently and both behaviours are
kept:

* ``InterleavedFeedAssembler`` (Fy videos) places promoted videos at a fixed
  cadence between organic videos and defers liked videos to the end.
* ``ScoreOrderedFeedAssembler`` (smart product feed) relies on the promotion
  bonus already folded into the score and only sorts and truncates.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Generic, List, Optional, Set, TypeVar

from pydantic import BaseModel, Field

from marketfeed.models.schemas import PreferenceProfile, ScoredVideo
from marketfeed.services.scoring import is_promotion_active

logger = logging.getLogger(__name__)

S = TypeVar("S")


def dedupe_by_id(items: List[S]) -> List[S]:
    """Keep the first occurrence of every candidate id."""
    seen: Set[str] = set()
    unique = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)
    return unique


class FeedAssembler(ABC, Generic[S]):
    """Turns a ranked candidate list into a bounded, duplicate-free feed."""

    def __init__(self, target_size: int) -> None:
        self._target_size = max(0, target_size)

    @property
    def target_size(self) -> int:
        return self._target_size

    @abstractmethod
    def assemble(
        self,
        ranked: List[S],
        profile: PreferenceProfile,
        now: datetime,
    ) -> List[S]:
        """
        Build the final feed.

        Args:
            ranked: Scored candidates, highest score first
            profile: Viewer preferences (empty for anonymous viewers)
            now: Request time, used for promotion windows

        Returns:
            At most ``target_size`` candidates without duplicate ids
        """
        pass


class ScoreOrderedFeedAssembler(FeedAssembler[S]):
    """Stable descending sort by final score, then truncate."""

    def assemble(
        self,
        ranked: List[S],
        profile: PreferenceProfile,
        now: datetime,
    ) -> List[S]:
        ordered = sorted(dedupe_by_id(ranked), key=lambda item: item.final_score, reverse=True)
        return ordered[: self._target_size]


class VideoBuckets(BaseModel):
    """Ranked videos split by how the viewer relates to them."""

    promoted: List[ScoredVideo] = Field(default_factory=list)
    liked: List[ScoredVideo] = Field(default_factory=list)
    priority: List[ScoredVideo] = Field(default_factory=list)
    exploration: List[ScoredVideo] = Field(default_factory=list)
    seen_dropped: int = 0

    @property
    def organic(self) -> List[ScoredVideo]:
        return self.priority + self.exploration


class InterleavedFeedAssembler(FeedAssembler[ScoredVideo]):
    """
    Priority-bucket interleave for the Fy feed.

    Order of evaluation per video: active promotion, already liked (kept as
    reserve), already seen (dropped), favourite category (priority queue),
    everything else (exploration queue).
    """

    def __init__(self, target_size: int = 50, promotion_interval: int = 6) -> None:
        super().__init__(target_size)
        if promotion_interval < 1:
            raise ValueError("promotion_interval must be at least 1")
        self._promotion_interval = promotion_interval

    def partition(
        self,
        ranked: List[ScoredVideo],
        profile: PreferenceProfile,
        now: datetime,
    ) -> VideoBuckets:
        buckets = VideoBuckets()
        favorites = profile.favorite_categories

        for item in dedupe_by_id(ranked):
            if is_promotion_active(item.video, now):
                buckets.promoted.append(item)
            elif item.id in profile.liked_video_ids:
                buckets.liked.append(item)
            elif item.id in profile.videos_seen:
                buckets.seen_dropped += 1
            elif favorites and item.video.product_category in favorites:
                buckets.priority.append(item)
            else:
                buckets.exploration.append(item)

        return buckets

    def assemble(
        self,
        ranked: List[ScoredVideo],
        profile: PreferenceProfile,
        now: datetime,
    ) -> List[ScoredVideo]:
        buckets = self.partition(ranked, profile, now)
        feed = self._interleave(buckets.organic, buckets.promoted)

        # Liked videos only fill whatever room is left
        included = {item.id for item in feed}
        for item in buckets.liked:
            if len(feed) >= self._target_size:
                break
            if item.id not in included:
                feed.append(item)
                included.add(item.id)

        logger.debug(
            f"Assembled {len(feed)} videos: promoted={len(buckets.promoted)}, "
            f"priority={len(buckets.priority)}, exploration={len(buckets.exploration)}, "
            f"liked={len(buckets.liked)}, seen_dropped={buckets.seen_dropped}"
        )
        return feed[: self._target_size]

    def _interleave(
        self,
        organic: List[ScoredVideo],
        promoted: List[ScoredVideo],
    ) -> List[ScoredVideo]:
        feed: List[ScoredVideo] = []
        included: Set[str] = set()
        organic_index = 0
        promoted_cursor = 0

        def next_promoted() -> Optional[ScoredVideo]:
            # One full lap over the promoted bucket at most
            nonlocal promoted_cursor
            for _ in range(len(promoted)):
                item = promoted[promoted_cursor % len(promoted)]
                promoted_cursor += 1
                if item.id not in included:
                    return item
            return None

        while len(feed) < self._target_size:
            item = None
            if promoted and len(feed) % self._promotion_interval == 0:
                item = next_promoted()
            if item is None and organic_index < len(organic):
                item = organic[organic_index]
                organic_index += 1
            if item is None:
                item = next_promoted()
            if item is None:
                break

            feed.append(item)
            included.add(item.id)

        return feed

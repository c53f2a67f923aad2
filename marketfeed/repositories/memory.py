"""
In-memory repository implementations.
Used for prototyping and testing.
Production would replace these with SQL-backed implementations.
"""
import json
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from marketfeed.models.schemas import (
    CandidateFilter,
    PreferenceProfile,
    ProductCandidate,
    VideoCandidate,
)
from marketfeed.services.preferences import (
    merge_profiles,
    profile_from_purchases,
    profile_from_video_history,
)

VIDEO_COUNTERS = (
    "views_count",
    "likes_count",
    "product_clicks_count",
    "comments_count",
    "ad_attributed_sales_count",
)
PRODUCT_COUNTERS = ("views_count", "total_sold")


def _increment(candidate, counter_name: str, allowed: Tuple[str, ...]) -> int:
    if counter_name not in allowed:
        raise ValueError(f"Unknown counter: {counter_name}")
    value = getattr(candidate, counter_name) + 1
    setattr(candidate, counter_name, value)
    return value


class InMemoryVideoRepository:
    """
    In-memory implementation of VideoRepository.
    Simulates the fy_videos / fy_likes tables.
    """

    def __init__(
        self,
        videos: Optional[Iterable[VideoCandidate]] = None,
        likes: Optional[Mapping[str, Iterable[str]]] = None,
        seed: bool = True,
    ) -> None:
        self._videos: Dict[str, VideoCandidate] = {}
        self._likes: Dict[str, Set[str]] = {}  # viewer_id -> video ids
        if videos is None and seed:
            self._initialize_mock_data()
        for video in videos or []:
            self._videos[video.id] = video
        for viewer_id, video_ids in (likes or {}).items():
            self._likes[viewer_id] = set(video_ids)

    def _initialize_mock_data(self) -> None:
        """Load mock videos covering trial, gated, promoted and liked cases."""
        now = datetime.now(timezone.utc)
        day = timedelta(days=1)

        mock_videos = [
            VideoCandidate(
                id="v1", video_url="https://media.example.com/v1.mp4",
                store_id="store_1", store_name="Tech Corner",
                product_id="p1", product_name="Phone X", product_category="electronics",
                views_count=50, likes_count=5, product_clicks_count=2,
                created_at=now - day,
            ),
            VideoCandidate(
                id="v2", video_url="https://media.example.com/v2.mp4",
                store_id="store_2", store_name="Style Hub",
                product_id="p5", product_name="Runner Shoes", product_category="fashion",
                views_count=200, likes_count=20, product_clicks_count=5,
                created_at=now - 2 * day,
            ),
            VideoCandidate(
                id="v3", video_url="https://media.example.com/v3.mp4",
                store_id="store_2", store_name="Style Hub",
                product_id="p6", product_name="Lamp", product_category="home",
                views_count=200, likes_count=2, product_clicks_count=1,
                created_at=now - 2 * day,
            ),
            VideoCandidate(
                id="v4", video_url="https://media.example.com/v4.mp4",
                store_id="store_1", store_name="Tech Corner",
                product_id="p2", product_name="Headphones", product_category="electronics",
                views_count=10, likes_count=1, product_clicks_count=1,
                is_promoted=True, promotion_end_date=now + 3 * day,
                created_at=now - 4 * day,
            ),
            VideoCandidate(
                id="v5", video_url="https://media.example.com/v5.mp4",
                store_id="store_1", store_name="Tech Corner",
                product_id="p1", product_name="Phone X", product_category="electronics",
                views_count=30, likes_count=3, product_clicks_count=0,
                is_promoted=True, promotion_end_date=now - day,
                created_at=now - 10 * day,
            ),
            VideoCandidate(
                id="v6", video_url="https://media.example.com/v6.mp4",
                store_id="store_2", store_name="Style Hub",
                product_id="p5", product_name="Runner Shoes", product_category="sports",
                created_at=now - timedelta(hours=2),
            ),
            VideoCandidate(
                id="v7", video_url="https://media.example.com/v7.mp4",
                store_id="store_2", store_name="Style Hub",
                product_category="fashion", views_count=500, likes_count=100,
                product_clicks_count=50, is_active=False,
                created_at=now - day,
            ),
            VideoCandidate(
                id="v8", video_url="https://media.example.com/v8.mp4",
                store_id="store_2", store_name="Style Hub",
                product_id="p6", product_name="Lamp", product_category="beauty",
                views_count=120, likes_count=12, product_clicks_count=3,
                created_at=now - 3 * day,
            ),
        ]
        for video in mock_videos:
            self._videos[video.id] = video
        self._likes["buyer_1"] = {"v8"}

    async def fetch_active_candidates(
        self, candidate_filter: Optional[CandidateFilter] = None
    ) -> List[VideoCandidate]:
        """Snapshot of all active videos."""
        candidate_filter = candidate_filter or CandidateFilter()
        return [
            video.model_copy()
            for video in self._videos.values()
            if video.is_active
            and (candidate_filter.store_id is None or video.store_id == candidate_filter.store_id)
            and (candidate_filter.category is None or video.product_category == candidate_filter.category)
        ]

    async def get_video(self, video_id: str) -> Optional[VideoCandidate]:
        video = self._videos.get(video_id)
        if video is None or not video.is_active:
            return None
        return video.model_copy()

    async def increment_counter(self, candidate_id: str, counter_name: str) -> Optional[int]:
        video = self._videos.get(candidate_id)
        if video is None:
            return None
        return _increment(video, counter_name, VIDEO_COUNTERS)

    async def has_liked(self, video_id: str, viewer_id: str) -> bool:
        return video_id in self._likes.get(viewer_id, set())

    async def toggle_like(self, video_id: str, viewer_id: str) -> Optional[Tuple[bool, int]]:
        video = self._videos.get(video_id)
        if video is None:
            return None

        liked = self._likes.setdefault(viewer_id, set())
        if video_id in liked:
            liked.discard(video_id)
            video.likes_count = max(0, video.likes_count - 1)
            return False, video.likes_count

        liked.add(video_id)
        video.likes_count += 1
        return True, video.likes_count

    async def set_promotion(self, video_id: str, end_date: datetime) -> None:
        video = self._videos[video_id]
        video.is_promoted = True
        video.promotion_end_date = end_date

    def liked_by(self, viewer_id: str) -> Set[str]:
        return set(self._likes.get(viewer_id, set()))


class InMemoryProductRepository:
    """
    In-memory implementation of ProductRepository.
    Simulates products joined with stores and aggregated order items.
    """

    def __init__(
        self,
        products: Optional[Iterable[ProductCandidate]] = None,
        seed: bool = True,
    ) -> None:
        self._products: Dict[str, ProductCandidate] = {}
        if products is None and seed:
            self._initialize_mock_data()
        for product in products or []:
            self._products[product.id] = product

    def _initialize_mock_data(self) -> None:
        """Load mock catalog products."""
        now = datetime.now(timezone.utc)
        day = timedelta(days=1)

        mock_products = [
            ProductCandidate(
                id="p1", name="Phone X", price=1999.90,
                store_id="store_1", store_name="Tech Corner", seller_city="sp",
                category_id="c1", subcategory_id="c1-phones",
                views_count=100, total_sold=10,
                shipping_options_json=json.dumps([{"city_id": "sp", "price": 0}]),
                created_at=now - 5 * day,
            ),
            ProductCandidate(
                id="p2", name="Headphones", price=299.00,
                store_id="store_1", store_name="Tech Corner", seller_city="sp",
                category_id="c1", subcategory_id="c1-audio",
                views_count=40, total_sold=1,
                is_promoted=True, promotion_end_date=now + 2 * day,
                created_at=now - 20 * day,
            ),
            ProductCandidate(
                id="p3", name="Desk Mat", price=59.90,
                store_id="store_2", store_name="Style Hub", seller_city="rj",
                category_id="c3", subcategory_id="c3-office",
                shipping_options_json="{not json",
                created_at=now - 2 * day,
            ),
            ProductCandidate(
                id="p4", name="Discontinued Watch", price=150.00,
                store_id="store_2", store_name="Style Hub", seller_city="rj",
                category_id="c1", subcategory_id="c1-watches",
                views_count=300, total_sold=90, is_active=False,
                created_at=now - 3 * day,
            ),
            ProductCandidate(
                id="p5", name="Runner Shoes", price=349.00,
                store_id="store_2", store_name="Style Hub", seller_city="rj",
                category_id="c2", subcategory_id="c2-shoes",
                views_count=10, total_sold=0,
                shipping_options_json=json.dumps([{"city_id": "rj", "price": 15}]),
                variants_json=json.dumps([{"size": 40}, {"size": 42}]),
                created_at=now - day,
            ),
            ProductCandidate(
                id="p6", name="Lamp", price=89.90,
                store_id="store_2", store_name="Style Hub", seller_city="rj",
                category_id="c3", subcategory_id="c3-lighting",
                views_count=8, total_sold=2,
                created_at=now - 40 * day,
            ),
        ]
        for product in mock_products:
            self._products[product.id] = product

    async def fetch_active_candidates(
        self, candidate_filter: Optional[CandidateFilter] = None
    ) -> List[ProductCandidate]:
        candidate_filter = candidate_filter or CandidateFilter()
        return [
            product.model_copy()
            for product in self._products.values()
            if product.is_active
            and (candidate_filter.store_id is None or product.store_id == candidate_filter.store_id)
            and (candidate_filter.category is None or product.category_id == candidate_filter.category)
        ]

    async def increment_counter(self, candidate_id: str, counter_name: str) -> Optional[int]:
        product = self._products.get(candidate_id)
        if product is None:
            return None
        return _increment(product, counter_name, PRODUCT_COUNTERS)

    def get(self, product_id: str) -> Optional[ProductCandidate]:
        return self._products.get(product_id)


class InMemoryPreferenceRepository:
    """
    In-memory implementation of PreferenceRepository.
    Combines watch history, likes, favourite categories and purchases.
    """

    def __init__(
        self,
        video_repo: Optional[InMemoryVideoRepository] = None,
        seed: bool = True,
    ) -> None:
        self._video_repo = video_repo
        self._videos_seen: Dict[str, List[str]] = {}
        self._favorite_categories: Dict[str, List[str]] = {}
        self._purchases: Dict[str, List[Dict[str, str]]] = {}
        if seed:
            self._initialize_mock_data()

    def _initialize_mock_data(self) -> None:
        """Load mock viewer history."""
        self._videos_seen["buyer_1"] = ["v6"]
        self._favorite_categories["buyer_1"] = ["electronics", "fashion"]
        self._purchases["buyer_1"] = [
            {"category_id": "c2", "subcategory_id": "c2-shoes"},
        ]

    def add_history(
        self,
        viewer_id: str,
        seen: Iterable[str] = (),
        categories: Iterable[str] = (),
        purchases: Iterable[Dict[str, str]] = (),
    ) -> None:
        self._videos_seen.setdefault(viewer_id, []).extend(seen)
        self._favorite_categories.setdefault(viewer_id, []).extend(categories)
        self._purchases.setdefault(viewer_id, []).extend(purchases)

    async def fetch_preference_profile(self, viewer_id: str) -> PreferenceProfile:
        liked = self._video_repo.liked_by(viewer_id) if self._video_repo else set()
        return merge_profiles(
            profile_from_video_history(
                viewer_id,
                seen=self._videos_seen.get(viewer_id, []),
                liked=liked,
                categories=self._favorite_categories.get(viewer_id, []),
            ),
            profile_from_purchases(viewer_id, self._purchases.get(viewer_id, [])),
        )


class InMemorySellerAccountRepository:
    """
    In-memory implementation of SellerAccountRepository.
    Simulates stores and seller balances.
    """

    def __init__(
        self,
        store_owners: Optional[Mapping[str, str]] = None,
        balances: Optional[Mapping[str, float]] = None,
    ) -> None:
        self._store_owners: Dict[str, str] = dict(
            store_owners if store_owners is not None else {"store_1": "seller_1", "store_2": "seller_2"}
        )
        self._balances: Dict[str, float] = dict(
            balances if balances is not None else {"seller_1": 50.0, "seller_2": 2.0}
        )

    async def get_store_owner(self, store_id: str) -> Optional[str]:
        return self._store_owners.get(store_id)

    async def get_balance(self, seller_id: str) -> float:
        return self._balances.get(seller_id, 0.0)

    async def debit(self, seller_id: str, amount: float) -> bool:
        balance = self._balances.get(seller_id, 0.0)
        if balance < amount:
            return False
        self._balances[seller_id] = balance - amount
        return True

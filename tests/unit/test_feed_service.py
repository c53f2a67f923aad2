"""
Unit tests for the feed orchestration services.
"""
import json
import logging
import random
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from marketfeed.config import ProductRankingConfig, VideoRankingConfig
from marketfeed.core.circuit_breaker import CircuitBreaker
from marketfeed.core.exceptions import CandidateSourceError, CircuitBreakerOpenError
from marketfeed.models.schemas import CandidateFilter
from marketfeed.repositories.memory import (
    InMemoryPreferenceRepository,
    InMemoryProductRepository,
    InMemoryVideoRepository,
)
from marketfeed.services.engagement import EngagementFeedback
from marketfeed.services.feature_flags import ConfigBasedFeatureFlagService
from marketfeed.services.feed import ProductFeedService, VideoFeedService
from marketfeed.services.preferences import PreferenceService
from marketfeed.services.scoring import ProductScoringModel


def _preferences(video_repo=None) -> PreferenceService:
    return PreferenceService(
        InMemoryPreferenceRepository(video_repo=video_repo),
        ConfigBasedFeatureFlagService(),
    )


def _failing_repo(error: Exception) -> MagicMock:
    repo = MagicMock()
    repo.fetch_active_candidates = AsyncMock(side_effect=error)
    return repo


class TestVideoFeedService:
    @pytest.mark.asyncio
    async def test_empty_pool_is_success(self):
        repo = InMemoryVideoRepository(seed=False)
        service = VideoFeedService(repo, _preferences(repo))

        response = await service.get_feed()

        assert response.success is True
        assert response.videos == []

    @pytest.mark.asyncio
    async def test_gate_excludes_underperformers(self, now, video_factory):
        repo = InMemoryVideoRepository(
            videos=[
                video_factory("a", views_count=200, product_clicks_count=5, likes_count=20),
                video_factory("b", views_count=200, product_clicks_count=1, likes_count=20),
            ]
        )
        service = VideoFeedService(repo, _preferences(repo))

        response = await service.get_feed(now=now)

        assert [item.id for item in response.videos] == ["a"]

    @pytest.mark.asyncio
    async def test_anonymous_seeded_feed(self, mock_video_repo):
        service = VideoFeedService(mock_video_repo, _preferences(mock_video_repo))

        response = await service.get_feed()

        ids = [item.id for item in response.videos]
        assert response.personalized is False
        assert response.message == "Global feed"
        assert ids[0] == "v4"
        assert set(ids) == {"v1", "v2", "v4", "v5", "v6", "v8"}
        assert not any(item.has_liked for item in response.videos)

    @pytest.mark.asyncio
    async def test_personalized_seeded_feed(self, mock_video_repo):
        service = VideoFeedService(mock_video_repo, _preferences(mock_video_repo))

        response = await service.get_feed(viewer_id="buyer_1")

        ids = [item.id for item in response.videos]
        assert response.personalized is True
        assert response.message == "Personalized feed"
        assert ids[0] == "v4"
        assert set(ids[1:4]) == {"v1", "v2", "v5"}
        assert ids[-1] == "v8"
        assert "v6" not in ids
        assert response.videos[-1].has_liked is True

    @pytest.mark.asyncio
    async def test_candidate_filter(self, mock_video_repo):
        service = VideoFeedService(mock_video_repo, _preferences(mock_video_repo))

        response = await service.get_feed(candidate_filter=CandidateFilter(category="fashion"))

        assert [item.id for item in response.videos] == ["v2"]

    @pytest.mark.asyncio
    async def test_no_duplicates_and_bounded(self, now, video_factory):
        videos = [video_factory(f"o{i}") for i in range(70)]
        videos += [
            video_factory(f"ad{i}", is_promoted=True, promotion_end_date=now + timedelta(days=1))
            for i in range(5)
        ]
        repo = InMemoryVideoRepository(videos=videos)
        service = VideoFeedService(repo, _preferences(repo))

        response = await service.get_feed(now=now)

        ids = [item.id for item in response.videos]
        assert len(ids) == 50
        assert len(set(ids)) == 50
        assert [i for i, vid in enumerate(ids) if vid.startswith("ad")][:3] == [0, 6, 12]

    @pytest.mark.asyncio
    async def test_source_failure_raises_generic_error(self):
        service = VideoFeedService(_failing_repo(ConnectionError("db down")), _preferences())

        with pytest.raises(CandidateSourceError) as exc_info:
            await service.get_feed()

        assert "db down" not in exc_info.value.message

    @pytest.mark.asyncio
    async def test_open_circuit_propagates(self):
        breaker = CircuitBreaker("video_candidates", failure_threshold=1, recovery_timeout_sec=60)
        service = VideoFeedService(
            _failing_repo(ConnectionError("db down")), _preferences(), circuit_breaker=breaker
        )

        with pytest.raises(CandidateSourceError):
            await service.get_feed()
        with pytest.raises(CircuitBreakerOpenError):
            await service.get_feed()

    @pytest.mark.asyncio
    async def test_preference_failure_still_serves_feed(self, mock_video_repo):
        preference_repo = MagicMock()
        preference_repo.fetch_preference_profile = AsyncMock(side_effect=TimeoutError())
        preferences = PreferenceService(preference_repo, ConfigBasedFeatureFlagService())
        service = VideoFeedService(mock_video_repo, preferences)

        response = await service.get_feed(viewer_id="buyer_1")

        assert len(response.videos) == 6
        assert "v6" in [item.id for item in response.videos]

    @pytest.mark.asyncio
    async def test_feedback_when_enabled(self, mock_video_repo):
        feedback = EngagementFeedback()
        service = VideoFeedService(
            mock_video_repo,
            _preferences(mock_video_repo),
            config=VideoRankingConfig(feedback_top_k=1),
            feedback=feedback,
        )

        await service.get_feed()
        await feedback.wait_idle()

        assert (await mock_video_repo.get_video("v4")).views_count == 11


class TestProductFeedService:
    @pytest.mark.asyncio
    async def test_empty_pool_is_success(self):
        service = ProductFeedService(InMemoryProductRepository(seed=False), _preferences())

        response = await service.get_smart_feed()

        assert response.success is True
        assert response.products == []

    @pytest.mark.asyncio
    async def test_seeded_feed(self, mock_product_repo):
        service = ProductFeedService(
            mock_product_repo,
            _preferences(),
            config=ProductRankingConfig(feedback_top_k=0),
            scoring_model=ProductScoringModel(rng=random.Random(3)),
        )

        response = await service.get_smart_feed(viewer_region="rj")

        ids = [item.id for item in response.products]
        assert ids[0] == "p2"
        assert response.products[0].is_promoted is True
        assert "p4" not in ids
        assert len(ids) == 5
        desk_mat = next(item for item in response.products if item.id == "p3")
        assert desk_mat.shipping_options == []

    @pytest.mark.asyncio
    async def test_seeded_rng_is_deterministic(self, mock_product_repo):
        def build():
            return ProductFeedService(
                mock_product_repo,
                _preferences(),
                config=ProductRankingConfig(feedback_top_k=0),
                scoring_model=ProductScoringModel(rng=random.Random(99)),
            )

        first = await build().get_smart_feed()
        second = await build().get_smart_feed()

        assert [p.id for p in first.products] == [p.id for p in second.products]

    @pytest.mark.asyncio
    async def test_target_size(self, product_factory):
        repo = InMemoryProductRepository(products=[product_factory(f"p{i}") for i in range(130)])
        service = ProductFeedService(
            repo, _preferences(), config=ProductRankingConfig(feedback_top_k=0)
        )

        response = await service.get_smart_feed()

        assert len(response.products) == 100

    @pytest.mark.asyncio
    async def test_feedback_bumps_top_views(self, product_factory, now):
        products = [product_factory(f"p{i}") for i in range(25)]
        repo = InMemoryProductRepository(products=products)
        feedback = EngagementFeedback()
        service = ProductFeedService(repo, _preferences(), feedback=feedback)

        response = await service.get_smart_feed(now=now)
        await feedback.wait_idle()

        top = [item.id for item in response.products[:20]]
        rest = [item.id for item in response.products[20:]]
        assert all(repo.get(pid).views_count == 1 for pid in top)
        assert all(repo.get(pid).views_count == 0 for pid in rest)

    @pytest.mark.asyncio
    async def test_feedback_failure_does_not_fail_response(self, product_factory):
        repo = InMemoryProductRepository(products=[product_factory("p1")])
        repo.increment_counter = AsyncMock(side_effect=RuntimeError("write failed"))
        feedback = EngagementFeedback()
        service = ProductFeedService(repo, _preferences(), feedback=feedback)

        response = await service.get_smart_feed()
        await feedback.wait_idle()

        assert [item.id for item in response.products] == ["p1"]

    @pytest.mark.asyncio
    async def test_personal_affinity(self, product_factory, now):
        repo = InMemoryProductRepository(
            products=[
                product_factory("shoes", category_id="c2", subcategory_id="c2-shoes"),
                product_factory("other", category_id="c9", subcategory_id="c9-misc"),
            ]
        )
        service = ProductFeedService(
            repo,
            _preferences(),
            config=ProductRankingConfig(weight_exploration=0.0, feedback_top_k=0),
        )

        response = await service.get_smart_feed(viewer_id="buyer_1", now=now)

        assert response.products[0].id == "shoes"

    @pytest.mark.asyncio
    async def test_source_failure(self):
        service = ProductFeedService(_failing_repo(ValueError("bad row")), _preferences())

        with pytest.raises(CandidateSourceError):
            await service.get_smart_feed()

    @pytest.mark.asyncio
    async def test_variants_in_response(self, product_factory):
        repo = InMemoryProductRepository(
            products=[product_factory("p", variants_json=json.dumps([{"size": 40}]))]
        )
        service = ProductFeedService(
            repo, _preferences(), config=ProductRankingConfig(feedback_top_k=0)
        )

        response = await service.get_smart_feed()

        assert response.products[0].variants == [{"size": 40}]

    @pytest.mark.asyncio
    async def test_deeply_nested_shipping_payload_is_tolerated(self, product_factory, caplog):
        repo = InMemoryProductRepository(
            products=[
                product_factory("nested", shipping_options_json="[" * 100000),
                product_factory("local", shipping_options_json=json.dumps([{"city_id": "sp"}])),
            ]
        )
        service = ProductFeedService(
            repo, _preferences(), config=ProductRankingConfig(feedback_top_k=0)
        )

        with caplog.at_level(logging.WARNING, logger="marketfeed.models.schemas"):
            response = await service.get_smart_feed(viewer_region="sp")

        products = {item.id: item for item in response.products}
        assert set(products) == {"nested", "local"}
        assert products["nested"].shipping_options == []
        warnings = [r for r in caplog.records if "Malformed shipping_options" in r.getMessage()]
        assert len(warnings) == 1

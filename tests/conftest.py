"""
Pytest configuration and fixtures.
"""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from marketfeed.api.dependencies import (
    clear_caches,
    get_preference_repository,
    get_product_repository,
    get_seller_account_repository,
    get_video_repository,
)
from marketfeed.config import get_settings
from marketfeed.main import app
from marketfeed.models.schemas import (
    PreferenceProfile,
    ProductCandidate,
    ScoredVideo,
    VideoCandidate,
)
from marketfeed.repositories.memory import (
    InMemoryPreferenceRepository,
    InMemoryProductRepository,
    InMemorySellerAccountRepository,
    InMemoryVideoRepository,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
TEST_JWT_SECRET = "test-secret"


class FixedRandom:
    """Deterministic stand-in for random.Random."""

    def __init__(self, value: float = 0.5) -> None:
        self.value = value

    def random(self) -> float:
        return self.value


def make_video(video_id: str, **overrides) -> VideoCandidate:
    fields = {
        "id": video_id,
        "video_url": f"https://media.example.com/{video_id}.mp4",
        "store_id": "store_1",
        "store_name": "Tech Corner",
        "product_category": "general",
        "created_at": NOW - timedelta(days=1),
    }
    fields.update(overrides)
    return VideoCandidate(**fields)


def make_product(product_id: str, **overrides) -> ProductCandidate:
    fields = {
        "id": product_id,
        "name": f"Product {product_id}",
        "price": 10.0,
        "store_id": "store_1",
        "created_at": NOW - timedelta(days=1),
    }
    fields.update(overrides)
    return ProductCandidate(**fields)


def make_scored(
    video_id: str,
    score: float,
    category: str = "general",
    promoted: bool = False,
) -> ScoredVideo:
    video = make_video(
        video_id,
        product_category=category,
        is_promoted=promoted,
        promotion_end_date=NOW + timedelta(days=1) if promoted else None,
    )
    return ScoredVideo(
        video=video,
        conversion_rate=0.0,
        like_rate=0.0,
        recency_score=0.0,
        final_score=score,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def anonymous_profile():
    return PreferenceProfile.anonymous()


@pytest.fixture
def mock_video_repo():
    """Fixture for the seeded VideoRepository."""
    return InMemoryVideoRepository()


@pytest.fixture
def mock_product_repo():
    """Fixture for the seeded ProductRepository."""
    return InMemoryProductRepository()


@pytest.fixture
def mock_preference_repo(mock_video_repo):
    """Fixture for the seeded PreferenceRepository (likes come from the video repo)."""
    return InMemoryPreferenceRepository(video_repo=mock_video_repo)


@pytest.fixture
def mock_seller_repo():
    return InMemorySellerAccountRepository()


@pytest.fixture
def jwt_secret():
    """Enable bearer authentication for the duration of a test."""
    settings = get_settings()
    original = settings.JWT_SECRET
    settings.JWT_SECRET = TEST_JWT_SECRET
    yield TEST_JWT_SECRET
    settings.JWT_SECRET = original


@pytest.fixture
def auth_header(jwt_secret):
    """Build an Authorization header for a viewer id."""
    from marketfeed.api.auth import issue_token

    def _header(viewer_id: str) -> dict:
        return {"Authorization": f"Bearer {issue_token(viewer_id)}"}

    return _header


@pytest.fixture
def test_client(
    mock_video_repo,
    mock_product_repo,
    mock_preference_repo,
    mock_seller_repo,
):
    """
    TestClient fixture with dependency overrides.
    Uses in-memory repositories for isolation.
    """
    clear_caches()
    app.dependency_overrides[get_video_repository] = lambda: mock_video_repo
    app.dependency_overrides[get_product_repository] = lambda: mock_product_repo
    app.dependency_overrides[get_preference_repository] = lambda: mock_preference_repo
    app.dependency_overrides[get_seller_account_repository] = lambda: mock_seller_repo

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
    clear_caches()


@pytest.fixture
def video_factory():
    return make_video


@pytest.fixture
def product_factory():
    return make_product


@pytest.fixture
def scored_video_factory():
    return make_scored


@pytest.fixture
def fixed_random():
    return FixedRandom

"""Repository implementations package."""
from .memory import (
    InMemoryPreferenceRepository,
    InMemoryProductRepository,
    InMemorySellerAccountRepository,
    InMemoryVideoRepository,
)

__all__ = [
    "InMemoryPreferenceRepository",
    "InMemoryProductRepository",
    "InMemorySellerAccountRepository",
    "InMemoryVideoRepository",
]

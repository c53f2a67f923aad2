"""Catalog analytics for the seller dashboard."""
from typing import List, Optional

from marketfeed.models.interfaces import ProductRepository
from marketfeed.models.schemas import ProductAnalyticsResponse, ProductCandidate, ProductMetric

TOP_N = 5
# Products with this many views or fewer would distort the conversion ranking
MIN_VIEWS_FOR_CONVERSION = 5


def _metric(product: ProductCandidate, conversion: Optional[float] = None) -> ProductMetric:
    return ProductMetric(
        id=product.id,
        name=product.name,
        price=product.price,
        views_count=product.views_count,
        total_sold=product.total_sold,
        conversion=conversion,
    )


class ProductAnalyticsService:
    def __init__(self, product_repo: ProductRepository, top_n: int = TOP_N) -> None:
        self._product_repo = product_repo
        self._top_n = top_n

    async def summary(self) -> ProductAnalyticsResponse:
        products: List[ProductCandidate] = await self._product_repo.fetch_active_candidates()

        top_sold = sorted(products, key=lambda p: p.total_sold, reverse=True)[: self._top_n]
        top_viewed = sorted(products, key=lambda p: p.views_count, reverse=True)[: self._top_n]

        conversions = [
            (product, round(product.total_sold / product.views_count * 100, 1))
            for product in products
            if product.views_count > MIN_VIEWS_FOR_CONVERSION
        ]
        conversions.sort(key=lambda pair: pair[1], reverse=True)

        return ProductAnalyticsResponse(
            top_sold=[_metric(p) for p in top_sold],
            top_viewed=[_metric(p) for p in top_viewed],
            top_conversion=[_metric(p, c) for p, c in conversions[: self._top_n]],
        )

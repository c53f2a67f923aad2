"""
Analytics router for the seller dashboard.
"""
from fastapi import APIRouter, Depends

from marketfeed.api.dependencies import get_analytics_service
from marketfeed.models.schemas import ProductAnalyticsResponse
from marketfeed.services.analytics import ProductAnalyticsService

router = APIRouter(prefix="/v1/analytics", tags=["analytics"])


@router.get(
    "/products",
    response_model=ProductAnalyticsResponse,
    summary="Product Rankings",
    description="Top products by units sold, by views and by conversion.",
)
async def product_analytics(
    service: ProductAnalyticsService = Depends(get_analytics_service),
) -> ProductAnalyticsResponse:
    return await service.summary()

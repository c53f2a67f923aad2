"""
Fy video router.
Single video lookup, engagement counters, likes and paid promotion.
"""
from typing import Optional

from fastapi import APIRouter, Depends

from marketfeed.api.auth import get_optional_viewer_id, get_required_viewer_id
from marketfeed.api.dependencies import get_engagement_service
from marketfeed.models.schemas import (
    CounterResponse,
    LikeToggleResponse,
    PromotionRequest,
    PromotionResponse,
    VideoDetailResponse,
)
from marketfeed.services.engagement import EngagementService

router = APIRouter(prefix="/v1/fy", tags=["videos"])


@router.get("/{video_id}", response_model=VideoDetailResponse, summary="Get Video")
async def get_video(
    video_id: str,
    viewer_id: Optional[str] = Depends(get_optional_viewer_id),
    service: EngagementService = Depends(get_engagement_service),
) -> VideoDetailResponse:
    video, has_liked = await service.get_video(video_id, viewer_id)
    return VideoDetailResponse(video=video, has_liked=has_liked)


@router.post("/{video_id}/view", response_model=CounterResponse, summary="Record View")
async def record_view(
    video_id: str,
    service: EngagementService = Depends(get_engagement_service),
) -> CounterResponse:
    value = await service.record(video_id, "views_count")
    return CounterResponse(message="View recorded", value=value)


@router.post(
    "/{video_id}/product-click",
    response_model=CounterResponse,
    summary="Record Product Click",
)
async def record_product_click(
    video_id: str,
    service: EngagementService = Depends(get_engagement_service),
) -> CounterResponse:
    value = await service.record(video_id, "product_clicks_count")
    return CounterResponse(message="Product click recorded", value=value)


@router.post(
    "/{video_id}/sales-attributed",
    response_model=CounterResponse,
    summary="Record Attributed Sale",
)
async def record_attributed_sale(
    video_id: str,
    service: EngagementService = Depends(get_engagement_service),
) -> CounterResponse:
    value = await service.record(video_id, "ad_attributed_sales_count")
    return CounterResponse(message="Attributed sale recorded", value=value)


@router.post(
    "/{video_id}/like-toggle",
    response_model=LikeToggleResponse,
    summary="Like or Unlike",
)
async def toggle_like(
    video_id: str,
    viewer_id: str = Depends(get_required_viewer_id),
    service: EngagementService = Depends(get_engagement_service),
) -> LikeToggleResponse:
    liked, count = await service.toggle_like(video_id, viewer_id)
    return LikeToggleResponse(
        message="Like recorded" if liked else "Unlike recorded",
        liked=liked,
        new_likes_count=count,
    )


@router.post(
    "/{video_id}/promote",
    response_model=PromotionResponse,
    summary="Promote Video",
    responses={
        400: {"description": "Invalid number of days"},
        402: {"description": "Insufficient seller balance"},
        404: {"description": "Video not found or not owned by the seller"},
    },
)
async def promote_video(
    video_id: str,
    request: PromotionRequest,
    seller_id: str = Depends(get_required_viewer_id),
    service: EngagementService = Depends(get_engagement_service),
) -> PromotionResponse:
    end_date, cost = await service.promote(video_id, seller_id, request.days)
    return PromotionResponse(
        message=f"Promotion active for {request.days} days ({cost:.2f} debited)",
        promotion_ends=end_date,
        cost=cost,
    )

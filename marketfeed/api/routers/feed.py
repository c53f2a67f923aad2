"""
Feed API router.
Implements the Fy video feed and the smart product feed with caching headers.
"""
import hashlib
import logging
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Header, Query, Response, status

from marketfeed.api.auth import get_optional_viewer_id
from marketfeed.api.dependencies import get_product_feed_service, get_video_feed_service
from marketfeed.models.schemas import ProductFeedResponse, VideoFeedResponse
from marketfeed.services.feed import ProductFeedService, VideoFeedService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["feed"])


def _apply_cache_headers(
    response: Response,
    item_ids: List[str],
    personalized: bool,
    if_none_match: Optional[str],
) -> Optional[Response]:
    """Set ETag / Cache-Control headers; return a 304 response on ETag match."""
    etag: Optional[str] = None
    if item_ids:
        # Weak ETag over the ordered item ids
        etag_hash = hashlib.md5(",".join(item_ids).encode()).hexdigest()[:16]
        etag = f'W/"{etag_hash}"'
        response.headers["ETag"] = etag

    if if_none_match and etag and if_none_match == etag:
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers={"ETag": etag})

    if personalized:
        response.headers["Cache-Control"] = "private, max-age=30"
        response.headers["Vary"] = "Authorization"
    else:
        response.headers["Cache-Control"] = "public, max-age=30, stale-while-revalidate=15"
        response.headers["Vary"] = "Accept-Encoding"

    response.headers["X-Personalized"] = str(personalized).lower()
    return None


@router.get(
    "/fy",
    response_model=VideoFeedResponse,
    summary="Get Fy Video Feed",
    description="""
    Ranked short-video feed.

    - Videos past their test audience must sustain minimum conversion and like rates
    - Score blends conversion rate, like rate and recency
    - Promoted videos are interleaved at a fixed cadence
    - Already seen videos are dropped, liked videos come last

    Works without authentication (global feed).
    """,
    responses={
        200: {"description": "Feed returned successfully"},
        304: {"description": "Feed not modified"},
        500: {"description": "Candidate source failed"},
        503: {"description": "Candidate source circuit open"},
    },
)
async def get_video_feed(
    response: Response,
    if_none_match: Optional[str] = Header(default=None),
    viewer_id: Optional[str] = Depends(get_optional_viewer_id),
    feed_service: VideoFeedService = Depends(get_video_feed_service),
) -> Union[VideoFeedResponse, Response]:
    feed_response = await feed_service.get_feed(viewer_id=viewer_id)

    not_modified = _apply_cache_headers(
        response,
        [item.id for item in feed_response.videos],
        feed_response.personalized,
        if_none_match,
    )
    return not_modified or feed_response


@router.get(
    "/smart-feed",
    response_model=ProductFeedResponse,
    summary="Get Smart Product Feed",
    description="""
    Product storefront ordered by a blended score of conversion, recency,
    personal affinity and exploration. Active promotions sort first.
    Products that do not ship to ``city_id`` are penalized.
    """,
    responses={
        200: {"description": "Feed returned successfully"},
        304: {"description": "Feed not modified"},
        500: {"description": "Candidate source failed"},
        503: {"description": "Candidate source circuit open"},
    },
)
async def get_smart_feed(
    response: Response,
    city_id: Optional[str] = Query(
        default=None,
        description="Viewer's delivery region",
    ),
    if_none_match: Optional[str] = Header(default=None),
    viewer_id: Optional[str] = Depends(get_optional_viewer_id),
    feed_service: ProductFeedService = Depends(get_product_feed_service),
) -> Union[ProductFeedResponse, Response]:
    feed_response = await feed_service.get_smart_feed(
        viewer_id=viewer_id,
        viewer_region=city_id,
    )

    not_modified = _apply_cache_headers(
        response,
        [item.id for item in feed_response.products],
        feed_response.personalized,
        if_none_match,
    )
    return not_modified or feed_response

"""
FastAPI application entry point.

Wires logging, request ids, exception handlers, routers and telemetry for the
Fy video feed and the smart product feed.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from marketfeed.api.routers import (
    analytics_router,
    feed_router,
    health_router,
    videos_router,
)
from marketfeed.config import (
    ProductRankingConfig,
    VideoRankingConfig,
    get_settings,
)
from marketfeed.config.logging import configure_logging, request_id_var
from marketfeed.core.exceptions import AppException, ValidationError
from marketfeed.core.telemetry import setup_telemetry

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


# =============================================================================
# Lifespan (Startup/Shutdown)
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    video_config = VideoRankingConfig.from_settings(settings)
    product_config = ProductRankingConfig.from_settings(settings)

    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(
        f"Fy feed: target={video_config.target_size}, "
        f"promotion_interval={video_config.promotion_interval}, "
        f"test_audience={video_config.test_audience_size}, "
        f"like_rate_mode={video_config.like_rate_mode.value}"
    )
    logger.info(
        f"Smart feed: target={product_config.target_size}, "
        f"promotion_bonus={product_config.promotion_bonus}, "
        f"feedback_top_k={product_config.feedback_top_k}"
    )
    if settings.KILL_SWITCH_ACTIVE:
        logger.warning("Personalization kill switch is active")
    if not settings.JWT_SECRET:
        logger.warning("JWT_SECRET not set; every viewer is served anonymously")

    yield

    logger.info("Shutting down application")


# =============================================================================
# Middleware & Exception Handlers
# =============================================================================


async def request_context_middleware(request: Request, call_next):
    """Propagate or mint a request id and expose it to log records."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed parameters or bodies answer 400 in the standard error envelope."""
    fields = [".".join(str(part) for part in item["loc"]) for item in exc.errors()]
    error = ValidationError("Invalid request", details={"fields": fields})
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: never leak internals to the client."""
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
            },
        },
    )


# =============================================================================
# Application Factory
# =============================================================================


def create_app() -> FastAPI:
    settings = get_settings()

    configure_logging(debug=settings.DEBUG)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="""
        Marketplace Feed API

        Ranking engine behind the Fy short-video feed and the smart product storefront.

        ## Features
        - Performance gate for videos past their test audience
        - Weighted scoring of conversion, likes, recency and viewer affinity
        - Promoted content interleaved (videos) or boosted (products)
        - Anonymous viewers always get a feed
        - Circuit breaker around candidate sources
        - Observability: JSON logs with request ids, Prometheus, OpenTelemetry
        """,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.middleware("http")(request_context_middleware)
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    for router in (health_router, feed_router, videos_router, analytics_router):
        app.include_router(router)

    setup_telemetry(app)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("marketfeed.main:app", host="0.0.0.0", port=8000, reload=get_settings().DEBUG)

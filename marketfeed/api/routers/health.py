"""
Liveness and readiness probes.
"""
from fastapi import APIRouter, Depends

from marketfeed.api.dependencies import (
    get_feature_flag_service,
    get_product_circuit_breaker,
    get_video_circuit_breaker,
)
from marketfeed.config import get_settings
from marketfeed.core.circuit_breaker import CircuitBreaker
from marketfeed.services.feature_flags import ConfigBasedFeatureFlagService

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health Check")
async def health_check() -> dict:
    return {"status": "healthy"}


@router.get("/health/ready", summary="Readiness Check")
async def readiness_check(
    video_breaker: CircuitBreaker = Depends(get_video_circuit_breaker),
    product_breaker: CircuitBreaker = Depends(get_product_circuit_breaker),
    feature_flags: ConfigBasedFeatureFlagService = Depends(get_feature_flag_service),
) -> dict:
    """
    Report candidate source breakers and the live personalization switches.
    An open breaker means that feed answers 503 until it recovers.
    """
    breakers = {
        breaker.name: breaker.state.value for breaker in (video_breaker, product_breaker)
    }
    return {
        "status": "degraded" if "open" in breakers.values() else "ready",
        "circuit_breakers": breakers,
        "feature_flags": {
            "personalization_enabled": get_settings().PERSONALIZATION_ENABLED,
            "kill_switch_active": feature_flags.is_kill_switch_active(),
            "rollout_percentage": feature_flags.rollout_percentage,
        },
    }

"""Health & Readiness Probes — liveness and provider-configuration readiness.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 if no provider tier has a credential
    - Probes report tier availability only, never credentials or endpoints

Design Decisions:
    - Separate liveness/readiness: liveness restarts, readiness removes from load balancer
    - One configured tier is enough to be ready; the other tier fails per request with CONFIG
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from structured_llm.config import get_settings
from structured_llm.infrastructure.provider_registry import configured_tiers

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "structured-llm",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check():
    """Readiness probe — at least one provider tier must be configured."""
    tiers = configured_tiers(get_settings())
    if not any(tiers.values()):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "no_provider_configured",
                "checks": {"providers": tiers},
            },
        )
    return {"status": "ready", "checks": {"providers": tiers}}

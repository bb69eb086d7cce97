"""Health check endpoint for load balancers and monitoring."""

from datetime import datetime, timezone

from fastapi import APIRouter

from settlement_engine.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Lightweight liveness check.  The engine is stateless, so there are
    no dependencies to probe."""
    return {
        "status": "ok",
        "service": "settlement-engine",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
    }

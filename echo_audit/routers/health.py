"""
Health check endpoint.
"""

from fastapi import APIRouter, Request

from ..schemas.health import HealthStatus

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthStatus)
async def health_check(request: Request) -> HealthStatus:
    """Report liveness and whether the key-value store answers."""
    storage_ok = await request.app.state.store.ping()
    return HealthStatus(
        status="healthy" if storage_ok else "degraded",
        version=request.app.state.settings.app_version,
        storage=storage_ok,
    )

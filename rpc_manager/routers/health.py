"""Health, readiness, and metrics endpoints.

These endpoints do NOT require X-Service-Key authentication.
- GET /health — service status + network health + pool summary
- GET /readiness — 200 only when the network health is ``healthy``
- GET /metrics — full pool, dispatcher, and prober statistics
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Response

from rpc_manager.models.responses import ApiResponse
from rpc_manager.network.bridge import HealthState

if TYPE_CHECKING:
    from rpc_manager.manager import RpcEndpointManager


def create_health_router(*, manager: RpcEndpointManager) -> APIRouter:
    """Factory that creates the health router with injected dependencies."""

    health_router = APIRouter(tags=["health"])

    @health_router.get("/health")
    async def health() -> dict:
        """Service health check with network health and pool summary."""
        pool_stats = manager.registry.get_stats()
        return ApiResponse(
            success=True,
            data={
                "status": "healthy",
                "network_health": manager.network_health.to_dict(),
                "current_endpoint": pool_stats["current"],
                "healthy_endpoints": pool_stats["healthy"],
                "total_endpoints": pool_stats["total"],
            },
        ).model_dump()

    @health_router.get("/readiness")
    async def readiness(response: Response) -> dict:
        """Readiness probe: 200 iff network health is healthy."""
        network_health = manager.network_health
        is_ready = network_health.state == HealthState.HEALTHY

        if not is_ready:
            response.status_code = 503

        return ApiResponse(
            success=is_ready,
            data={
                "ready": is_ready,
                "network_health": network_health.to_dict(),
            },
            error=None if is_ready else "Service not ready",
        ).model_dump()

    @health_router.get("/metrics")
    async def metrics() -> dict:
        """Operational metrics endpoint."""
        return ApiResponse(success=True, data=manager.get_stats()).model_dump()

    return health_router

"""Endpoint control endpoints (require X-Service-Key).

- GET    /endpoints           — pool snapshot
- POST   /endpoints/next      — clear any override and rotate
- PUT    /endpoints/override  — pin a custom endpoint
- DELETE /endpoints/override  — drop the override
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter

from rpc_manager.models.requests import CustomEndpointRequest
from rpc_manager.models.responses import ApiResponse
from rpc_manager.transport.client import redact_url

if TYPE_CHECKING:
    from rpc_manager.manager import RpcEndpointManager
    from rpc_manager.registry.types import Endpoint

logger = logging.getLogger(__name__)


def _describe(endpoint: Endpoint) -> dict:
    return {
        "url": redact_url(endpoint.url),
        "name": endpoint.name,
        "type": endpoint.endpoint_type.value,
        "is_user_override": endpoint.is_user_override,
        "consecutive_failures": endpoint.consecutive_failures,
    }


def create_endpoints_router(*, manager: RpcEndpointManager) -> APIRouter:
    """Factory that creates the endpoint control router."""

    router = APIRouter(prefix="/endpoints", tags=["endpoints"])

    @router.get("")
    async def list_endpoints() -> dict:
        stats = manager.registry.get_stats()
        for entry in stats["endpoints"]:
            entry["url"] = redact_url(entry["url"])
        stats["current"] = redact_url(stats["current"])
        if stats["override"] is not None:
            stats["override"] = redact_url(stats["override"])
        return ApiResponse(success=True, data=stats).model_dump()

    @router.post("/next")
    async def switch_to_next() -> dict:
        endpoint = manager.switch_to_next_endpoint()
        logger.info("Endpoint rotated via API to %s", redact_url(endpoint.url))
        return ApiResponse(success=True, data=_describe(endpoint)).model_dump()

    @router.put("/override")
    async def set_override(body: CustomEndpointRequest) -> dict:
        endpoint = manager.set_custom_endpoint(body.url)
        return ApiResponse(success=True, data=_describe(endpoint)).model_dump()

    @router.delete("/override")
    async def clear_override() -> dict:
        endpoint = manager.clear_override()
        return ApiResponse(success=True, data=_describe(endpoint)).model_dump()

    return router

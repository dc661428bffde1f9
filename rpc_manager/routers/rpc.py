"""RPC pass-through endpoint (requires X-Service-Key).

POST /rpc — execute one JSON-RPC call through the managed pool.
Failures surface through the global error handlers as 502/503 envelopes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter

from rpc_manager.models.requests import RpcCallRequest
from rpc_manager.models.responses import ApiResponse
from rpc_manager.models.rpc import RpcRequest
from rpc_manager.transport.client import redact_url

if TYPE_CHECKING:
    from rpc_manager.manager import RpcEndpointManager


def create_rpc_router(*, manager: RpcEndpointManager) -> APIRouter:
    """Factory that creates the RPC pass-through router."""

    router = APIRouter(tags=["rpc"])

    @router.post("/rpc")
    async def call_rpc(body: RpcCallRequest) -> dict:
        response = await manager.execute(RpcRequest(method=body.method, params=tuple(body.params)))
        return ApiResponse(
            success=True,
            data={"result": response.result},
            meta={
                "endpoint": redact_url(response.endpoint_url),
                "latency_ms": round(response.latency_ms, 2),
            },
        ).model_dump()

    return router

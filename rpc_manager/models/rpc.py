"""JSON-RPC 2.0 value objects.

Requests and responses are immutable; they carry no identity beyond their
content. The wire ``id`` is assigned by the transport at send time.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

JSONRPC_VERSION = "2.0"


class RpcRequest(BaseModel):
    """An RPC method name plus its ordered parameter list."""

    model_config = ConfigDict(frozen=True)

    method: str = Field(min_length=1)
    params: tuple[Any, ...] = ()

    def to_payload(self, request_id: int) -> dict[str, Any]:
        """Build the JSON-RPC 2.0 request envelope."""
        return {
            "jsonrpc": JSONRPC_VERSION,
            "id": request_id,
            "method": self.method,
            "params": list(self.params),
        }


class RpcErrorBody(BaseModel):
    """The ``error`` member of a JSON-RPC response."""

    model_config = ConfigDict(frozen=True)

    code: int
    message: str
    data: Any = None


class RpcResponse(BaseModel):
    """Successful result of an RPC call and where it was served from."""

    model_config = ConfigDict(frozen=True)

    result: Any = None
    endpoint_url: str
    latency_ms: float = Field(ge=0.0)

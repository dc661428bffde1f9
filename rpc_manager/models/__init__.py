"""Public models for the RPC manager."""

from rpc_manager.models.requests import CustomEndpointRequest, RpcCallRequest
from rpc_manager.models.responses import ApiResponse
from rpc_manager.models.rpc import JSONRPC_VERSION, RpcErrorBody, RpcRequest, RpcResponse

__all__ = [
    "ApiResponse",
    "CustomEndpointRequest",
    "JSONRPC_VERSION",
    "RpcCallRequest",
    "RpcErrorBody",
    "RpcRequest",
    "RpcResponse",
]

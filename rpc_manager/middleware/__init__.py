"""Middleware package: error hierarchy, auth, request ID."""

from rpc_manager.middleware.auth import ServiceKeyAuthMiddleware
from rpc_manager.middleware.error_handler import (
    AllEndpointsUnhealthyError,
    AuthenticationError,
    InvalidEndpointError,
    RpcManagerError,
    RpcProtocolError,
    TransportError,
    register_error_handlers,
)
from rpc_manager.middleware.request_id import RequestIdMiddleware

__all__ = [
    "AllEndpointsUnhealthyError",
    "AuthenticationError",
    "InvalidEndpointError",
    "RequestIdMiddleware",
    "RpcManagerError",
    "RpcProtocolError",
    "ServiceKeyAuthMiddleware",
    "TransportError",
    "register_error_handlers",
]

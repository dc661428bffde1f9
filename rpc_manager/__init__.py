"""RPC endpoint manager: failover routing of JSON-RPC calls across a health-checked endpoint pool."""

from rpc_manager.manager import RpcEndpointManager
from rpc_manager.models.rpc import RpcRequest, RpcResponse
from rpc_manager.network.bridge import HealthState, NetworkHealth

__all__ = [
    "HealthState",
    "NetworkHealth",
    "RpcEndpointManager",
    "RpcRequest",
    "RpcResponse",
]

__version__ = "1.0.0"

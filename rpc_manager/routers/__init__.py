"""HTTP routers for the ops API."""

from rpc_manager.routers.endpoints import create_endpoints_router
from rpc_manager.routers.health import create_health_router
from rpc_manager.routers.rpc import create_rpc_router

__all__ = ["create_endpoints_router", "create_health_router", "create_rpc_router"]

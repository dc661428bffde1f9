"""Configuration: settings and endpoint seeding."""

from rpc_manager.config.endpoints import (
    EndpointSeed,
    build_endpoint_pool,
    build_endpoint_seeds,
    load_endpoint_seeds,
)
from rpc_manager.config.settings import DEFAULT_ENDPOINT_URL, RpcManagerSettings

__all__ = [
    "DEFAULT_ENDPOINT_URL",
    "EndpointSeed",
    "RpcManagerSettings",
    "build_endpoint_pool",
    "build_endpoint_seeds",
    "load_endpoint_seeds",
]

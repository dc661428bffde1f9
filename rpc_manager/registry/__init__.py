"""Endpoint pool, rotation policy, and override control."""

from rpc_manager.registry.registry import EndpointRegistry
from rpc_manager.registry.selector import EndpointSelector, choose_next_index
from rpc_manager.registry.types import (
    DEFAULT_FAILURE_THRESHOLD,
    Endpoint,
    EndpointType,
    LatencyTier,
)

__all__ = [
    "DEFAULT_FAILURE_THRESHOLD",
    "Endpoint",
    "EndpointRegistry",
    "EndpointSelector",
    "EndpointType",
    "LatencyTier",
    "choose_next_index",
]

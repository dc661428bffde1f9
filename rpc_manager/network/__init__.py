"""Device connectivity and merged network health."""

from rpc_manager.network.bridge import (
    REASON_ALL_IMPAIRED,
    REASON_ELEVATED_ERRORS,
    HealthState,
    NetworkHealth,
    NetworkStatusBridge,
    derive_network_health,
)
from rpc_manager.network.broadcast import LatestValueBroadcaster
from rpc_manager.network.connectivity import (
    ConnectionType,
    ConnectivityMonitor,
    ConnectivityState,
)

__all__ = [
    "REASON_ALL_IMPAIRED",
    "REASON_ELEVATED_ERRORS",
    "ConnectionType",
    "ConnectivityMonitor",
    "ConnectivityState",
    "HealthState",
    "LatestValueBroadcaster",
    "NetworkHealth",
    "NetworkStatusBridge",
    "derive_network_health",
]

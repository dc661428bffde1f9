"""Network status bridge.

Merges device connectivity with the current endpoint's failure streak into a
single ``NetworkHealth`` value:

- device disconnected                                -> offline
- connectivity not reported yet                      -> unknown
- connected, current endpoint has no failures        -> healthy
- connected, 1 <= failures < threshold               -> degraded("elevated latency/errors")
- connected, failures >= threshold, no healthy peer  -> degraded("all endpoints impaired")
- connected, failures >= threshold, healthy peer     -> degraded("elevated latency/errors")

The value is recomputed on every registry mutation and every connectivity
change and published to subscribers only when it changes.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum

from rpc_manager.network.broadcast import LatestValueBroadcaster
from rpc_manager.network.connectivity import ConnectivityMonitor, ConnectivityState
from rpc_manager.registry.registry import EndpointRegistry
from rpc_manager.registry.types import Endpoint

logger = logging.getLogger(__name__)

REASON_ELEVATED_ERRORS = "elevated latency/errors"
REASON_ALL_IMPAIRED = "all endpoints impaired"


class HealthState(str, Enum):
    """Externally visible network health states."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class NetworkHealth:
    """Tagged health value; ``reason`` is only set for ``DEGRADED``."""

    state: HealthState
    reason: str | None = None

    @classmethod
    def healthy(cls) -> NetworkHealth:
        return cls(HealthState.HEALTHY)

    @classmethod
    def degraded(cls, reason: str) -> NetworkHealth:
        return cls(HealthState.DEGRADED, reason)

    @classmethod
    def offline(cls) -> NetworkHealth:
        return cls(HealthState.OFFLINE)

    @classmethod
    def unknown(cls) -> NetworkHealth:
        return cls(HealthState.UNKNOWN)

    def to_dict(self) -> dict:
        return {"state": self.state.value, "reason": self.reason}


def derive_network_health(
    connectivity: ConnectivityState | None,
    current: Endpoint,
    *,
    has_healthy_alternative: bool,
    failure_threshold: int,
) -> NetworkHealth:
    """Pure mapping from inputs to a :class:`NetworkHealth` value."""
    if connectivity is None:
        return NetworkHealth.unknown()
    if not connectivity.is_connected:
        return NetworkHealth.offline()
    if current.consecutive_failures == 0:
        return NetworkHealth.healthy()
    if current.consecutive_failures < failure_threshold or has_healthy_alternative:
        return NetworkHealth.degraded(REASON_ELEVATED_ERRORS)
    return NetworkHealth.degraded(REASON_ALL_IMPAIRED)


class NetworkStatusBridge:
    """Publishes :class:`NetworkHealth` derived from registry + connectivity."""

    def __init__(self, registry: EndpointRegistry, connectivity: ConnectivityMonitor) -> None:
        self._registry = registry
        self._connectivity = connectivity
        self._channel: LatestValueBroadcaster[NetworkHealth] = LatestValueBroadcaster(
            self._compute()
        )
        self._registry.add_listener(self._on_registry_change)
        self._connectivity.add_listener(self._on_connectivity_change)

    @property
    def health(self) -> NetworkHealth:
        return self._channel.value

    def observe(self) -> AsyncIterator[NetworkHealth]:
        """Stream of health values; replays the latest value on subscribe."""
        return self._channel.subscribe()

    def refresh(self) -> NetworkHealth:
        """Recompute the health value and publish it if it changed."""
        health = self._compute()
        if self._channel.publish(health):
            log = logger.info if health.state == HealthState.HEALTHY else logger.warning
            log(
                "Network health changed: %s%s",
                health.state.value,
                f" ({health.reason})" if health.reason else "",
                extra={"network_health": health.state.value},
            )
        return health

    def close(self) -> None:
        self._registry.remove_listener(self._on_registry_change)
        self._connectivity.remove_listener(self._on_connectivity_change)

    def _compute(self) -> NetworkHealth:
        current = self._registry.current()
        return derive_network_health(
            self._connectivity.state,
            current,
            has_healthy_alternative=self._registry.has_healthy_endpoint(exclude_url=current.url),
            failure_threshold=self._registry.failure_threshold,
        )

    def _on_registry_change(self) -> None:
        self.refresh()

    def _on_connectivity_change(self, _state: ConnectivityState | None) -> None:
        self.refresh()

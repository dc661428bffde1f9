"""Device connectivity signal.

The platform's network monitor pushes connectivity changes into a
``ConnectivityMonitor``; the health prober and the network status bridge read
from it. Until the first update arrives the state is unknown.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

ConnectivityListener = Callable[["ConnectivityState | None"], None]


class ConnectionType(str, Enum):
    """Transport the device is currently using."""

    WIFI = "wifi"
    CELLULAR = "cellular"
    ETHERNET = "ethernet"
    NONE = "none"


@dataclass(frozen=True)
class ConnectivityState:
    """Snapshot of device connectivity."""

    is_connected: bool
    connection_type: ConnectionType = ConnectionType.NONE

    @property
    def is_metered(self) -> bool:
        return self.connection_type == ConnectionType.CELLULAR


class ConnectivityMonitor:
    """Holds the latest connectivity state and notifies listeners on change."""

    def __init__(self, initial: ConnectivityState | None = None) -> None:
        self._state = initial
        self._listeners: list[ConnectivityListener] = []

    @property
    def state(self) -> ConnectivityState | None:
        return self._state

    @property
    def is_connected(self) -> bool:
        """``True`` unless the device is known to be offline."""
        return self._state is None or self._state.is_connected

    def update(self, state: ConnectivityState) -> None:
        if state == self._state:
            return
        self._state = state
        logger.info(
            "Connectivity changed: connected=%s type=%s",
            state.is_connected,
            state.connection_type.value,
        )
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:  # noqa: BLE001
                logger.exception("Connectivity listener failed")

    def set_connected(self, connection_type: ConnectionType = ConnectionType.WIFI) -> None:
        self.update(ConnectivityState(is_connected=True, connection_type=connection_type))

    def set_disconnected(self) -> None:
        self.update(ConnectivityState(is_connected=False, connection_type=ConnectionType.NONE))

    def add_listener(self, listener: ConnectivityListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ConnectivityListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

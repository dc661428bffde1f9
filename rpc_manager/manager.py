"""RPC endpoint manager: the composition of registry, selector, dispatcher,
prober, and network status bridge behind one object.

The manager is an ordinary object built with injected collaborators (transport,
connectivity monitor, clock, sleep, random source) and owned by the
application's composition root. ``start()`` launches the health prober;
``stop()`` stops it, lets in-flight calls finish (bounded by
``graceful_shutdown_seconds``), and closes the transport.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from typing import Any

from rpc_manager.config.endpoints import build_endpoint_pool, build_endpoint_seeds
from rpc_manager.config.settings import RpcManagerSettings
from rpc_manager.dispatcher.dispatcher import RequestDispatcher
from rpc_manager.models.rpc import RpcRequest, RpcResponse
from rpc_manager.network.bridge import NetworkHealth, NetworkStatusBridge
from rpc_manager.network.connectivity import ConnectivityMonitor
from rpc_manager.prober.health_prober import HealthProber
from rpc_manager.registry.registry import EndpointRegistry
from rpc_manager.registry.selector import EndpointSelector
from rpc_manager.registry.types import Endpoint
from rpc_manager.transport.client import JsonRpcTransport, RpcTransport

logger = logging.getLogger(__name__)


class RpcEndpointManager:
    """Routes JSON-RPC calls through a self-healing pool of endpoints.

    Parameters
    ----------
    endpoints:
        Seed pool (see :func:`rpc_manager.config.endpoints.build_endpoint_pool`).
    transport:
        JSON-RPC transport shared by the dispatcher and the prober.
    connectivity:
        Device connectivity source. Defaults to a monitor in the unknown state.
    settings:
        Tunables; only the numeric policy fields are read.
    """

    def __init__(
        self,
        endpoints: Sequence[Endpoint],
        *,
        transport: RpcTransport,
        settings: RpcManagerSettings,
        connectivity: ConnectivityMonitor | None = None,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._connectivity = connectivity or ConnectivityMonitor()

        self._registry = EndpointRegistry(
            endpoints,
            failure_threshold=settings.failure_threshold,
            latency_ema_weight=settings.latency_ema_weight,
            clock=clock,
        )
        self._selector = EndpointSelector(self._registry)
        self._dispatcher = RequestDispatcher(
            registry=self._registry,
            selector=self._selector,
            transport=transport,
            max_retries=settings.max_retries,
            request_timeout_seconds=settings.request_timeout_seconds,
            backoff_base_seconds=settings.backoff_base_seconds,
            backoff_factor=settings.backoff_factor,
            sleep=sleep,
            monotonic=monotonic,
        )
        self._prober = HealthProber(
            registry=self._registry,
            transport=transport,
            connectivity=self._connectivity,
            probe_method=settings.probe_method,
            interval_seconds=settings.probe_interval_seconds,
            jitter_seconds=settings.probe_jitter_seconds,
            probe_timeout_seconds=settings.probe_timeout_seconds,
            sleep=sleep,
            monotonic=monotonic,
            rng=rng,
        )
        self._bridge = NetworkStatusBridge(self._registry, self._connectivity)
        self._started = False
        self._stopped = False

    @classmethod
    def from_settings(
        cls,
        settings: RpcManagerSettings,
        *,
        connectivity: ConnectivityMonitor | None = None,
    ) -> RpcEndpointManager:
        """Build a manager with an httpx transport and a pool seeded from *settings*."""
        pool = build_endpoint_pool(build_endpoint_seeds(settings))
        transport = JsonRpcTransport(max_connections=settings.max_connections)
        return cls(pool, transport=transport, settings=settings, connectivity=connectivity)

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def registry(self) -> EndpointRegistry:
        return self._registry

    @property
    def selector(self) -> EndpointSelector:
        return self._selector

    @property
    def dispatcher(self) -> RequestDispatcher:
        return self._dispatcher

    @property
    def prober(self) -> HealthProber:
        return self._prober

    @property
    def connectivity(self) -> ConnectivityMonitor:
        return self._connectivity

    @property
    def is_started(self) -> bool:
        return self._started

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Launch the health prober (idempotent while running).

        A stopped manager has closed its transport and detached its health
        listeners, so it cannot be started again; build a new one instead.
        """
        if self._stopped:
            raise RuntimeError("RpcEndpointManager cannot be restarted after stop()")
        if self._started:
            return
        self._prober.start()
        self._started = True
        logger.info(
            "RPC endpoint manager started with %d endpoints, current: %s",
            len(self._registry.list()),
            self._registry.current().name,
        )

    async def stop(self) -> None:
        if not self._started:
            return
        self._started = False
        self._stopped = True
        await self._prober.stop()
        await self._dispatcher.drain(timeout=self._settings.graceful_shutdown_seconds)
        self._bridge.close()
        await self._transport.close()
        logger.info("RPC endpoint manager stopped")

    async def __aenter__(self) -> RpcEndpointManager:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    async def execute(self, request: RpcRequest) -> RpcResponse:
        return await self._dispatcher.execute(request)

    async def call(self, method: str, params: Sequence[Any] = ()) -> Any:
        """Convenience wrapper returning only the ``result`` member."""
        response = await self.execute(RpcRequest(method=method, params=tuple(params)))
        return response.result

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    @property
    def network_health(self) -> NetworkHealth:
        return self._bridge.health

    def observe_network_health(self) -> AsyncIterator[NetworkHealth]:
        return self._bridge.observe()

    # ------------------------------------------------------------------
    # Endpoint control
    # ------------------------------------------------------------------

    def current_endpoint(self) -> Endpoint:
        return self._registry.current()

    def list_endpoints(self) -> list[Endpoint]:
        return self._registry.list()

    def switch_to_next_endpoint(self) -> Endpoint:
        return self._selector.switch_to_next_endpoint()

    def set_custom_endpoint(self, url: str) -> Endpoint:
        return self._selector.set_custom_endpoint(url)

    def clear_override(self) -> Endpoint:
        return self._selector.clear_override()

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def get_stats(self) -> dict:
        connectivity = self._connectivity.state
        return {
            "network_health": self.network_health.to_dict(),
            "connectivity": (
                {
                    "is_connected": connectivity.is_connected,
                    "connection_type": connectivity.connection_type.value,
                    "is_metered": connectivity.is_metered,
                }
                if connectivity is not None
                else None
            ),
            "pool": self._registry.get_stats(),
            "dispatcher": self._dispatcher.get_stats(),
            "prober": {
                "running": self._prober.is_running,
                "rounds_completed": self._prober.rounds_completed,
            },
        }

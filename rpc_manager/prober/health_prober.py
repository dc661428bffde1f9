"""Background health prober.

The first round runs as soon as the prober starts. After that, every
``interval_seconds`` (jittered by up to ``jitter_seconds`` either way so that
many instances do not probe shared infrastructure in lockstep) the prober sends
a lightweight liveness call to every endpoint in the pool, override included,
and records the outcome in the registry. Probes run concurrently and
each is bounded by ``probe_timeout_seconds``.

The prober only ever writes to the registry; it never moves the current
pointer and never blocks the dispatcher. Rounds are skipped while the device
is offline, since every probe would fail for reasons unrelated to the
endpoints.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable

from rpc_manager.middleware.error_handler import RpcProtocolError, TransportError
from rpc_manager.models.rpc import RpcRequest
from rpc_manager.network.connectivity import ConnectivityMonitor
from rpc_manager.registry.registry import EndpointRegistry
from rpc_manager.registry.types import Endpoint
from rpc_manager.transport.client import RpcTransport, redact_url

logger = logging.getLogger(__name__)


class HealthProber:
    """Periodic liveness checks feeding the endpoint registry.

    Args:
        registry: Registry to record probe outcomes in.
        transport: Transport used for the liveness call.
        connectivity: Optional device connectivity source; rounds are skipped
            while it reports disconnected.
        probe_method: JSON-RPC method used as the liveness call.
        interval_seconds: Mean delay between rounds.
        jitter_seconds: Maximum deviation from the mean delay.
        probe_timeout_seconds: Upper bound on each probe.
    """

    def __init__(
        self,
        *,
        registry: EndpointRegistry,
        transport: RpcTransport,
        connectivity: ConnectivityMonitor | None = None,
        probe_method: str = "getBlockHeight",
        interval_seconds: float = 30.0,
        jitter_seconds: float = 5.0,
        probe_timeout_seconds: float = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        monotonic: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ) -> None:
        self._registry = registry
        self._transport = transport
        self._connectivity = connectivity
        self._probe_request = RpcRequest(method=probe_method)
        self._interval = interval_seconds
        self._jitter = jitter_seconds
        self._timeout = probe_timeout_seconds
        self._sleep = sleep
        self._monotonic = monotonic
        self._rng = rng or random.Random()
        self._task: asyncio.Task[None] | None = None
        self._rounds = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def rounds_completed(self) -> int:
        return self._rounds

    def next_delay(self) -> float:
        """Delay before the next round: interval ± jitter, never negative."""
        return max(0.0, self._interval + self._rng.uniform(-self._jitter, self._jitter))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the background probe loop (idempotent)."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self.run_forever(), name="rpc-health-prober")
        logger.info(
            "Health prober started: interval=%.1fs jitter=%.1fs timeout=%.1fs",
            self._interval,
            self._jitter,
            self._timeout,
        )

    async def stop(self) -> None:
        """Cancel the probe loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Health prober stopped")

    async def run_forever(self) -> None:
        """Probe immediately, then once per jittered interval until cancelled."""
        while True:
            try:
                await self.run_once()
            except Exception:  # noqa: BLE001
                logger.exception("Health probe round failed")
            await self._sleep(self.next_delay())

    # ------------------------------------------------------------------
    # Probing
    # ------------------------------------------------------------------

    async def run_once(self) -> dict[str, bool]:
        """Probe every endpoint once; return ``{url: healthy}`` for the round.

        Returns an empty dict when the round is skipped because the device is
        offline.
        """
        if self._connectivity is not None and not self._connectivity.is_connected:
            logger.debug("Skipping health probe round: device offline")
            return {}

        endpoints = self._registry.list()
        outcomes = await asyncio.gather(*(self._probe(e) for e in endpoints))
        self._rounds += 1
        healthy = sum(1 for ok in outcomes if ok)
        logger.debug("Health probe round complete: %d/%d reachable", healthy, len(endpoints))
        return {e.url: ok for e, ok in zip(endpoints, outcomes)}

    async def _probe(self, endpoint: Endpoint) -> bool:
        started = self._monotonic()
        try:
            await asyncio.wait_for(
                self._transport.send(endpoint.url, self._probe_request, timeout=self._timeout),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            self._registry.record_failure(endpoint.url, f"Probe timed out after {self._timeout:g}s")
            logger.debug("Probe timed out for %s", redact_url(endpoint.url))
            return False
        except (TransportError, RpcProtocolError) as exc:
            self._registry.record_failure(endpoint.url, exc.message)
            logger.debug("Probe failed for %s: %s", redact_url(endpoint.url), exc.message)
            return False

        latency_ms = (self._monotonic() - started) * 1000.0
        self._registry.record_success(endpoint.url, latency_ms)
        return True

"""Request dispatcher: one RPC call with retry and failover.

Each attempt reads the registry's current endpoint, sends the request with a
bounded timeout and reports the outcome back to the registry. A failed attempt
against a pooled endpoint moves the pointer in the same registry update that
records the failure; a failed attempt against a user override does not, and
the retries go to the same override.

Retry schedule: 250ms, 500ms (base 0.25s, factor 2) for the default two retries.

A call cancelled mid-flight records neither success nor failure: the registry
is only touched after the transport returns or raises.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from rpc_manager.middleware.error_handler import (
    AllEndpointsUnhealthyError,
    RpcManagerError,
    RpcProtocolError,
    TransportError,
)
from rpc_manager.models.rpc import RpcRequest, RpcResponse
from rpc_manager.registry.registry import EndpointRegistry
from rpc_manager.registry.selector import EndpointSelector
from rpc_manager.transport.client import RpcTransport, redact_url

logger = logging.getLogger(__name__)


class RequestDispatcher:
    """Executes RPC requests against the registry's current endpoint.

    Parameters
    ----------
    registry:
        Shared endpoint registry (health metrics and current pointer).
    selector:
        Rotation policy used for failover.
    transport:
        Delivers a single request to a single endpoint.
    max_retries:
        Additional attempts after the first one (default 2, i.e. 3 attempts).
    request_timeout_seconds:
        Upper bound on each attempt.
    backoff_base_seconds / backoff_factor:
        Exponential backoff between attempts.
    sleep / monotonic:
        Injected for tests.
    """

    def __init__(
        self,
        *,
        registry: EndpointRegistry,
        selector: EndpointSelector,
        transport: RpcTransport,
        max_retries: int = 2,
        request_timeout_seconds: float = 10.0,
        backoff_base_seconds: float = 0.25,
        backoff_factor: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry
        self._selector = selector
        self._transport = transport
        self._max_retries = max_retries
        self._timeout = request_timeout_seconds
        self._backoff_base = backoff_base_seconds
        self._backoff_factor = backoff_factor
        self._sleep = sleep
        self._monotonic = monotonic

        self._inflight = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._ok = 0
        self._failed = 0

    @property
    def max_attempts(self) -> int:
        return self._max_retries + 1

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number *attempt* (0-based)."""
        return self._backoff_base * (self._backoff_factor**attempt)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def execute(self, request: RpcRequest) -> RpcResponse:
        """Run *request* with retry and failover.

        Raises
        ------
        AllEndpointsUnhealthyError
            Retry budget exhausted and no endpoint in the pool is healthy.
        TransportError, RpcProtocolError
            Retry budget exhausted; the last attempt's failure is re-raised.
        """
        self._inflight += 1
        self._idle.clear()
        try:
            return await self._execute_with_retries(request)
        finally:
            self._inflight -= 1
            if self._inflight == 0:
                self._idle.set()

    async def drain(self, timeout: float) -> bool:
        """Wait up to *timeout* seconds for in-flight calls; ``True`` if drained."""
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning("Dispatcher drain timed out with %d calls in flight", self._inflight)
            return False

    def get_stats(self) -> dict:
        return {
            "inflight": self._inflight,
            "succeeded": self._ok,
            "failed": self._failed,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _execute_with_retries(self, request: RpcRequest) -> RpcResponse:
        last_error: RpcManagerError | None = None
        last_url = ""

        for attempt in range(self.max_attempts):
            endpoint = self._registry.current()
            last_url = endpoint.url
            started = self._monotonic()

            try:
                result = await asyncio.wait_for(
                    self._transport.send(endpoint.url, request, timeout=self._timeout),
                    timeout=self._timeout,
                )
            except asyncio.TimeoutError:
                last_error = TransportError(
                    f"Timed out after {self._timeout:g}s",
                    endpoint_url=redact_url(endpoint.url),
                    reason="timeout",
                )
            except (TransportError, RpcProtocolError) as exc:
                last_error = exc
            else:
                latency_ms = (self._monotonic() - started) * 1000.0
                self._registry.record_success(endpoint.url, latency_ms)
                self._ok += 1
                return RpcResponse(
                    result=result,
                    endpoint_url=endpoint.url,
                    latency_ms=max(0.0, latency_ms),
                )

            self._selector.record_failure(endpoint.url, last_error.message)
            logger.warning(
                "RPC %s failed on %s (attempt %d/%d): %s",
                request.method,
                redact_url(endpoint.url),
                attempt + 1,
                self.max_attempts,
                last_error.message,
                extra={
                    "rpc_method": request.method,
                    "endpoint_url": redact_url(endpoint.url),
                    "attempt": attempt + 1,
                    "error_reason": last_error.details.get("reason"),
                },
            )

            if attempt < self._max_retries:
                await self._sleep(self.backoff_delay(attempt))

        self._failed += 1
        assert last_error is not None

        if not self._registry.has_healthy_endpoint():
            logger.error(
                "RPC %s failed after %d attempts, no healthy endpoint left",
                request.method,
                self.max_attempts,
                extra={"rpc_method": request.method, "endpoint_url": redact_url(last_url)},
            )
            raise AllEndpointsUnhealthyError(
                f"All RPC endpoints are unhealthy; last failure: {last_error.message}",
                endpoint_url=redact_url(last_url),
                reason=last_error.details.get("reason"),
                attempts=self.max_attempts,
            ) from last_error

        logger.error(
            "RPC %s failed after %d attempts: %s",
            request.method,
            self.max_attempts,
            last_error.message,
            extra={"rpc_method": request.method, "endpoint_url": redact_url(last_url)},
        )
        raise last_error

"""Test doubles for the RPC manager's injected collaborators.

``FakeTransport`` stands in for ``JsonRpcTransport``: each endpoint URL maps to
a handler that returns a result or raises. ``RecordingSleep`` replaces
``asyncio.sleep`` so backoff and probe delays can be asserted without waiting.
Connectivity needs no fake: ``ConnectivityMonitor.set_connected`` /
``set_disconnected`` simulate the platform signal.
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Callable
from typing import Any

from rpc_manager.middleware.error_handler import RpcProtocolError, TransportError
from rpc_manager.models.rpc import RpcRequest

Handler = Callable[[RpcRequest], Any]


def succeed(result: Any = "ok") -> Handler:
    """Handler that always returns *result*."""
    return lambda _request: result


def fail_transport(reason: str = "Connection refused") -> Handler:
    """Handler that always raises ``TransportError``."""

    def handler(_request: RpcRequest) -> Any:
        raise TransportError(reason, reason="connection_error")

    return handler


def fail_rpc(code: int = -32005, message: str = "Node is behind") -> Handler:
    """Handler that always answers with a JSON-RPC error object."""

    def handler(_request: RpcRequest) -> Any:
        raise RpcProtocolError(f"RPC error {code}: {message}", reason="rpc_error", code=code)

    return handler


def flaky(every: int = 3, result: Any = "ok") -> Handler:
    """Handler that fails every *every*-th call and succeeds otherwise."""
    counter = itertools.count(1)

    def handler(_request: RpcRequest) -> Any:
        if next(counter) % every == 0:
            raise TransportError("Flaky endpoint dropped the connection", reason="connection_error")
        return result

    return handler


class FakeTransport:
    """In-memory ``RpcTransport`` with per-URL behaviour."""

    def __init__(
        self,
        handlers: dict[str, Handler] | None = None,
        *,
        default: Handler | None = None,
        delay: float = 0.0,
    ) -> None:
        self._handlers = dict(handlers or {})
        self._default = default or succeed()
        self.delay = delay
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    def set_handler(self, url: str, handler: Handler) -> None:
        self._handlers[url] = handler

    def calls_to(self, url: str) -> int:
        return sum(1 for called_url, _ in self.calls if called_url == url)

    async def send(self, url: str, request: RpcRequest, *, timeout: float) -> Any:
        self.calls.append((url, request.method))
        if self.delay:
            await asyncio.sleep(self.delay)
        else:
            await asyncio.sleep(0)
        return self._handlers.get(url, self._default)(request)

    async def close(self) -> None:
        self.closed = True


class RecordingSleep:
    """Async ``sleep`` replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)

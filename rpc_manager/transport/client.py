"""JSON-RPC 2.0 over HTTP POST.

``JsonRpcTransport`` sends a single request to a single endpoint and maps every
way that can go wrong onto the manager's error taxonomy:

- connection failures, timeouts and non-2xx statuses -> ``TransportError``
- undecodable bodies, unexpected shapes and ``{"error": ...}`` -> ``RpcProtocolError``

Retry, failover and health bookkeeping live in the dispatcher; the transport
makes exactly one attempt.
"""

from __future__ import annotations

import itertools
import logging
import re
from typing import Any, Protocol
from urllib.parse import urlparse, urlunparse

import httpx
from pydantic import ValidationError as PydanticValidationError

from rpc_manager.middleware.error_handler import RpcProtocolError, TransportError
from rpc_manager.models.rpc import RpcErrorBody, RpcRequest

logger = logging.getLogger(__name__)

# Path segments that look like embedded API keys (e.g. /v2/<key>)
_KEY_LIKE_SEGMENT = re.compile(r"^[A-Za-z0-9_\-]{24,}$")


def redact_url(url: str) -> str:
    """Mask query values and key-like path segments so a URL is safe to log."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return "[unparseable-url]"
    path = "/".join(
        "***" if _KEY_LIKE_SEGMENT.match(segment) else segment
        for segment in parsed.path.split("/")
    )
    query = "&".join(
        f"{pair.split('=', 1)[0]}=***" if "=" in pair else pair
        for pair in parsed.query.split("&")
        if pair
    )
    return urlunparse(parsed._replace(path=path, query=query))


class RpcTransport(Protocol):
    """Anything that can deliver one JSON-RPC request to one endpoint."""

    async def send(self, url: str, request: RpcRequest, *, timeout: float) -> Any:
        """Return the ``result`` member or raise TransportError / RpcProtocolError."""
        ...

    async def close(self) -> None:
        ...


class JsonRpcTransport:
    """httpx-backed JSON-RPC transport with a persistent connection pool.

    Parameters
    ----------
    client:
        Optional pre-built ``httpx.AsyncClient`` (tests pass one wired to
        ``httpx.MockTransport``). When omitted a client is created lazily and
        owned by the transport.
    max_connections:
        Connection pool limit for the owned client.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        max_connections: int = 50,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self._max_connections = max_connections
        self._ids = itertools.count(1)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                limits=httpx.Limits(max_connections=self._max_connections),
                headers={"Content-Type": "application/json"},
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def send(self, url: str, request: RpcRequest, *, timeout: float) -> Any:
        payload = request.to_payload(next(self._ids))
        safe_url = redact_url(url)
        client = self._get_client()

        try:
            response = await client.post(url, json=payload, timeout=timeout)
        except httpx.TimeoutException as exc:
            raise TransportError(
                f"Timed out after {timeout:g}s",
                endpoint_url=safe_url,
                reason="timeout",
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(
                f"{type(exc).__name__}: {exc}",
                endpoint_url=safe_url,
                reason="connection_error",
            ) from exc

        if response.status_code >= 400:
            raise TransportError(
                f"HTTP {response.status_code} from {safe_url}",
                endpoint_url=safe_url,
                reason=f"http_{response.status_code}",
                http_status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise RpcProtocolError(
                "Malformed JSON-RPC response",
                endpoint_url=safe_url,
                reason="decode_error",
            ) from exc

        if not isinstance(data, dict):
            raise RpcProtocolError(
                "Unexpected JSON-RPC response shape",
                endpoint_url=safe_url,
                reason="decode_error",
            )

        if data.get("error") is not None:
            try:
                error = RpcErrorBody.model_validate(data["error"])
            except PydanticValidationError as exc:
                raise RpcProtocolError(
                    "Malformed JSON-RPC error object",
                    endpoint_url=safe_url,
                    reason="decode_error",
                ) from exc
            raise RpcProtocolError(
                f"RPC error {error.code}: {error.message}",
                endpoint_url=safe_url,
                reason="rpc_error",
                code=error.code,
            )

        if "result" not in data:
            raise RpcProtocolError(
                "JSON-RPC response has neither result nor error",
                endpoint_url=safe_url,
                reason="decode_error",
            )

        logger.debug("RPC %s served by %s", request.method, safe_url)
        return data["result"]

"""X-Service-Key authentication middleware.

Endpoint control and RPC pass-through routes change shared routing state or
spend provider quota, so they require the configured service key. Health
endpoints (/health, /readiness, /metrics) are excluded from authentication.

Uses ``hmac.compare_digest`` for constant-time comparison.
"""

from __future__ import annotations

import hmac
import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from rpc_manager.middleware.error_handler import AuthenticationError, _envelope

logger = logging.getLogger(__name__)

# Paths that do NOT require authentication.
_PUBLIC_PATHS: set[str] = {"/health", "/readiness", "/metrics"}


class ServiceKeyAuthMiddleware(BaseHTTPMiddleware):
    """Starlette middleware that enforces X-Service-Key authentication."""

    def __init__(self, app, service_key: str) -> None:  # noqa: ANN001
        super().__init__(app)
        self._service_key = service_key

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in _PUBLIC_PATHS:
            return await call_next(request)

        provided_key = request.headers.get("x-service-key")
        if not provided_key or not hmac.compare_digest(provided_key, self._service_key):
            logger.warning(
                "Rejected request with %s X-Service-Key",
                "missing" if not provided_key else "invalid",
                extra={
                    "error_reason": "missing_service_key" if not provided_key else "invalid_service_key",
                },
            )
            return _envelope(
                status_code=AuthenticationError.status_code,
                error=AuthenticationError.message,
            )

        return await call_next(request)

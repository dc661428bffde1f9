"""Global error hierarchy and FastAPI exception handlers.

All manager-specific errors extend RpcManagerError. The FastAPI exception handlers
catch these errors (plus Pydantic's RequestValidationError and unhandled exceptions)
and return a consistent JSON envelope: { success, data, error, meta }.
"""

from __future__ import annotations

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Error hierarchy
# ---------------------------------------------------------------------------


class RpcManagerError(Exception):
    """Base error for all RPC manager errors."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, **kwargs: object) -> None:
        self.message = message or self.__class__.message
        self.details = kwargs
        super().__init__(self.message)

    @property
    def endpoint_url(self) -> str | None:
        """URL of the endpoint the failure was observed on, if any."""
        value = self.details.get("endpoint_url")
        return str(value) if value is not None else None


class AuthenticationError(RpcManagerError):
    """Invalid or missing service key."""

    status_code = 401
    message = "Invalid or missing service key"


class TransportError(RpcManagerError):
    """Connection failure, timeout, or non-2xx HTTP status from an endpoint."""

    status_code = 502
    message = "RPC endpoint unreachable"


class RpcProtocolError(RpcManagerError):
    """Malformed or error-coded JSON-RPC response."""

    status_code = 502
    message = "RPC endpoint returned an error"

    @property
    def code(self) -> int | None:
        value = self.details.get("code")
        return int(value) if isinstance(value, int) else None


class AllEndpointsUnhealthyError(RpcManagerError):
    """Retry budget exhausted with no healthy endpoint left in the pool."""

    status_code = 503
    message = "All RPC endpoints are unhealthy"


class InvalidEndpointError(RpcManagerError):
    """Rejected custom endpoint URL; the pool is left unchanged."""

    status_code = 422
    message = "Invalid RPC endpoint URL"


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------


def _envelope(
    status_code: int,
    error: str,
    meta: dict | None = None,
) -> JSONResponse:
    """Build a JSON envelope error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "data": None,
            "error": error,
            "meta": meta,
        },
    )


async def _manager_error_handler(_request: Request, exc: RpcManagerError) -> JSONResponse:
    """Handle RpcManagerError subclasses."""
    meta = {k: v for k, v in exc.details.items() if v is not None} or None
    return _envelope(exc.status_code, exc.message, meta=meta)


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle FastAPI / Pydantic RequestValidationError (422)."""
    field_errors = [
        {
            "field": " -> ".join(str(loc) for loc in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    return _envelope(
        status_code=422,
        error="Validation error",
        meta={"fields": field_errors},
    )


async def _unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions: log the traceback, return a generic 500."""
    logger.error(
        "Unhandled exception: %s\n%s",
        exc,
        traceback.format_exc(),
    )
    return _envelope(status_code=500, error="Internal server error")


# ---------------------------------------------------------------------------
# Registration helper
# ---------------------------------------------------------------------------


def register_error_handlers(app: FastAPI) -> None:
    """Wire up all exception handlers on the FastAPI application."""
    app.add_exception_handler(RpcManagerError, _manager_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)  # type: ignore[arg-type]

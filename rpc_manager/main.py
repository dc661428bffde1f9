"""FastAPI application factory with lifespan management.

Startup: configure logging, start the endpoint manager (health prober).
Shutdown: stop the prober, drain in-flight RPC calls, close the HTTP client.

Run with ``uvicorn --factory rpc_manager.main:create_app``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from rpc_manager.config.settings import RpcManagerSettings
from rpc_manager.logging_config import configure_logging
from rpc_manager.manager import RpcEndpointManager
from rpc_manager.middleware.auth import ServiceKeyAuthMiddleware
from rpc_manager.middleware.error_handler import register_error_handlers
from rpc_manager.middleware.request_id import RequestIdMiddleware
from rpc_manager.network.connectivity import (
    ConnectionType,
    ConnectivityMonitor,
    ConnectivityState,
)
from rpc_manager.routers.endpoints import create_endpoints_router
from rpc_manager.routers.health import create_health_router
from rpc_manager.routers.rpc import create_rpc_router

logger = logging.getLogger(__name__)


def create_app(
    settings: RpcManagerSettings | None = None,
    manager: RpcEndpointManager | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Loads ``RpcManagerSettings`` eagerly so that a missing
    ``RPC_MANAGER_SERVICE_KEY`` environment variable causes an immediate
    startup failure. A server host has no platform connectivity monitor, so
    the default manager starts in the connected state.
    """
    settings = settings or RpcManagerSettings()  # type: ignore[call-arg]
    if manager is None:
        connectivity = ConnectivityMonitor(
            ConnectivityState(is_connected=True, connection_type=ConnectionType.ETHERNET)
        )
        manager = RpcEndpointManager.from_settings(settings, connectivity=connectivity)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        configure_logging(settings.log_level)
        logger.info("Starting RPC manager service on port %d", settings.port)
        await manager.start()

        yield

        logger.info("Shutting down RPC manager service…")
        await manager.stop()
        logger.info("RPC manager service shut down")

    app = FastAPI(
        title="RPC Endpoint Manager",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.manager = manager

    register_error_handlers(app)

    # Starlette applies middleware in reverse order of add_middleware calls
    app.add_middleware(ServiceKeyAuthMiddleware, service_key=settings.service_key)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(create_health_router(manager=manager))
    app.include_router(create_endpoints_router(manager=manager))
    app.include_router(create_rpc_router(manager=manager))

    return app

"""Pydantic Settings for the RPC endpoint manager.

All environment variables use the RPC_MANAGER_ prefix.
Example: RPC_MANAGER_PORT=8002, RPC_MANAGER_SERVICE_KEY=my-secret-key
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_ENDPOINT_URL = "https://api.mainnet-beta.solana.com"


class RpcManagerSettings(BaseSettings):
    """RPC manager configuration validated from environment variables."""

    # Service
    port: int = 8002
    service_key: str  # X-Service-Key for the ops API
    log_level: str = "INFO"

    # Endpoint pool seeding
    endpoints: list[str] = []  # Extra endpoint URLs, in priority order
    endpoints_path: str | None = None  # Optional YAML seed file
    alchemy_api_key: str | None = None
    helius_api_key: str | None = None
    default_endpoint_url: str = DEFAULT_ENDPOINT_URL

    # Health bookkeeping
    failure_threshold: int = Field(default=3, ge=1)
    latency_ema_weight: float = Field(default=0.3, gt=0.0, le=1.0)

    # Dispatcher
    max_retries: int = Field(default=2, ge=0, le=10)
    request_timeout_seconds: float = Field(default=10.0, gt=0.0)
    backoff_base_seconds: float = Field(default=0.25, ge=0.0)
    backoff_factor: float = Field(default=2.0, ge=1.0)

    # Health prober
    probe_interval_seconds: float = Field(default=30.0, gt=0.0)
    probe_jitter_seconds: float = Field(default=5.0, ge=0.0)
    probe_timeout_seconds: float = Field(default=5.0, gt=0.0)
    probe_method: str = "getBlockHeight"

    # Transport
    max_connections: int = Field(default=50, ge=1)

    # Shutdown
    graceful_shutdown_seconds: int = Field(default=30, ge=0)

    model_config = {"env_prefix": "RPC_MANAGER_"}

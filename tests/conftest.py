"""Shared test fixtures and hypothesis strategies for the RPC manager test suite."""

from __future__ import annotations

import os
from collections.abc import Callable

import pytest
from hypothesis import strategies as st

from rpc_manager.config.settings import RpcManagerSettings
from rpc_manager.manager import RpcEndpointManager
from rpc_manager.network.connectivity import ConnectivityMonitor
from rpc_manager.registry.registry import EndpointRegistry
from rpc_manager.registry.types import Endpoint
from rpc_manager.testing import FakeTransport, Handler, RecordingSleep

FIXED_NOW = 1_700_000_000.0


# ---------------------------------------------------------------------------
# Ensure required env vars are set for RpcManagerSettings in tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _set_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set minimal env vars so RpcManagerSettings can be instantiated in tests."""
    if "RPC_MANAGER_SERVICE_KEY" not in os.environ:
        monkeypatch.setenv("RPC_MANAGER_SERVICE_KEY", "test-key")


# ---------------------------------------------------------------------------
# Settings fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> RpcManagerSettings:
    """Test settings with the production policy defaults."""
    return RpcManagerSettings(service_key="test-key")


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------

def make_endpoints(*urls: str) -> list[Endpoint]:
    return [Endpoint(url=url, priority=i, name=f"rpc{i + 1}") for i, url in enumerate(urls)]


@pytest.fixture
def three_endpoints() -> list[Endpoint]:
    return make_endpoints("https://a.example", "https://b.example", "https://c.example")


@pytest.fixture
def registry(three_endpoints: list[Endpoint]) -> EndpointRegistry:
    return EndpointRegistry(three_endpoints, clock=lambda: FIXED_NOW)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def connectivity() -> ConnectivityMonitor:
    monitor = ConnectivityMonitor()
    monitor.set_connected()
    return monitor


@pytest.fixture
def manager_factory(
    settings: RpcManagerSettings,
    recording_sleep: RecordingSleep,
    connectivity: ConnectivityMonitor,
) -> Callable[..., tuple[RpcEndpointManager, FakeTransport]]:
    """Build a manager over fake endpoints: ``factory(urls, handlers)``."""

    def factory(
        urls: list[str],
        handlers: dict[str, Handler] | None = None,
        **overrides: object,
    ) -> tuple[RpcEndpointManager, FakeTransport]:
        transport = FakeTransport(handlers)
        manager_settings = settings.model_copy(update=overrides) if overrides else settings
        manager = RpcEndpointManager(
            make_endpoints(*urls),
            transport=transport,
            settings=manager_settings,
            connectivity=connectivity,
            clock=lambda: FIXED_NOW,
            sleep=recording_sleep,
        )
        return manager, transport

    return factory


# ---------------------------------------------------------------------------
# Hypothesis strategies (reusable across property tests)
# ---------------------------------------------------------------------------

# 1-8 unique endpoint URLs
endpoint_url_lists = st.integers(min_value=1, max_value=8).flatmap(
    lambda n: st.lists(
        st.integers(min_value=1, max_value=999).map(lambda i: f"https://rpc{i}.example"),
        min_size=n,
        max_size=n,
        unique=True,
    )
)

# Success/failure event sequences (True = success)
outcome_sequences = st.lists(st.booleans(), min_size=1, max_size=50)

# Plausible latency samples in milliseconds
latency_samples = st.floats(min_value=0.0, max_value=30_000.0, allow_nan=False, allow_infinity=False)

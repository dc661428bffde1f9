"""Unit tests for the background health prober."""

import asyncio
import random

import pytest

from rpc_manager.network.connectivity import ConnectivityMonitor
from rpc_manager.prober.health_prober import HealthProber
from rpc_manager.registry.registry import EndpointRegistry
from rpc_manager.registry.types import Endpoint
from rpc_manager.testing import FakeTransport, RecordingSleep, fail_rpc, fail_transport

RPC1 = "https://rpc1.example"
RPC2 = "https://rpc2.example"
RPC3 = "https://rpc3.example"


def _registry() -> EndpointRegistry:
    return EndpointRegistry(
        [Endpoint(url=u, priority=i) for i, u in enumerate([RPC1, RPC2, RPC3])],
        clock=lambda: 1000.0,
    )


class TestRunOnce:
    """Test a single probe round."""

    @pytest.mark.asyncio
    async def test_records_outcomes_for_every_endpoint(self):
        registry = _registry()
        transport = FakeTransport({RPC2: fail_transport(), RPC3: fail_rpc()})
        prober = HealthProber(registry=registry, transport=transport)

        outcomes = await prober.run_once()

        assert outcomes == {RPC1: True, RPC2: False, RPC3: False}
        assert registry.get(RPC1).success_count == 1
        assert registry.get(RPC2).consecutive_failures == 1
        assert registry.get(RPC3).last_error == "RPC error -32005: Node is behind"
        assert prober.rounds_completed == 1

    @pytest.mark.asyncio
    async def test_uses_probe_method(self):
        transport = FakeTransport()
        prober = HealthProber(registry=_registry(), transport=transport, probe_method="getHealth")
        await prober.run_once()
        assert {method for _, method in transport.calls} == {"getHealth"}

    @pytest.mark.asyncio
    async def test_probes_override_endpoint(self):
        registry = _registry()
        registry.set_override("https://custom.example")
        transport = FakeTransport()
        prober = HealthProber(registry=registry, transport=transport)

        outcomes = await prober.run_once()

        assert "https://custom.example" in outcomes
        assert registry.current().url == "https://custom.example"

    @pytest.mark.asyncio
    async def test_never_moves_pointer(self):
        registry = _registry()
        transport = FakeTransport(default=fail_transport())
        prober = HealthProber(registry=registry, transport=transport)
        for _ in range(4):
            await prober.run_once()
        assert registry.current().url == RPC1
        assert registry.has_healthy_endpoint() is False

    @pytest.mark.asyncio
    async def test_probe_timeout_is_a_failure(self):
        registry = _registry()
        transport = FakeTransport(delay=5.0)
        prober = HealthProber(registry=registry, transport=transport, probe_timeout_seconds=0.01)

        outcomes = await prober.run_once()

        assert set(outcomes.values()) == {False}
        assert registry.get(RPC1).last_error == "Probe timed out after 0.01s"

    @pytest.mark.asyncio
    async def test_skips_round_while_offline(self):
        registry = _registry()
        connectivity = ConnectivityMonitor()
        connectivity.set_disconnected()
        transport = FakeTransport()
        prober = HealthProber(registry=registry, transport=transport, connectivity=connectivity)

        assert await prober.run_once() == {}
        assert transport.calls == []
        assert prober.rounds_completed == 0

        connectivity.set_connected()
        assert len(await prober.run_once()) == 3


class TestSchedule:
    """Test jittered scheduling."""

    def test_next_delay_within_jitter_bounds(self):
        prober = HealthProber(
            registry=_registry(),
            transport=FakeTransport(),
            interval_seconds=30.0,
            jitter_seconds=5.0,
            rng=random.Random(42),
        )
        delays = [prober.next_delay() for _ in range(200)]
        assert all(25.0 <= d <= 35.0 for d in delays)
        assert len(set(delays)) > 1

    def test_next_delay_never_negative(self):
        prober = HealthProber(
            registry=_registry(),
            transport=FakeTransport(),
            interval_seconds=1.0,
            jitter_seconds=5.0,
            rng=random.Random(7),
        )
        assert all(prober.next_delay() >= 0.0 for _ in range(200))


class TestLifecycle:
    """Test start/stop of the background loop."""

    @pytest.mark.asyncio
    async def test_start_runs_rounds_and_stop_cancels(self):
        sleep = RecordingSleep()
        prober = HealthProber(
            registry=_registry(),
            transport=FakeTransport(),
            interval_seconds=30.0,
            jitter_seconds=0.0,
            sleep=sleep,
        )

        prober.start()
        assert prober.is_running is True
        for _ in range(50):
            await asyncio.sleep(0)
        await prober.stop()

        assert prober.is_running is False
        assert prober.rounds_completed >= 1
        assert sleep.delays[0] == 30.0

    @pytest.mark.asyncio
    async def test_first_round_runs_before_any_sleep(self):
        delays = []
        never = asyncio.Event()

        async def blocking_sleep(delay):
            delays.append(delay)
            await never.wait()

        transport = FakeTransport()
        prober = HealthProber(
            registry=_registry(),
            transport=transport,
            interval_seconds=30.0,
            jitter_seconds=0.0,
            sleep=blocking_sleep,
        )

        prober.start()
        for _ in range(20):
            await asyncio.sleep(0)

        assert prober.rounds_completed == 1
        assert sorted(url for url, _ in transport.calls) == [RPC1, RPC2, RPC3]
        assert delays == [30.0]
        await prober.stop()

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self):
        prober = HealthProber(registry=_registry(), transport=FakeTransport())
        prober.start()
        first = prober._task
        prober.start()
        assert prober._task is first
        await prober.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        prober = HealthProber(registry=_registry(), transport=FakeTransport())
        await prober.stop()
        assert prober.is_running is False

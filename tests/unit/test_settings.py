"""Unit tests for RpcManagerSettings and endpoint seeding."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from rpc_manager import config as config_package
from rpc_manager.config.endpoints import (
    ALCHEMY_URL_TEMPLATE,
    EndpointSeed,
    build_endpoint_pool,
    build_endpoint_seeds,
    load_endpoint_seeds,
)
from rpc_manager.config.settings import DEFAULT_ENDPOINT_URL, RpcManagerSettings
from rpc_manager.registry.types import EndpointType


class TestRpcManagerSettings:
    """Test settings defaults and env loading."""

    def test_defaults(self):
        settings = RpcManagerSettings(service_key="k")
        assert settings.port == 8002
        assert settings.failure_threshold == 3
        assert settings.max_retries == 2
        assert settings.backoff_base_seconds == 0.25
        assert settings.backoff_factor == 2.0
        assert settings.request_timeout_seconds == 10.0
        assert settings.probe_interval_seconds == 30.0
        assert settings.probe_jitter_seconds == 5.0
        assert settings.probe_timeout_seconds == 5.0
        assert settings.probe_method == "getBlockHeight"
        assert settings.default_endpoint_url == DEFAULT_ENDPOINT_URL
        assert settings.endpoints == []

    def test_reads_env_prefix(self, monkeypatch):
        monkeypatch.setenv("RPC_MANAGER_SERVICE_KEY", "from-env")
        monkeypatch.setenv("RPC_MANAGER_FAILURE_THRESHOLD", "5")
        monkeypatch.setenv("RPC_MANAGER_ENDPOINTS", '["https://a.example", "https://b.example"]')
        settings = RpcManagerSettings()
        assert settings.service_key == "from-env"
        assert settings.failure_threshold == 5
        assert settings.endpoints == ["https://a.example", "https://b.example"]

    def test_service_key_required(self, monkeypatch):
        monkeypatch.delenv("RPC_MANAGER_SERVICE_KEY", raising=False)
        with pytest.raises(ValidationError):
            RpcManagerSettings()

    @pytest.mark.parametrize(
        "field,value",
        [("failure_threshold", 0), ("latency_ema_weight", 0.0), ("backoff_factor", 0.5)],
    )
    def test_rejects_out_of_range(self, field, value):
        with pytest.raises(ValidationError):
            RpcManagerSettings(service_key="k", **{field: value})


class TestLoadEndpointSeeds:
    """Test the YAML seed loader."""

    def test_missing_file(self, tmp_path):
        assert load_endpoint_seeds(str(tmp_path / "nope.yaml")) == []

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "endpoints.yaml"
        path.write_text("endpoints: [unclosed", encoding="utf-8")
        assert load_endpoint_seeds(str(path)) == []

    def test_missing_endpoints_key(self, tmp_path):
        path = tmp_path / "endpoints.yaml"
        path.write_text("other: 1\n", encoding="utf-8")
        assert load_endpoint_seeds(str(path)) == []

    def test_parses_entries_and_skips_invalid(self, tmp_path):
        path = tmp_path / "endpoints.yaml"
        path.write_text(
            "endpoints:\n"
            "  - name: Triton\n"
            "    url: https://triton.example\n"
            "    type: primary\n"
            "  - name: Broken\n"
            "    url: ftp://nope.example\n"
            "  - name: NoUrl\n"
            "  - url: https://plain.example\n",
            encoding="utf-8",
        )
        seeds = load_endpoint_seeds(str(path))
        assert [s.url for s in seeds] == ["https://triton.example", "https://plain.example"]
        assert seeds[0].type == EndpointType.PRIMARY
        assert seeds[1].type == EndpointType.FALLBACK

    def test_packaged_example_file(self):
        path = Path(config_package.__file__).parent / "endpoints.example.yaml"
        seeds = load_endpoint_seeds(str(path))
        assert [s.name for s in seeds] == ["Triton", "QuickNode", "Ankr"]

    def test_orders_by_priority_then_file_order(self, tmp_path):
        path = tmp_path / "endpoints.yaml"
        path.write_text(
            "endpoints:\n"
            "  - url: https://late.example\n"
            "    priority: 9\n"
            "  - url: https://first.example\n"
            "  - url: https://second.example\n"
            "    priority: 0\n",
            encoding="utf-8",
        )
        seeds = load_endpoint_seeds(str(path))
        assert [s.url for s in seeds] == [
            "https://first.example",
            "https://second.example",
            "https://late.example",
        ]


class TestBuildEndpointSeeds:
    """Test seed ordering across sources."""

    def test_default_only(self):
        seeds = build_endpoint_seeds(RpcManagerSettings(service_key="k"))
        assert [s.url for s in seeds] == [DEFAULT_ENDPOINT_URL]
        assert seeds[0].name == "Public RPC"

    def test_keyed_providers_first(self, tmp_path):
        path = tmp_path / "endpoints.yaml"
        path.write_text("endpoints:\n  - url: https://yaml.example\n", encoding="utf-8")
        settings = RpcManagerSettings(
            service_key="k",
            alchemy_api_key="alchemy-key",
            helius_api_key="helius-key",
            endpoints_path=str(path),
            endpoints=["https://env.example", "not a url"],
        )
        seeds = build_endpoint_seeds(settings)
        assert [s.name for s in seeds[:2]] == ["Alchemy", "Helius"]
        assert seeds[0].url == ALCHEMY_URL_TEMPLATE.format(key="alchemy-key")
        assert [s.url for s in seeds[2:]] == [
            "https://yaml.example",
            "https://env.example",
            DEFAULT_ENDPOINT_URL,
        ]


class TestBuildEndpointPool:
    """Test conversion of seeds to registry endpoints."""

    def test_dedupes_and_assigns_priorities(self):
        pool = build_endpoint_pool([
            EndpointSeed(url="https://a.example", name="A", type=EndpointType.PRIMARY),
            EndpointSeed(url="https://b.example"),
            EndpointSeed(url="https://a.example", name="dup"),
        ])
        assert [(e.url, e.priority) for e in pool] == [("https://a.example", 0), ("https://b.example", 1)]
        assert pool[0].name == "A"
        assert pool[0].endpoint_type == EndpointType.PRIMARY

    def test_default_name_is_redacted_url(self):
        pool = build_endpoint_pool([EndpointSeed(url="https://rpc.example/?api-key=secret")])
        assert "secret" not in pool[0].name

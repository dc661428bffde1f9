"""Property tests for custom endpoint URL validation."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from rpc_manager.middleware.error_handler import InvalidEndpointError
from rpc_manager.transport.client import redact_url
from rpc_manager.validators.url_validator import is_valid_endpoint_url, validate_endpoint_url


# --- Strategies ---

hosts = st.from_regex(r"[a-z]{1,12}(\.[a-z]{2,8}){1,3}", fullmatch=True)
schemes = st.sampled_from(["http", "https", "HTTPS"])
bad_schemes = st.sampled_from(["ftp", "ws", "wss", "file", "mailto", "javascript"])
ports = st.one_of(st.none(), st.integers(min_value=1, max_value=65535))
paths = st.from_regex(r"(/[a-z0-9_-]{1,12}){0,3}", fullmatch=True)
padding = st.sampled_from(["", " ", "  ", "\t"])
keys = st.text(min_size=24, max_size=48, alphabet="ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789")


def _url(scheme: str, host: str, port: int | None, path: str) -> str:
    return f"{scheme}://{host}{f':{port}' if port else ''}{path}"


@settings(max_examples=100)
@given(scheme=schemes, host=hosts, port=ports, path=paths, pad=padding)
def test_well_formed_urls_accepted(scheme: str, host: str, port: int | None, path: str, pad: str) -> None:
    url = _url(scheme, host, port, path)
    assert is_valid_endpoint_url(pad + url + pad)
    assert validate_endpoint_url(pad + url + pad) == url


@settings(max_examples=100)
@given(scheme=bad_schemes, host=hosts, path=paths)
def test_other_schemes_rejected(scheme: str, host: str, path: str) -> None:
    url = _url(scheme, host, None, path)
    assert not is_valid_endpoint_url(url)
    with pytest.raises(InvalidEndpointError):
        validate_endpoint_url(url)


@settings(max_examples=100)
@given(host=hosts, port=st.integers(min_value=65536, max_value=10_000_000))
def test_out_of_range_ports_rejected(host: str, port: int) -> None:
    assert not is_valid_endpoint_url(f"https://{host}:{port}")


@settings(max_examples=100)
@given(text=st.text(max_size=40))
def test_validator_never_raises_unexpectedly(text: str) -> None:
    """Arbitrary text is either accepted or rejected with InvalidEndpointError."""
    try:
        validate_endpoint_url(text)
    except InvalidEndpointError:
        assert not is_valid_endpoint_url(text)


@settings(max_examples=100)
@given(host=hosts, key=keys)
def test_redaction_hides_embedded_keys(host: str, key: str) -> None:
    for url in (f"https://{host}/v2/{key}", f"https://{host}/?api-key={key}"):
        assert key not in redact_url(url)

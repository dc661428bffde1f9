"""URL validation for user-supplied RPC endpoints."""

from __future__ import annotations

from urllib.parse import urlparse

from rpc_manager.middleware.error_handler import InvalidEndpointError

_ALLOWED_SCHEMES = {"http", "https"}


def is_valid_endpoint_url(url: str) -> bool:
    """Return ``True`` if *url* is a well-formed http(s) endpoint URL."""
    if not url or not url.strip():
        return False
    candidate = url.strip()
    if any(ch.isspace() for ch in candidate):
        return False
    try:
        parsed = urlparse(candidate)
        if parsed.scheme.lower() not in _ALLOWED_SCHEMES:
            return False
        if not parsed.hostname:
            return False
        # Accessing .port validates the port component
        parsed.port
    except ValueError:
        return False
    return True


def validate_endpoint_url(url: str) -> str:
    """Return the normalized *url* or raise :class:`InvalidEndpointError`."""
    if not is_valid_endpoint_url(url):
        raise InvalidEndpointError(
            f"Invalid RPC endpoint URL: {url!r}",
            url=url,
        )
    return url.strip()

"""Endpoint rotation policy and user override control.

Rotation walks the pool in priority order starting after the current
endpoint, wrapping around, and picks the first endpoint still below the
failure threshold. When every endpoint is unhealthy it falls back to the one
with the fewest consecutive failures (then lowest average latency, then the
one that failed longest ago).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from rpc_manager.registry.registry import EndpointRegistry
from rpc_manager.registry.types import Endpoint
from rpc_manager.validators.url_validator import validate_endpoint_url

logger = logging.getLogger(__name__)


def choose_next_index(endpoints: Sequence[Endpoint], current_index: int, threshold: int) -> int:
    """Return the index rotation should move to from *current_index*."""
    size = len(endpoints)
    for step in range(1, size + 1):
        candidate = (current_index + step) % size
        if endpoints[candidate].is_healthy(threshold):
            return candidate

    return min(
        range(size),
        key=lambda i: (
            endpoints[i].consecutive_failures,
            endpoints[i].average_latency_ms,
            endpoints[i].last_failure_at or 0.0,
            i,
        ),
    )


class EndpointSelector:
    """Rotation and override operations on top of an :class:`EndpointRegistry`."""

    def __init__(self, registry: EndpointRegistry) -> None:
        self._registry = registry

    def _choose(self, endpoints: Sequence[Endpoint], current_index: int) -> int:
        return choose_next_index(endpoints, current_index, self._registry.failure_threshold)

    def switch_to_next_endpoint(self) -> Endpoint:
        """Clear any override and advance to the next healthy endpoint."""
        current = self._registry.rotate(self._choose, clear_override=True)
        assert current is not None
        return current

    def set_custom_endpoint(self, url: str) -> Endpoint:
        """Validate *url* and pin it as the user override.

        Raises ``InvalidEndpointError`` (leaving the pool untouched) when the
        URL is malformed.
        """
        normalized = validate_endpoint_url(url)
        return self._registry.set_override(normalized)

    def clear_override(self) -> Endpoint:
        return self._registry.clear_override()

    def record_failure(self, failed_url: str, reason: str | None = None) -> Endpoint | None:
        """Record a dispatcher failure and rotate away from *failed_url* in one step.

        Returns the new current endpoint, or ``None`` when the pointer stayed
        put (override pinned, pointer already moved, or no other candidate).
        """
        moved = self._registry.record_failure(failed_url, reason, failover=self._choose)
        if moved is not None:
            logger.info(
                "Failover from %s to %s",
                failed_url,
                moved.url,
                extra={"endpoint_url": moved.url},
            )
        return moved

    def failover(self, failed_url: str) -> Endpoint | None:
        """Rotate away from *failed_url* after a dispatcher failure.

        Does nothing when a user override is pinned, or when the pointer has
        already moved off *failed_url*.
        """
        rotated = self._registry.rotate(
            self._choose,
            expected_url=failed_url,
            skip_if_override=True,
        )
        if rotated is not None and rotated.url != failed_url:
            logger.info(
                "Failover from %s to %s",
                failed_url,
                rotated.url,
                extra={"endpoint_url": rotated.url},
            )
        return rotated

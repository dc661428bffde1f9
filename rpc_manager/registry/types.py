"""Endpoint data models for the endpoint registry."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

DEFAULT_FAILURE_THRESHOLD = 3

# Latency tier boundaries in milliseconds
FAST_LATENCY_MS = 500.0
SLOW_LATENCY_MS = 2000.0


class EndpointType(str, Enum):
    """Where an endpoint came from."""

    PRIMARY = "primary"  # Keyed, high-quality provider
    FALLBACK = "fallback"  # Free public RPC
    CUSTOM = "custom"  # User-provided override


class LatencyTier(str, Enum):
    """Coarse latency classification reported in stats."""

    UNKNOWN = "unknown"
    FAST = "fast"
    SLOW = "slow"
    SLUGGISH = "sluggish"


@dataclass
class Endpoint:
    """A single JSON-RPC endpoint with live health metadata."""

    url: str
    priority: int
    name: str = ""
    endpoint_type: EndpointType = EndpointType.FALLBACK
    consecutive_failures: int = 0
    average_latency_ms: float = 0.0
    last_checked_at: float | None = None
    last_failure_at: float | None = None
    last_error: str | None = None
    is_user_override: bool = False
    success_count: int = 0
    failure_count: int = 0

    def is_healthy(self, threshold: int = DEFAULT_FAILURE_THRESHOLD) -> bool:
        """Return ``True`` while the endpoint is eligible for normal rotation."""
        return self.consecutive_failures < threshold

    @property
    def latency_tier(self) -> LatencyTier:
        if self.success_count == 0:
            return LatencyTier.UNKNOWN
        if self.average_latency_ms < FAST_LATENCY_MS:
            return LatencyTier.FAST
        if self.average_latency_ms < SLOW_LATENCY_MS:
            return LatencyTier.SLOW
        return LatencyTier.SLUGGISH

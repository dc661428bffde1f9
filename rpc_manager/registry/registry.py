"""Endpoint registry: the ordered pool of RPC endpoints and the current pointer.

The registry is the only owner of mutable routing state. The health prober and
the request dispatcher write metrics through ``record_success`` /
``record_failure``; the selector moves the current pointer through ``rotate``,
``set_override`` and ``clear_override``. A dispatcher failure and the failover
it triggers land as one update through ``record_failure(..., failover=...)``.

All state sits behind a single ``threading.Lock``. Critical sections are short
in-memory updates; no network I/O ever happens while the lock is held, and
listeners are notified only after it is released. Listeners run synchronously
on the thread that made the change; the network health channel hands values
over to its subscribers' event loop, so mutations may come from any thread.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import replace

from rpc_manager.registry.types import DEFAULT_FAILURE_THRESHOLD, Endpoint, EndpointType

logger = logging.getLogger(__name__)

# Chooses the new current index given the live pool and the current index.
IndexChooser = Callable[[Sequence[Endpoint], int], int]
RegistryListener = Callable[[], None]


class EndpointRegistry:
    """Thread-safe pool of endpoints with a sticky current pointer.

    Args:
        endpoints: Seed endpoints. Duplicates (by url) are dropped, the rest are
            kept in ascending ``priority`` order. Must not be empty.
        failure_threshold: Consecutive failures at which an endpoint leaves
            normal rotation.
        latency_ema_weight: Weight of the newest sample in the latency EMA.
        clock: Wall-clock source for ``last_checked_at`` stamps.
    """

    def __init__(
        self,
        endpoints: Sequence[Endpoint],
        *,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        latency_ema_weight: float = 0.3,
        clock: Callable[[], float] = time.time,
    ) -> None:
        unique: dict[str, Endpoint] = {}
        for endpoint in endpoints:
            unique.setdefault(endpoint.url, replace(endpoint))
        if not unique:
            raise ValueError("Endpoint pool must contain at least one endpoint")

        self._endpoints: list[Endpoint] = sorted(unique.values(), key=lambda e: e.priority)
        self._index = 0
        self._failure_threshold = failure_threshold
        self._ema_weight = latency_ema_weight
        self._clock = clock
        self._lock = threading.Lock()
        self._listeners: list[RegistryListener] = []

        # Override bookkeeping
        self._override_url: str | None = None
        self._override_inserted = False
        self._url_before_override: str | None = None

        logger.info("Endpoint registry initialized with %d endpoints", len(self._endpoints))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def failure_threshold(self) -> int:
        return self._failure_threshold

    @property
    def override_url(self) -> str | None:
        with self._lock:
            return self._override_url

    def list(self) -> list[Endpoint]:
        """Return a snapshot of the pool in priority order."""
        with self._lock:
            return [replace(e) for e in self._endpoints]

    def current(self) -> Endpoint:
        """Return a snapshot of the current endpoint."""
        with self._lock:
            return replace(self._endpoints[self._index])

    def get(self, url: str) -> Endpoint | None:
        with self._lock:
            endpoint = self._find_locked(url)
            return replace(endpoint) if endpoint is not None else None

    def has_healthy_endpoint(self, *, exclude_url: str | None = None) -> bool:
        """Return ``True`` if any endpoint (other than *exclude_url*) is healthy."""
        with self._lock:
            return any(
                e.is_healthy(self._failure_threshold)
                for e in self._endpoints
                if e.url != exclude_url
            )

    # ------------------------------------------------------------------
    # Health metrics
    # ------------------------------------------------------------------

    def record_success(self, url: str, latency_ms: float) -> None:
        """Zero the failure streak and fold *latency_ms* into the latency EMA."""
        with self._lock:
            endpoint = self._find_locked(url)
            if endpoint is None:
                logger.debug("Ignoring success for unknown endpoint %s", url)
                return
            if endpoint.success_count == 0:
                endpoint.average_latency_ms = float(latency_ms)
            else:
                endpoint.average_latency_ms = (
                    self._ema_weight * float(latency_ms)
                    + (1.0 - self._ema_weight) * endpoint.average_latency_ms
                )
            recovered = not endpoint.is_healthy(self._failure_threshold)
            endpoint.consecutive_failures = 0
            endpoint.success_count += 1
            endpoint.last_checked_at = self._clock()
        if recovered:
            logger.info("Endpoint recovered: %s", url, extra={"endpoint_url": url})
        self._notify()

    def record_failure(
        self,
        url: str,
        reason: str | None = None,
        *,
        failover: IndexChooser | None = None,
    ) -> Endpoint | None:
        """Extend the failure streak of *url*.

        With *failover*, the pointer also moves to the index it picks, under
        the same lock and behind a single listener notification, provided the
        pointer still sits on *url* and no override is pinned. Returns the new
        current endpoint when the pointer moved, else ``None``.
        """
        with self._lock:
            endpoint = self._find_locked(url)
            if endpoint is None:
                logger.debug("Ignoring failure for unknown endpoint %s", url)
                return None
            now = self._clock()
            endpoint.consecutive_failures += 1
            endpoint.failure_count += 1
            endpoint.last_checked_at = now
            endpoint.last_failure_at = now
            endpoint.last_error = reason
            failures = endpoint.consecutive_failures

            moved: Endpoint | None = None
            if (
                failover is not None
                and self._override_url is None
                and self._endpoints[self._index].url == url
            ):
                self._index = failover(self._endpoints, self._index)
                if self._endpoints[self._index].url != url:
                    moved = replace(self._endpoints[self._index])
        if failures == self._failure_threshold:
            logger.warning(
                "Endpoint marked unhealthy: %s (consecutive failures: %d)",
                url,
                failures,
                extra={"endpoint_url": url, "error_reason": reason},
            )
        if moved is not None:
            logger.info(
                "Switched endpoint %s -> %s",
                url,
                moved.url,
                extra={"endpoint_url": moved.url},
            )
        self._notify()
        return moved

    # ------------------------------------------------------------------
    # Pointer movement
    # ------------------------------------------------------------------

    def rotate(
        self,
        choose: IndexChooser,
        *,
        expected_url: str | None = None,
        clear_override: bool = False,
        skip_if_override: bool = False,
    ) -> Endpoint | None:
        """Move the current pointer to the index picked by *choose*.

        Returns the new current endpoint, or ``None`` when the rotation was
        skipped: the pointer no longer sits on *expected_url* (another caller
        already rotated away), or an override is active and
        *skip_if_override* is set.
        """
        with self._lock:
            if skip_if_override and self._override_url is not None:
                return None
            if expected_url is not None and self._endpoints[self._index].url != expected_url:
                return None
            previous = self._endpoints[self._index].url
            if clear_override:
                self._clear_override_locked()
            self._index = choose(self._endpoints, self._index)
            current = replace(self._endpoints[self._index])
        if current.url != previous:
            logger.info(
                "Switched endpoint %s -> %s",
                previous,
                current.url,
                extra={"endpoint_url": current.url},
            )
        self._notify()
        return current

    def set_override(self, url: str, name: str = "Custom") -> Endpoint:
        """Pin the current pointer to *url*, inserting it if absent."""
        with self._lock:
            if self._override_url == url:
                return replace(self._endpoints[self._index])
            before = (
                self._url_before_override
                if self._override_url is not None
                else self._endpoints[self._index].url
            )
            self._clear_override_locked()

            endpoint = self._find_locked(url)
            if endpoint is None:
                endpoint = Endpoint(
                    url=url,
                    priority=max(e.priority for e in self._endpoints) + 1,
                    name=name,
                    endpoint_type=EndpointType.CUSTOM,
                )
                self._endpoints.append(endpoint)
                self._override_inserted = True
            endpoint.is_user_override = True
            self._override_url = url
            self._url_before_override = before
            self._index = self._endpoints.index(endpoint)
            pinned = replace(endpoint)
        logger.info("Endpoint override set: %s", url, extra={"endpoint_url": url})
        self._notify()
        return pinned

    def clear_override(self) -> Endpoint:
        """Drop the override and return to the endpoint that preceded it."""
        with self._lock:
            had_override = self._override_url is not None
            self._clear_override_locked()
            current = replace(self._endpoints[self._index])
        if had_override:
            logger.info("Endpoint override cleared, current: %s", current.url)
            self._notify()
        return current

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: RegistryListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: RegistryListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def get_stats(self) -> dict:
        """Return pool statistics for the health endpoints."""
        with self._lock:
            endpoints = [replace(e) for e in self._endpoints]
            current_url = self._endpoints[self._index].url
            override_url = self._override_url

        healthy = sum(1 for e in endpoints if e.is_healthy(self._failure_threshold))
        return {
            "total": len(endpoints),
            "healthy": healthy,
            "unhealthy": len(endpoints) - healthy,
            "current": current_url,
            "override": override_url,
            "endpoints": [
                {
                    "url": e.url,
                    "name": e.name,
                    "type": e.endpoint_type.value,
                    "priority": e.priority,
                    "is_healthy": e.is_healthy(self._failure_threshold),
                    "is_user_override": e.is_user_override,
                    "consecutive_failures": e.consecutive_failures,
                    "average_latency_ms": round(e.average_latency_ms, 2),
                    "latency_tier": e.latency_tier.value,
                    "last_checked_at": e.last_checked_at,
                    "last_error": e.last_error,
                    "success_count": e.success_count,
                    "failure_count": e.failure_count,
                }
                for e in endpoints
            ],
        }

    # ------------------------------------------------------------------
    # Internals (caller holds the lock)
    # ------------------------------------------------------------------

    def _find_locked(self, url: str) -> Endpoint | None:
        for endpoint in self._endpoints:
            if endpoint.url == url:
                return endpoint
        return None

    def _clear_override_locked(self) -> None:
        if self._override_url is None:
            return
        endpoint = self._find_locked(self._override_url)
        if endpoint is not None:
            if self._override_inserted:
                self._endpoints.remove(endpoint)
            else:
                endpoint.is_user_override = False

        restore = self._find_locked(self._url_before_override or "")
        self._index = self._endpoints.index(restore) if restore is not None else 0
        self._override_url = None
        self._override_inserted = False
        self._url_before_override = None

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:  # noqa: BLE001
                logger.exception("Registry listener failed")

"""Latest-value broadcast channel.

Each subscriber gets its own single-slot queue: it receives the current value
as soon as it starts iterating, then every later value. A slow subscriber only
ever sees the newest value (intermediate values are conflated), and never sees
the same value twice in a row. Publishing a value equal to the current one is
a no-op.

``publish`` may be called from any thread. Delivery to a subscriber always
happens on the event loop that subscriber iterates on.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import AsyncIterator
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UNSET = object()


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class LatestValueBroadcaster(Generic[T]):
    """Multicast of a changing value with replay-latest-on-subscribe."""

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._lock = threading.Lock()
        self._subscribers: dict[asyncio.Queue[T], asyncio.AbstractEventLoop] = {}

    @property
    def value(self) -> T:
        return self._value

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, value: T) -> bool:
        """Set the current value; return ``True`` if it changed."""
        with self._lock:
            if value == self._value:
                return False
            self._value = value
            subscribers = list(self._subscribers.items())

        caller_loop = _running_loop()
        for queue, loop in subscribers:
            if loop is caller_loop:
                self._offer(queue, value)
                continue
            try:
                loop.call_soon_threadsafe(self._offer, queue, value)
            except RuntimeError:
                logger.debug("Dropping subscriber on a closed event loop")
                with self._lock:
                    self._subscribers.pop(queue, None)
        return True

    async def subscribe(self) -> AsyncIterator[T]:
        """Yield the current value, then each subsequent change, forever."""
        queue: asyncio.Queue[T] = asyncio.Queue(maxsize=1)
        with self._lock:
            queue.put_nowait(self._value)
            self._subscribers[queue] = asyncio.get_running_loop()
        last: object = _UNSET
        try:
            while True:
                value = await queue.get()
                if value == last:
                    continue
                last = value
                yield value
        finally:
            with self._lock:
                self._subscribers.pop(queue, None)

    @staticmethod
    def _offer(queue: asyncio.Queue[T], value: T) -> None:
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(value)

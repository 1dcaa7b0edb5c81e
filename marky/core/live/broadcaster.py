"""
Broadcaster
===========

Single-slot "latest value" channel fanning rendered bodies out to any number of
preview clients.

Publishing overwrites the slot and bumps a version counter; it never blocks and
never queues. Each subscriber keeps a cursor and only ever sees whatever is
current when it wakes up, so a slow client skips intermediate versions instead
of falling behind. ``publish`` may be called from any thread: waiters are woken
on their own event loop with ``call_soon_threadsafe``.
"""

import asyncio
import threading
from types import TracebackType
from typing import Any, List, Optional, Tuple

from marky.config.logging import get_logger

logger = get_logger(__name__)

Waiter = Tuple[asyncio.AbstractEventLoop, "asyncio.Future[None]"]


class BroadcastClosed(Exception):
    """Raised by ``Subscriber.next`` once the broadcaster is closed."""

    pass


def _release(future: "asyncio.Future[None]") -> None:
    if not future.done():
        future.set_result(None)


class Broadcaster:
    """Thread-safe latest-value broadcast slot."""

    def __init__(self, log: Any = None) -> None:
        self.logger: Any = log or logger.bind(component="broadcaster")
        self._lock = threading.Lock()
        self._value: Optional[str] = None
        self._version = 0
        self._closed = False
        self._subscribers = 0
        self._waiters: List[Waiter] = []

    @property
    def version(self) -> int:
        """Version of the current value; 0 until something is published."""
        with self._lock:
            return self._version

    @property
    def latest(self) -> Optional[str]:
        with self._lock:
            return self._value

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return self._subscribers

    def publish(self, body: str) -> int:
        """
        Replace the current value and wake every waiting subscriber.

        Args:
            body: Rendered body

        Returns:
            The new version, or the last version if the broadcaster is closed
        """
        with self._lock:
            if self._closed:
                self.logger.debug("Publish after close ignored")
                return self._version
            self._value = body
            self._version += 1
            version = self._version
            waiters, self._waiters = self._waiters, []

        self._wake(waiters)
        self.logger.debug("Body published", version=version, waiters=len(waiters))
        return version

    def close(self) -> None:
        """Close the channel; pending and future ``next()`` calls raise BroadcastClosed."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            waiters, self._waiters = self._waiters, []

        self._wake(waiters)
        self.logger.info("Broadcaster closed", waiters=len(waiters))

    def subscribe(self) -> "Subscriber":
        """Create a subscriber starting before the first version."""
        with self._lock:
            self._subscribers += 1
        return Subscriber(self)

    def _unsubscribe(self) -> None:
        with self._lock:
            self._subscribers -= 1

    def _wake(self, waiters: List[Waiter]) -> None:
        for loop, future in waiters:
            try:
                loop.call_soon_threadsafe(_release, future)
            except RuntimeError:
                # loop already closed; its subscriber is gone
                pass

    def _poll(
        self, cursor: int, loop: asyncio.AbstractEventLoop
    ) -> Tuple[Optional[Tuple[int, str]], Optional["asyncio.Future[None]"]]:
        """Return the current value if newer than ``cursor``, else a future to wait on."""
        with self._lock:
            if self._closed:
                raise BroadcastClosed()
            if self._version > cursor:
                assert self._value is not None
                return (self._version, self._value), None
            future: "asyncio.Future[None]" = loop.create_future()
            self._waiters.append((loop, future))
            return None, future

    def _discard(self, future: "asyncio.Future[None]") -> None:
        with self._lock:
            self._waiters = [w for w in self._waiters if w[1] is not future]


class Subscriber:
    """A client's cursor into the broadcast version sequence."""

    def __init__(self, broadcaster: Broadcaster) -> None:
        self.broadcaster = broadcaster
        self.cursor = 0
        self._closed = False

    async def next(self) -> str:
        """
        Wait until a newer version than the last one seen is available.

        Returns:
            The current body

        Raises:
            BroadcastClosed: If the broadcaster is closed
        """
        loop = asyncio.get_running_loop()
        while True:
            current, future = self.broadcaster._poll(self.cursor, loop)
            if current is not None:
                self.cursor, body = current
                return body

            assert future is not None
            try:
                await future
            finally:
                self.broadcaster._discard(future)

    def close(self) -> None:
        """Detach from the broadcaster."""
        if not self._closed:
            self._closed = True
            self.broadcaster._unsubscribe()

    def __enter__(self) -> "Subscriber":
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

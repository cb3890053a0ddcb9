"""Live query subscriptions.

A ``Subscription`` owns one Firestore ``on_snapshot`` watch. Every snapshot
is converted with ``transform`` and then

* stored as ``latest``,
* handed to the callback when one was given, or otherwise
* pushed onto a small buffer so the subscription can be iterated as a
  stream of snapshots.

The buffer holds at most ``buffer_size`` snapshots; when a reader falls
behind the oldest ones are dropped (``latest`` always has the newest).
The watch stays open until ``unsubscribe()`` is called (or the ``with`` block
exits). Firestore delivers snapshots on its own thread, hence the queue.
"""
from __future__ import annotations

import queue
import threading
from typing import Any, Callable, Iterator, Optional

from google.api_core import exceptions as gexc

from app.core.errors import StoreReadError
from app.services.logger import log_debug

_CLOSED = object()

DEFAULT_BUFFER_SIZE = 16


class SubscriptionClosed(Exception):
    """Raised by next_snapshot() once the subscription has been cancelled."""


class Subscription:
    def __init__(
        self,
        query,
        transform: Callable[[list], Any],
        callback: Optional[Callable[[Any], None]] = None,
        name: str = "query",
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ):
        self.name = name
        self.latest: Any = None
        self._transform = transform
        self._callback = callback
        # one extra slot so the close marker always fits
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=buffer_size + 1)
        self._buffer_size = buffer_size
        self._closed = threading.Event()
        self._watch = None
        try:
            self._watch = query.on_snapshot(self._on_snapshot)
        except gexc.GoogleAPICallError as exc:
            self._closed.set()
            log_debug("subscription_failed", {"name": name, "error": str(exc)})
            raise StoreReadError(f"Could not watch {name}: {exc}") from exc
        log_debug("subscription_opened", {"name": name})

    @property
    def active(self) -> bool:
        return not self._closed.is_set()

    def _push(self, value, limit: int):
        while self._queue.qsize() >= limit:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
        self._queue.put_nowait(value)

    def _on_snapshot(self, doc_snapshots, changes, read_time):
        if self._closed.is_set():
            return
        value = self._transform(list(doc_snapshots))
        self.latest = value
        if self._callback is not None:
            self._callback(value)
        else:
            self._push(value, self._buffer_size)

    def unsubscribe(self):
        """Stop the underlying watch. Safe to call more than once."""
        if self._closed.is_set():
            return
        self._closed.set()
        if self._watch is not None:
            self._watch.unsubscribe()
        self._push(_CLOSED, self._buffer_size + 1)
        log_debug("subscription_closed", {"name": self.name})

    def next_snapshot(self, timeout: Optional[float] = None) -> Any:
        """Block until the next snapshot arrives. Raises queue.Empty on timeout."""
        value = self._queue.get(timeout=timeout)
        if value is _CLOSED:
            # keep the marker for any other consumer
            self._queue.put_nowait(_CLOSED)
            raise SubscriptionClosed(self.name)
        return value

    def __iter__(self) -> Iterator[Any]:
        while True:
            try:
                yield self.next_snapshot()
            except SubscriptionClosed:
                return

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.unsubscribe()
        return False

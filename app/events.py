"""In-process change feed used to push collection snapshots to subscribers."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Sequence

logger = logging.getLogger(__name__)

COLLECTIONS = ("bookings", "notifications")

Listener = Callable[[Sequence[Any]], None]


class ChangeFeed:
    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, collection: str, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for full snapshots of ``collection``.

        Returns a callable that removes the subscription.
        """
        if collection not in COLLECTIONS:
            raise ValueError(f"unknown collection: {collection}")
        with self._lock:
            self._listeners[collection].append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners[collection]:
                    self._listeners[collection].remove(listener)

        return unsubscribe

    def has_listeners(self, collection: str) -> bool:
        with self._lock:
            return bool(self._listeners.get(collection))

    def publish(self, collection: str, snapshot: Sequence[Any]) -> None:
        with self._lock:
            listeners = list(self._listeners.get(collection, ()))
        for listener in listeners:
            # A failing subscriber must not affect the write that triggered it
            try:
                listener(snapshot)
            except Exception:
                logger.exception("change listener for %s failed", collection)


feed = ChangeFeed()

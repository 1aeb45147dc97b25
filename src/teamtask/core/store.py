# src/teamtask/core/store.py

"""
Store primitives.

Every store owns its fields exclusively and notifies subscribers synchronously
after each write. Async completions are tagged with a RequestSequencer token so
a response that was superseded before it landed can be recognized and dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

Listener = Callable[[], None]
Unsubscribe = Callable[[], None]


class Store:
    """Subscribe/notify base shared by all stores."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Unsubscribe:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return _unsubscribe

    def _notify(self) -> None:
        # Copy: a listener may unsubscribe itself while being called.
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Store listener failed (%s)", type(self).__name__)


class RequestSequencer:
    """
    Monotonic request tokens for one logical read channel.

    `issue()` returns a new token; `is_current(token)` is True only for the most
    recently issued one. `invalidate()` makes every outstanding token stale.
    """

    def __init__(self) -> None:
        self._last = 0

    def issue(self) -> int:
        self._last += 1
        return self._last

    def is_current(self, token: int) -> bool:
        return token == self._last

    def invalidate(self) -> None:
        self._last += 1

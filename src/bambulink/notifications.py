"""Listener registries for client notifications."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, ParamSpec

_logger = logging.getLogger(__name__)

P = ParamSpec("P")


class Notifier(Generic[P]):
    """An ordered set of listeners for one notification channel.

    Listeners run synchronously on the event loop thread, in registration
    order. A failing listener is logged and does not stop the others.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._listeners: list[Callable[P, None]] = []

    def __len__(self) -> int:
        return len(self._listeners)

    def add(self, listener: Callable[P, None]) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def remove() -> None:
            self.discard(listener)

        return remove

    def discard(self, listener: Callable[P, None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, *args: P.args, **kwargs: P.kwargs) -> None:
        # Snapshot: listeners may unregister themselves while running.
        for listener in list(self._listeners):
            try:
                listener(*args, **kwargs)
            except Exception:
                _logger.debug("%s listener failed", self._name, exc_info=True)

"""Cooperative cancellation signal shared across one load operation."""

from __future__ import annotations

import itertools
import threading
from typing import Callable, Dict

from ..logging import get_logger

logger = get_logger(__name__)


class CancellationToken:
    """Thread-safe cancellation flag with callback registration.

    Callbacks registered before :meth:`cancel` run once, on the thread that
    calls :meth:`cancel`. Callbacks registered afterwards run immediately.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: Dict[int, Callable[[], None]] = {}
        self._ids = itertools.count()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()
        for callback in callbacks:
            try:
                callback()
            except Exception as exc:  # pragma: no cover - runtime protection
                logger.warning("Cancellation callback %r failed: %s", callback, exc, exc_info=True)

    def register(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run ``callback`` on cancellation and return a function that unregisters it."""
        with self._lock:
            if not self._event.is_set():
                key = next(self._ids)
                self._callbacks[key] = callback

                def unregister() -> None:
                    with self._lock:
                        self._callbacks.pop(key, None)

                return unregister
        callback()
        return lambda: None


__all__ = ["CancellationToken"]

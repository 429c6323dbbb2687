"""Cooperative cancellation shared by long-running tasks."""

from __future__ import annotations

import threading


class CancellationToken:
    """Explicit stop signal handed to every long-running task.

    Tasks check it at their wait points only; in-flight calls finish first.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Sleep up to ``timeout`` seconds; True if cancelled meanwhile."""
        return self._event.wait(timeout)

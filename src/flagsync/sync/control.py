"""Cooperative pause/stop token shared between a job and its owner."""

import threading


class JobStopped(Exception):
    """Raised at a checkpoint once a stop has been requested."""

    pass


class JobControl:
    """Pause and stop flags consulted at every traversal checkpoint.

    Requests never interrupt an operation in flight; they take effect at the
    next call to :meth:`checkpoint`.
    """

    def __init__(self):
        self._running = threading.Event()
        self._running.set()
        self._stop_requested = threading.Event()

    @property
    def is_paused(self) -> bool:
        return not self._running.is_set() and not self._stop_requested.is_set()

    @property
    def is_stopped(self) -> bool:
        return self._stop_requested.is_set()

    def pause(self) -> None:
        self._running.clear()

    def resume(self) -> None:
        self._running.set()

    def stop(self) -> None:
        self._stop_requested.set()
        # Release a paused checkpoint so it can observe the stop
        self._running.set()

    def checkpoint(self) -> None:
        """Block while paused; raise :class:`JobStopped` once stopped."""
        if self._stop_requested.is_set():
            raise JobStopped()
        self._running.wait()
        if self._stop_requested.is_set():
            raise JobStopped()

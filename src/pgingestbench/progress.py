"""
Liveness announcements for long-running bulk operations.

A single daemon thread prints "still working" lines at a fixed interval until
stop() is called. It carries nothing back to the caller.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Callable, Iterator

DEFAULT_INTERVAL_SEC = 3.0
JOIN_TIMEOUT_SEC = 1.0


class ProgressReporter:
    def __init__(
        self,
        interval: float = DEFAULT_INTERVAL_SEC,
        emit: Callable[[str], None] = print,
        join_timeout: float = JOIN_TIMEOUT_SEC,
    ):
        self.interval = interval
        self.emit = emit
        self.join_timeout = join_timeout

        self._lock = threading.Lock()
        self._stop_evt: threading.Event | None = None
        self._thread: threading.Thread | None = None

    @property
    def active(self) -> bool:
        return self._thread is not None

    def start(self, label: str, total: int) -> None:
        # one announcer at a time
        self.stop()

        stop_evt = threading.Event()
        message = f"[progress] {label}: generating {total:,} records"
        thread = threading.Thread(
            target=self._announce,
            args=(stop_evt, message),
            name=f"progress-{label}",
            daemon=True,
        )
        self._stop_evt = stop_evt
        self._thread = thread
        thread.start()

    def stop(self) -> None:
        """
        Stop announcing. Idempotent.

        After this returns no further line is emitted: the stop flag is set
        and then the emit lock is taken, so an announcement already in flight
        finishes first and any later one sees the flag. The thread join itself
        is bounded by join_timeout.
        """
        stop_evt, thread = self._stop_evt, self._thread
        self._stop_evt = None
        self._thread = None
        if stop_evt is None or thread is None:
            return

        stop_evt.set()
        with self._lock:
            pass
        if thread is not threading.current_thread():
            thread.join(self.join_timeout)

    @contextmanager
    def track(self, label: str, total: int) -> Iterator[None]:
        self.start(label, total)
        try:
            yield
        finally:
            self.stop()

    def _announce(self, stop_evt: threading.Event, message: str) -> None:
        while not stop_evt.wait(self.interval):
            with self._lock:
                if stop_evt.is_set():
                    break
                self.emit(message)

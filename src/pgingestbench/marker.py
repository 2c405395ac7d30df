"""
Completion marker and the one-shot "dataset ready" signal.

The marker is deliberately outside the database: its existence (not its
content) means the base tables were fully generated. Deleting the file forces
a full regeneration on the next start.
"""

from __future__ import annotations

import threading
from pathlib import Path

FLAG_FILE_NAME = "data-generated.delete-me-to-regenerate"


class FileMarker:
    def __init__(self, path: str | Path = FLAG_FILE_NAME):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def create(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch(exist_ok=True)

    def remove(self) -> None:
        self.path.unlink(missing_ok=True)

    def __repr__(self) -> str:
        return f"FileMarker({str(self.path)!r})"


class MemoryMarker:
    """In-process marker with the FileMarker interface."""

    def __init__(self, present: bool = False):
        self._present = present

    def exists(self) -> bool:
        return self._present

    def create(self) -> None:
        self._present = True

    def remove(self) -> None:
        self._present = False


class ReadySignal:
    """
    One-shot notification raised once the base tables are populated.

    The bootstrap raises it on DONE (or SKIPPED); the cache warm-up task
    blocks on wait() instead of polling for the marker file.
    """

    def __init__(self):
        self._evt = threading.Event()

    def set(self) -> None:
        self._evt.set()

    def is_set(self) -> bool:
        return self._evt.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._evt.wait(timeout)

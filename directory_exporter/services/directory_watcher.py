"""
Filesystem watch subscription for observed directories.

Wraps a watchdog Observer: one non-recursive watch per canonical directory.
Watchdog delivers events on its own thread; they are handed to the engine's
asyncio queue with ``loop.call_soon_threadsafe`` and never touch engine
state directly.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Optional, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

# Events that mean directory contents may have changed. Opened and
# closed-without-write are left out since scans themselves produce them.
RELEVANT_EVENT_TYPES = frozenset({"created", "deleted", "modified", "moved", "closed"})


@dataclass(frozen=True)
class WatchEvent:
    """A change reported for ``path``."""

    path: str
    event_type: str = "modified"


@dataclass(frozen=True)
class WatchError:
    """A failure of the watch subsystem itself."""

    message: str


WatchItem = Union[WatchEvent, WatchError]


class _QueueingEventHandler(FileSystemEventHandler):
    """Forwards relevant watchdog events into the engine queue."""

    def __init__(self, watcher: "DirectoryWatcher"):
        super().__init__()
        self._watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in RELEVANT_EVENT_TYPES:
            return

        self._watcher.post(WatchEvent(os.fsdecode(event.src_path), event.event_type))

        dest_path = getattr(event, "dest_path", "")
        if event.event_type == "moved" and dest_path:
            self._watcher.post(WatchEvent(os.fsdecode(dest_path), event.event_type))


class DirectoryWatcher:
    def __init__(
        self,
        queue: "asyncio.Queue[WatchItem]",
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._queue = queue
        self._loop = loop
        self._observer: Optional[Observer] = None
        self._handler = _QueueingEventHandler(self)
        self._failure_reported = False

    @property
    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def start(self) -> None:
        if self._observer is not None:
            logging.warning("Directory watcher already running")
            return

        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        self._observer = Observer()
        self._observer.start()
        self._failure_reported = False
        logging.info("Directory watcher started")

    def subscribe(self, path: str) -> None:
        """
        Watch one directory (non-recursive).

        Raises:
            RuntimeError: If the watcher has not been started
            OSError: If the directory cannot be watched
        """
        if self._observer is None:
            raise RuntimeError("Directory watcher is not running")
        self._observer.schedule(self._handler, path, recursive=False)
        logging.debug(f"Subscribed to filesystem events for '{path}'")

    def stop(self) -> None:
        if self._observer is None:
            return

        self._observer.stop()
        self._observer.join(timeout=5.0)
        self._observer = None
        logging.info("Directory watcher stopped")

    def check_health(self) -> Optional[WatchError]:
        """Report once when the observer thread has died unexpectedly."""
        if self._observer is None or self._observer.is_alive() or self._failure_reported:
            return None

        self._failure_reported = True
        return WatchError("Filesystem observer thread is no longer running")

    def post(self, item: WatchItem) -> None:
        """Hand an item to the engine loop; safe to call from any thread."""
        if self._loop is None:
            return
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, item)
        except RuntimeError:
            # Loop already closed during shutdown
            logging.debug(f"Dropping watch item after shutdown: {item}")

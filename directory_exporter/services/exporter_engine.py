import asyncio
import logging
import os
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from ..config import Settings
from ..models import DirectorySpec, DirectoryStatus, ScanResult, WatchEntry
from .directory_registry import DirectoryRegistry, PathIdentityOracle
from .directory_scanner import DirectoryScanner
from .directory_watcher import DirectoryWatcher, WatchError, WatchEvent, WatchItem
from .metrics_sink import UNSPECIFIED_DIRECTORY, MetricsSink


class ExporterEngine:
    """
    Single coordinating loop for directory observation.

    Inputs are served in a fixed order on every iteration: the stop request
    first, then queued filesystem events, then the periodic tick. A tick that
    fell due while events were being handled runs before the next events are
    taken, so a constant event stream cannot starve it.

    Scans run one at a time; the walk executes in a worker thread but is
    awaited before anything else is scheduled, so registry and sink are only
    ever touched from this loop. Unexpected scan failures are exported like
    any other failed scan and never end the loop.

    A slow or hung filesystem blocks every other directory until the walk
    returns. There is no per-scan timeout.
    """

    def __init__(
        self,
        settings: Settings,
        specs: Iterable[DirectorySpec],
        scanner: Optional[DirectoryScanner] = None,
        sink: Optional[MetricsSink] = None,
        watcher: Optional[DirectoryWatcher] = None,
        identity_oracle: Optional[PathIdentityOracle] = None,
        clock: Callable[[], datetime] = datetime.now,
        enable_watcher: bool = True,
    ):
        self._settings = settings
        self._specs: List[DirectorySpec] = list(specs)
        self._scanner = scanner or DirectoryScanner()
        self._sink = sink or MetricsSink(namespace=settings.metrics_namespace)
        self._clock = clock
        self._registry = DirectoryRegistry(
            default_interval_seconds=settings.default_scan_interval_seconds,
            identity_oracle=identity_oracle,
            clock=clock,
        )

        self._queue: "asyncio.Queue[WatchItem]" = asyncio.Queue()
        self._watcher = watcher
        self._enable_watcher = enable_watcher or watcher is not None
        self._stop_event = asyncio.Event()
        self._is_running = False
        self._run_task: Optional[asyncio.Task] = None

        for spec in self._specs:
            self._registry.register(spec)

        logging.info(
            f"ExporterEngine initialized with {len(self._registry)} directories, "
            f"tick every {settings.tick_interval_seconds}s"
        )

    @property
    def registry(self) -> DirectoryRegistry:
        return self._registry

    @property
    def sink(self) -> MetricsSink:
        return self._sink

    @property
    def queue(self) -> "asyncio.Queue[WatchItem]":
        return self._queue

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def start(self) -> None:
        """Run the engine as a background task."""
        if self._run_task is not None and not self._run_task.done():
            logging.warning("Exporter engine already running")
            return

        self._run_task = asyncio.create_task(self.run())
        logging.info("Exporter engine started as background task")

    async def stop(self) -> None:
        """Request a stop and wait for the loop to finish its current scan."""
        self.request_stop()

        if self._run_task is not None:
            try:
                await self._run_task
            except asyncio.CancelledError:
                logging.debug("Exporter engine task cancelled")
            self._run_task = None

        logging.info("Exporter engine stopped")

    def request_stop(self) -> None:
        self._stop_event.set()

    async def run(self) -> None:
        """Subscribe, scan everything once, then serve ticks and events until stopped."""
        loop = asyncio.get_running_loop()
        self._is_running = True

        try:
            self._subscribe_all()
            await self.scan_all()

            tick_interval = self._settings.tick_interval_seconds
            next_tick = loop.time() + tick_interval

            while not self._stop_event.is_set():
                item = await self._next_item(next_tick - loop.time())

                if self._stop_event.is_set():
                    break

                if item is not None:
                    await self._handle_items(item)

                # An overdue tick runs after the events taken in this iteration
                if loop.time() >= next_tick and not self._stop_event.is_set():
                    await self.tick()
                    next_tick = loop.time() + tick_interval

            logging.info("Caught stop request, stopping.")
        finally:
            if self._watcher is not None:
                self._watcher.stop()
            self._is_running = False

    async def scan_all(self) -> None:
        """Scan every registered directory regardless of its due time."""
        for entry in self._registry.entries():
            if self._stop_event.is_set():
                return
            await self.scan_entry(entry)

    async def tick(self) -> None:
        """Periodic poll: heartbeat, then scan the directories that are due."""
        self._sink.heartbeat()

        if self._watcher is not None:
            watch_error = self._watcher.check_health()
            if watch_error is not None:
                self.handle_watch_error(watch_error)

        for entry in self._registry.entries():
            if self._stop_event.is_set():
                return

            now = self._clock()
            if entry.is_due(now):
                await self.scan_entry(entry)
            else:
                wait = entry.next_scan_due - now
                logging.debug(f"Ignoring dir '{entry.path}' for '{wait}'")

    async def handle_event(self, event: WatchEvent) -> ScanResult:
        """Scan the directory containing an event path, ignoring its due time."""
        directory = self.event_directory(event.path)
        logging.debug(f"Update detected on path '{directory}' ({event.path})")
        return await self.scan_entry(self._registry.resolve(directory))

    def handle_watch_error(self, error: WatchError) -> None:
        self._sink.record_error(UNSPECIFIED_DIRECTORY)
        logging.error(f"Error while watching directories: {error.message}")

    def event_directory(self, path: str) -> str:
        """A registered directory itself, otherwise the parent of the event path."""
        if path in self._registry:
            return path
        return os.path.dirname(path)

    async def scan_entry(self, entry: WatchEntry) -> ScanResult:
        started_at = self._clock()
        try:
            result = await asyncio.to_thread(self._scanner.scan, entry.path, entry.spec)
        except Exception as e:
            logging.error(f"Unexpected error scanning '{entry.label}': {e}", exc_info=True)
            result = ScanResult(error=f"{type(e).__name__}: {e}")
        next_scan_due = self._registry.record_scan(entry, started_at)

        errors = result.walk_errors + (1 if result.failed else 0)
        self._sink.record_error(entry.label, errors)
        self._sink.publish_scan(entry.label, result, next_scan_due)

        if result.failed:
            logging.warning(
                f"Scan of '{entry.label}' failed, exporting sentinel values: {result.error}"
            )
        else:
            logging.debug(
                f"Scan of '{entry.label}' done: {result.file_count} files, "
                f"next scan at {next_scan_due:%Y-%m-%d %H:%M:%S}"
            )
        return result

    def directory_statuses(self) -> List[DirectoryStatus]:
        return [
            DirectoryStatus(
                path=entry.path,
                label=entry.label,
                interval_seconds=entry.spec.interval_seconds,
                only_files=entry.spec.only_files,
                exclude_patterns=len(entry.spec.exclude),
                include_patterns=len(entry.spec.include),
                next_scan_due=entry.next_scan_due,
            )
            for entry in self._registry.entries()
        ]

    def _subscribe_all(self) -> None:
        if not self._enable_watcher:
            logging.info("Filesystem watching disabled, relying on periodic scans")
            return

        if self._watcher is None:
            self._watcher = DirectoryWatcher(self._queue)
        self._watcher.start()

        for entry in self._registry.entries():
            logging.info(
                f"Watching dir '{entry.path}', updating each "
                f"{entry.spec.interval_seconds} seconds"
            )
            try:
                self._watcher.subscribe(entry.path)
            except OSError as e:
                # Periodic scans still cover this directory.
                self._sink.record_error(entry.label)
                logging.error(f"Can not watch dir '{entry.path}': {e}")

    async def _next_item(self, timeout: float) -> Optional[WatchItem]:
        """Next queued item, or None on stop request or when the tick is due."""
        if self._stop_event.is_set():
            return None
        if not self._queue.empty():
            return self._queue.get_nowait()
        if timeout <= 0:
            return None

        get_task = asyncio.ensure_future(self._queue.get())
        stop_task = asyncio.ensure_future(self._stop_event.wait())
        try:
            done, _ = await asyncio.wait(
                {get_task, stop_task},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (get_task, stop_task):
                if not task.done():
                    task.cancel()

        if get_task in done:
            return get_task.result()
        return None

    async def _handle_items(self, first: WatchItem) -> None:
        """Handle an item plus everything queued behind it, one scan per directory."""
        items = [first]
        while not self._queue.empty():
            items.append(self._queue.get_nowait())

        directories: List[str] = []
        for item in items:
            if isinstance(item, WatchError):
                self.handle_watch_error(item)
                continue

            directory = self.event_directory(item.path)
            logging.debug(f"Update detected on path '{directory}' ({item.path})")
            if directory not in directories:
                directories.append(directory)

        for directory in directories:
            if self._stop_event.is_set():
                return
            await self.scan_entry(self._registry.resolve(directory))

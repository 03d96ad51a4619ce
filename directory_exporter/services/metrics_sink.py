import logging
import time
from datetime import datetime
from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)

from ..models import ScanResult

UNSPECIFIED_DIRECTORY = "UNSPECIFIED"
FAILED_SCAN_VALUE = -1


class MetricsSink:
    """
    Prometheus gauges for directory statistics.

    Every sink owns its own CollectorRegistry so several engines (or tests)
    can coexist in one process. The HTTP layer only reads from it.
    """

    def __init__(
        self,
        namespace: str = "directory_exporter",
        registry: Optional[CollectorRegistry] = None,
    ):
        self.registry = registry or CollectorRegistry()
        self.namespace = namespace

        self._file_count = Gauge(
            "file_count_total",
            "The total number of files found recursively under given directory",
            ["dir"],
            namespace=namespace,
            registry=self.registry,
        )
        self._files_size = Gauge(
            "file_size_bytes",
            "The size of all files that have been included or not been excluded",
            ["dir"],
            namespace=namespace,
            registry=self.registry,
        )
        self._dir_size = Gauge(
            "dir_size_bytes",
            "The size of all files in the directory, even excluded files",
            ["dir"],
            namespace=namespace,
            registry=self.registry,
        )
        self._excluded_files = Gauge(
            "excluded_files_total",
            "The total number of excluded files under given directory",
            ["dir"],
            namespace=namespace,
            registry=self.registry,
        )
        self._errors = Counter(
            "errors",
            "Errors while trying to access a directory",
            ["dir"],
            namespace=namespace,
            registry=self.registry,
        )
        self._next_scan = Gauge(
            "files_next_scan_timestamp_seconds",
            "Timestamp when next scan for given dir is started",
            ["dir"],
            namespace=namespace,
            registry=self.registry,
        )
        self._scan_duration = Gauge(
            "files_scan_process_seconds",
            "Seconds taken to scan given directory",
            ["dir"],
            namespace=namespace,
            registry=self.registry,
        )
        self._heartbeat = Gauge(
            "heartbeat_seconds",
            "Continuous heartbeat of the exporter",
            registry=self.registry,
        )

    def publish_scan(
        self, directory: str, result: ScanResult, next_scan_due: datetime
    ) -> None:
        """Overwrite the exported statistics of a directory with a scan result."""
        if result.failed:
            file_count = excluded = dir_size = files_size = FAILED_SCAN_VALUE
        else:
            file_count = result.file_count
            excluded = result.excluded_files
            dir_size = result.dir_size
            files_size = result.files_size

        self._file_count.labels(dir=directory).set(file_count)
        self._excluded_files.labels(dir=directory).set(excluded)
        self._dir_size.labels(dir=directory).set(dir_size)
        self._files_size.labels(dir=directory).set(files_size)
        self._next_scan.labels(dir=directory).set(int(next_scan_due.timestamp()))
        self._scan_duration.labels(dir=directory).set(result.duration_seconds)

    def record_error(self, directory: str = UNSPECIFIED_DIRECTORY, amount: int = 1) -> None:
        if amount <= 0:
            return
        self._errors.labels(dir=directory).inc(amount)

    def heartbeat(self, now: Optional[float] = None) -> None:
        self._heartbeat.set(time.time() if now is None else now)

    def render(self) -> bytes:
        return generate_latest(self.registry)

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_LATEST

    def get_value(self, name: str, directory: Optional[str] = None) -> Optional[float]:
        """Current sample value, mostly for status output and tests."""
        labels = {"dir": directory} if directory is not None else {}
        full_name = f"{self.namespace}_{name}" if name != "heartbeat_seconds" else name
        value = self.registry.get_sample_value(full_name, labels)
        if value is None:
            logging.debug(f"No sample for {full_name} {labels}")
        return value

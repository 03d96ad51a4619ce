"""
Directory observation services.

Components:
- pattern_matcher: compiles include/exclude regexes into PatternSets
- directory_scanner: recursive statistics walk for one directory
- directory_registry: canonical path -> schedule state, symlink fallback
- directory_watcher: watchdog subscription feeding the engine queue
- metrics_sink: Prometheus gauges in an engine-owned registry
- exporter_engine: the single loop tying ticks, events and scans together
"""

from .directory_registry import DirectoryRegistry, StatIdentityOracle, canonicalize_path
from .directory_scanner import DirectoryScanner
from .directory_watcher import DirectoryWatcher, WatchError, WatchEvent
from .exporter_engine import ExporterEngine
from .metrics_sink import MetricsSink

__all__ = [
    'DirectoryRegistry',
    'StatIdentityOracle',
    'canonicalize_path',
    'DirectoryScanner',
    'DirectoryWatcher',
    'WatchError',
    'WatchEvent',
    'ExporterEngine',
    'MetricsSink',
]

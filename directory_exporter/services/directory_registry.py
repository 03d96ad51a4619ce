import logging
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol

from ..models import DirectorySpec, WatchEntry


class PathIdentityOracle(Protocol):
    """Answers whether two paths name the same filesystem object."""

    def same_file(self, first: str, second: str) -> bool:
        ...


class StatIdentityOracle:
    """Compares device and inode numbers from os.stat (symlinks followed)."""

    def same_file(self, first: str, second: str) -> bool:
        try:
            return os.path.samestat(os.stat(first), os.stat(second))
        except OSError as e:
            logging.debug(f"Cannot compare '{first}' and '{second}': {e}")
            return False


def canonicalize_path(path: str) -> str:
    """Resolve symlinks in a configured path; fall back to the path as given."""
    try:
        resolved = str(Path(path).resolve(strict=True))
    except (OSError, RuntimeError) as e:
        logging.warning(f"Cannot resolve '{path}', watching it as configured: {e}")
        return os.path.abspath(path)

    if resolved != os.path.abspath(path):
        logging.warning(f"{path} is a symlink to {resolved}")
    return resolved


class DirectoryRegistry:
    """
    Owns the schedule state of every observed directory.

    Entries are keyed by canonical path and live for the lifetime of the
    registry. Event paths that were never registered are resolved through
    a path identity check against the registered paths, and failing that
    get a default entry so their activity is still exported.
    """

    def __init__(
        self,
        default_interval_seconds: int,
        identity_oracle: Optional[PathIdentityOracle] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._default_interval_seconds = default_interval_seconds
        self._identity_oracle = identity_oracle or StatIdentityOracle()
        self._clock = clock
        self._entries: Dict[str, WatchEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: str) -> bool:
        return path in self._entries

    def register(self, spec: DirectorySpec, path: Optional[str] = None) -> WatchEntry:
        """Register a spec under its canonical path (or ``path``), due immediately."""
        key = path or spec.canonical_path
        entry = WatchEntry(path=key, spec=spec, next_scan_due=self._clock())
        if key in self._entries:
            logging.warning(f"Directory '{key}' registered twice, replacing configuration")
        self._entries[key] = entry
        return entry

    def lookup(self, path: str) -> Optional[WatchEntry]:
        return self._entries.get(path)

    def resolve(self, path: str) -> WatchEntry:
        """Find the entry for an event path, aliasing or synthesizing one if needed."""
        entry = self._entries.get(path)
        if entry is not None:
            return entry

        logging.warning(
            f"No config found for directory '{path}', trying to find symlink "
            f"and attach config to this directory."
        )
        for registered_path, registered in list(self._entries.items()):
            if self._identity_oracle.same_file(path, registered_path):
                logging.info(
                    f"Found symlink from '{path}' -> '{registered_path}', "
                    f"attaching config for '{registered_path}'"
                )
                return self.register(registered.spec, path=path)

        logging.warning(
            f"Building default dir config for directory '{path}'. This should not happen."
        )
        default_spec = DirectorySpec(
            path=path,
            canonical_path=path,
            interval_seconds=self._default_interval_seconds,
        )
        return self.register(default_spec, path=path)

    def record_scan(self, entry: WatchEntry, started_at: datetime) -> datetime:
        """Set the next due time relative to when the scan started."""
        entry.next_scan_due = started_at + timedelta(seconds=entry.spec.interval_seconds)
        return entry.next_scan_due

    def entries(self) -> List[WatchEntry]:
        return list(self._entries.values())

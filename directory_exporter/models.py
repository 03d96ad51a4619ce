import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field


class DirectoryConfig(BaseModel):
    """
    One entry of the JSON directory list, exactly as the operator wrote it.

    Intervals are not clamped here; clamping and pattern compilation happen
    when the entry is turned into a DirectorySpec.
    """

    dir: str = Field(..., min_length=1, description="Directory to observe")
    frequency: Optional[int] = Field(
        None, description="Minimum seconds between scheduled scans"
    )
    only_files: bool = Field(
        default=False, description="Do not count directories as entries"
    )
    exclude_files: List[str] = Field(
        default_factory=list, description="Regexes for entries to exclude"
    )
    include_files: List[str] = Field(
        default_factory=list, description="Regexes for entries to include"
    )


class ExporterConfig(BaseModel):
    """Top level of the JSON directory list."""

    dirs: List[DirectoryConfig] = Field(default_factory=list)


@dataclass(frozen=True)
class PatternSet:
    """Ordered compiled patterns; matches when any of them is found in the path."""

    patterns: Tuple[re.Pattern, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.patterns)

    def __len__(self) -> int:
        return len(self.patterns)

    def matches(self, path: str) -> bool:
        return any(pattern.search(path) for pattern in self.patterns)


@dataclass(frozen=True)
class DirectorySpec:
    """
    Validated, immutable configuration for one observed directory.

    ``path`` is what the operator configured and is used as the metric label.
    ``canonical_path`` is the symlink-resolved location that is watched and
    used as the registry key.
    """

    path: str
    canonical_path: str
    interval_seconds: int
    only_files: bool = False
    exclude: PatternSet = field(default_factory=PatternSet)
    include: PatternSet = field(default_factory=PatternSet)


@dataclass
class WatchEntry:
    """Schedule state for one registered directory."""

    path: str
    spec: DirectorySpec
    next_scan_due: datetime

    @property
    def label(self) -> str:
        return self.spec.path

    def is_due(self, now: datetime) -> bool:
        return now >= self.next_scan_due


@dataclass
class ScanResult:
    """Statistics gathered by one walk of a directory."""

    file_count: int = 0
    excluded_files: int = 0
    dir_size: int = 0
    files_size: int = 0
    duration_seconds: float = 0.0
    walk_errors: int = 0
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class DirectoryStatus(BaseModel):
    """Read-only view of a registry entry for the HTTP API."""

    path: str = Field(..., description="Registry key (canonical path)")
    label: str = Field(..., description="Metric label (configured path)")
    interval_seconds: int
    only_files: bool
    exclude_patterns: int = Field(0, description="Number of exclude patterns")
    include_patterns: int = Field(0, description="Number of include patterns")
    next_scan_due: datetime

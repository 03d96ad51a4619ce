"""
Pytest configuration og shared fixtures.
"""

from datetime import datetime, timedelta
from typing import Iterable

import pytest

from directory_exporter.config import Settings
from directory_exporter.dependencies import reset_settings
from directory_exporter.models import DirectorySpec
from directory_exporter.services.pattern_matcher import compile_patterns


class FakeClock:
    """Manually advanced clock for schedule tests."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from any settings.env in the working directory."""
    return Settings(
        _env_file=None,
        config_file=str(tmp_path / "directory-exporter.json"),
        tick_interval_seconds=30,
        default_scan_interval_seconds=1800,
        min_scan_interval_seconds=5,
        log_file_path=str(tmp_path / "logs" / "directory_exporter.log"),
    )


@pytest.fixture
def clock():
    return FakeClock()


def build_spec(
    path,
    interval_seconds: int = 1800,
    only_files: bool = False,
    exclude: Iterable[str] = (),
    include: Iterable[str] = (),
) -> DirectorySpec:
    path = str(path)
    return DirectorySpec(
        path=path,
        canonical_path=path,
        interval_seconds=interval_seconds,
        only_files=only_files,
        exclude=compile_patterns(exclude, path, "exclude"),
        include=compile_patterns(include, path, "include"),
    )


@pytest.fixture
def make_spec():
    return build_spec


@pytest.fixture(autouse=True)
def clean_settings():
    """Drop the cached Settings before and after each test."""
    reset_settings()
    yield
    reset_settings()

import logging
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from directory_exporter.services.directory_registry import (
    DirectoryRegistry,
    StatIdentityOracle,
    canonicalize_path,
)


class TestDirectoryRegistry:
    """Test suite for DirectoryRegistry funktionalitet."""

    @pytest.fixture
    def registry(self, clock):
        return DirectoryRegistry(default_interval_seconds=1800, clock=clock)

    def test_register_keys_by_canonical_path_and_is_due(self, registry, clock, make_spec):
        spec = make_spec("/data")

        entry = registry.register(spec)

        assert registry.lookup("/data") is entry
        assert entry.next_scan_due == clock()
        assert entry.is_due(clock())
        assert entry.label == "/data"

    def test_resolve_direct_hit(self, registry, make_spec):
        entry = registry.register(make_spec("/data"))

        assert registry.resolve("/data") is entry
        assert len(registry) == 1

    def test_lookup_unknown_returns_none(self, registry):
        assert registry.lookup("/nowhere") is None

    def test_record_scan_uses_scan_start(self, registry, clock, make_spec):
        entry = registry.register(make_spec("/data", interval_seconds=60))
        started = clock()
        clock.advance(45)  # scan took 45 seconds

        next_due = registry.record_scan(entry, started)

        assert next_due == started + timedelta(seconds=60)
        assert entry.next_scan_due == next_due
        assert not entry.is_due(clock())

    def test_resolve_symlink_alias_reuses_spec(self, registry, tmp_path, make_spec):
        real_dir = tmp_path / "real"
        real_dir.mkdir()
        link = tmp_path / "link"
        link.symlink_to(real_dir, target_is_directory=True)
        spec = make_spec(real_dir, interval_seconds=120, exclude=[r"\.tmp$"])
        registry.register(spec)

        alias = registry.resolve(str(link))

        assert alias.path == str(link)
        assert alias.spec is spec
        assert registry.lookup(str(link)) is alias
        assert len(registry) == 2

    def test_resolve_uses_injected_identity_oracle(self, clock, make_spec):
        oracle = MagicMock()
        oracle.same_file.side_effect = lambda first, second: (
            first == "/mnt/alias" and second == "/srv/data"
        )
        registry = DirectoryRegistry(1800, identity_oracle=oracle, clock=clock)
        registry.register(make_spec("/srv/other"))
        spec = make_spec("/srv/data")
        registry.register(spec)

        alias = registry.resolve("/mnt/alias")

        assert alias.spec is spec
        assert oracle.same_file.call_count == 2

    def test_resolve_unknown_synthesizes_default(self, registry, make_spec):
        registry.register(make_spec("/data"))

        entry = registry.resolve("/unknown/dir")

        assert entry.path == "/unknown/dir"
        assert entry.label == "/unknown/dir"
        assert entry.spec.interval_seconds == 1800
        assert not entry.spec.only_files
        assert not entry.spec.exclude
        assert not entry.spec.include

    def test_synthesized_entry_is_reused(self, registry):
        first = registry.resolve("/unknown/dir")
        second = registry.resolve("/unknown/dir")

        assert first is second
        assert len(registry) == 1


class TestPathHelpers:
    def test_canonicalize_resolves_symlink(self, tmp_path):
        real_dir = tmp_path / "real"
        real_dir.mkdir()
        link = tmp_path / "link"
        link.symlink_to(real_dir, target_is_directory=True)

        assert canonicalize_path(str(link)) == str(real_dir.resolve())

    def test_canonicalize_relative_path_is_not_reported_as_symlink(
        self, tmp_path, monkeypatch, caplog
    ):
        base = tmp_path.resolve()
        (base / "data").mkdir()
        monkeypatch.chdir(base)

        with caplog.at_level(logging.WARNING):
            resolved = canonicalize_path("data")

        assert resolved == str(base / "data")
        assert "symlink" not in caplog.text

    def test_canonicalize_missing_path_falls_back(self, tmp_path):
        missing = tmp_path / "missing"

        assert canonicalize_path(str(missing)) == str(missing)

    def test_stat_oracle(self, tmp_path):
        real_dir = tmp_path / "real"
        real_dir.mkdir()
        link = tmp_path / "link"
        link.symlink_to(real_dir, target_is_directory=True)
        oracle = StatIdentityOracle()

        assert oracle.same_file(str(link), str(real_dir))
        assert not oracle.same_file(str(tmp_path), str(real_dir))
        assert not oracle.same_file(str(tmp_path / "missing"), str(real_dir))

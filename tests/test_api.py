"""
Tests for the HTTP surface: /metrics, /api/directories and health endpoints.

The app lifespan is not entered; an engine is attached to app.state directly.
"""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from directory_exporter.dependencies import get_settings, reset_settings
from directory_exporter.main import create_app
from directory_exporter.models import ScanResult
from directory_exporter.services.exporter_engine import ExporterEngine


@pytest.fixture
def engine(settings, clock, make_spec):
    return ExporterEngine(
        settings,
        [make_spec("/data", interval_seconds=60, exclude=[r"\.tmp$"]), make_spec("/logs")],
        clock=clock,
        enable_watcher=False,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app, engine):
    app.state.engine = engine
    return TestClient(app)


class TestMetricsEndpoint:
    def test_metrics_exposes_published_values(self, client, engine):
        engine.sink.publish_scan(
            "/data", ScanResult(file_count=7, dir_size=70), datetime(2024, 1, 1, 13, 0, 0)
        )

        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert 'directory_exporter_file_count_total{dir="/data"} 7.0' in response.text
        assert 'directory_exporter_dir_size_bytes{dir="/data"} 70.0' in response.text

    def test_metrics_without_engine_is_unavailable(self, app):
        response = TestClient(app).get("/metrics")

        assert response.status_code == 503


class TestDirectoriesEndpoint:
    def test_lists_registered_directories(self, client):
        response = client.get("/api/directories")

        assert response.status_code == 200
        data = response.json()
        assert [d["path"] for d in data] == ["/data", "/logs"]
        assert data[0]["interval_seconds"] == 60
        assert data[0]["exclude_patterns"] == 1
        assert data[1]["include_patterns"] == 0


class TestHealthEndpoints:
    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_health_reports_engine_state(self, client):
        response = client.get("/health")

        data = response.json()
        assert data["service"] == "directory-exporter"
        assert data["status"] == "starting"  # engine attached but not running
        assert data["directories"] == 2


class TestSettingsDependency:
    def test_settings_are_cached_until_reset(self):
        first = get_settings()

        assert get_settings() is first
        reset_settings()
        assert get_settings() is not first

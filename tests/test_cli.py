"""
Tests for the typer CLI.
"""

from unittest.mock import patch

from typer.testing import CliRunner

from directory_exporter import __version__
from directory_exporter.cli import app

runner = CliRunner()


class TestCli:
    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help(self):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "--config" in result.output

    def test_missing_config_file_exits(self, tmp_path):
        result = runner.invoke(app, ["--config", str(tmp_path / "missing.json")])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_serve_runs_uvicorn_with_overrides(self, tmp_path):
        config_file = tmp_path / "directory-exporter.json"
        config_file.write_text('{"dirs": []}')

        with patch("directory_exporter.cli.uvicorn.run") as mock_run:
            result = runner.invoke(
                app, ["--config", str(config_file), "--host", "127.0.0.1", "--port", "9100"]
            )

        assert result.exit_code == 0, result.output
        mock_run.assert_called_once()
        kwargs = mock_run.call_args.kwargs
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 9100
        assert kwargs["log_level"] == "info"

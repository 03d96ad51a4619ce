"""
CLI for the directory exporter.

Starts the metrics HTTP server and the observation engine. SIGINT/SIGTERM
are handled by uvicorn, which runs the application shutdown and stops the
engine after its current scan.
"""

from pathlib import Path
from typing import Optional

import typer
import uvicorn
from rich.console import Console

from . import __version__
from .config import Settings
from .main import create_app

console = Console()

app = typer.Typer(
    name="directory-exporter",
    help="Export per-directory file statistics as Prometheus metrics",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"directory-exporter {__version__}")
        raise typer.Exit()


@app.command()
def serve(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to the JSON directory config file"
    ),
    debug: bool = typer.Option(False, "--debug", help="Set log level to debug"),
    host: Optional[str] = typer.Option(None, "--host", help="Metrics listen address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Metrics listen port"),
    version: bool = typer.Option(
        False,
        "--version",
        help="Print version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Run the exporter until interrupted."""
    overrides = {}
    if config is not None:
        overrides["config_file"] = str(config)
    if host is not None:
        overrides["listen_host"] = host
    if port is not None:
        overrides["listen_port"] = port

    settings = Settings(**overrides)

    if not Path(settings.config_file).is_file():
        console.print(
            f"[bold red]Error:[/bold red] config file '{settings.config_file}' not found",
            soft_wrap=True,
        )
        raise typer.Exit(1)

    uvicorn.run(
        create_app(settings, debug=debug),
        host=settings.listen_host,
        port=settings.listen_port,
        log_level="debug" if debug else "info",
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from . import __version__
from .api import metrics
from .config import Settings
from .dependencies import build_engine_from_config, get_settings
from .logging_config import setup_logging


def create_app(settings: Optional[Settings] = None, debug: bool = False) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""
        # Startup
        setup_logging(settings, debug=debug)
        logging.info(f"directory-exporter {__version__} starting up...")
        logging.info(f"Directory config: {settings.config_file}")

        # Configuration errors propagate and abort startup before the loop runs
        engine = await build_engine_from_config(settings)
        app.state.engine = engine
        await engine.start()

        yield

        # Shutdown
        logging.info("directory-exporter shutting down...")
        await engine.stop()
        app.state.engine = None

    app = FastAPI(
        title="Directory Exporter",
        description="Exports per-directory file statistics as Prometheus metrics",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.engine = None
    app.include_router(metrics.router)

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {"status": "ok", "message": "Directory Exporter is running"}

    @app.get("/health")
    async def health(request: Request):
        """Detaljeret health check."""
        engine = request.app.state.engine
        return {
            "status": "healthy" if engine is not None and engine.is_running else "starting",
            "service": "directory-exporter",
            "version": __version__,
            "directories": len(engine.registry) if engine is not None else 0,
        }

    return app

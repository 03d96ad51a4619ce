from functools import lru_cache
from typing import Iterable

from fastapi import HTTPException, Request, status

from .config import Settings
from .models import DirectorySpec
from .services.directory_config import build_directory_specs, load_exporter_config
from .services.exporter_engine import ExporterEngine


@lru_cache
def get_settings() -> Settings:
    """Hent Settings singleton instance."""
    return Settings()


def reset_settings() -> None:
    get_settings.cache_clear()


def create_engine(settings: Settings, specs: Iterable[DirectorySpec]) -> ExporterEngine:
    return ExporterEngine(settings=settings, specs=specs)


async def build_engine_from_config(settings: Settings) -> ExporterEngine:
    """
    Load the directory list and construct the engine.

    Raises:
        ConfigurationError: On unreadable config or invalid patterns
    """
    config = await load_exporter_config(settings.config_file)
    specs = build_directory_specs(config, settings)
    return create_engine(settings, specs)


def get_engine(request: Request) -> ExporterEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Exporter engine not started",
        )
    return engine

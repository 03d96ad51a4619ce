import logging
from typing import List, Optional

import aiofiles
from pydantic import ValidationError

from ..config import Settings
from ..core.exceptions import ConfigurationError
from ..models import DirectoryConfig, DirectorySpec, ExporterConfig
from .directory_registry import canonicalize_path
from .pattern_matcher import compile_patterns


async def load_exporter_config(config_file: str) -> ExporterConfig:
    """
    Read and validate the JSON directory list.

    Raises:
        ConfigurationError: If the file cannot be read or is not a valid config
    """
    try:
        async with aiofiles.open(config_file, "r", encoding="utf-8") as f:
            content = await f.read()
    except OSError as e:
        raise ConfigurationError(
            f"Error when trying to open config file '{config_file}': {e}"
        ) from e

    try:
        config = ExporterConfig.model_validate_json(content)
    except ValidationError as e:
        raise ConfigurationError(f"Error unmarshalling config '{config_file}': {e}") from e

    logging.info(f"Loaded {len(config.dirs)} directories from {config_file}")
    return config


def effective_interval(frequency: Optional[int], settings: Settings) -> int:
    """Configured interval, or the default when absent or not above the floor."""
    if frequency is None or frequency <= settings.min_scan_interval_seconds:
        return settings.default_scan_interval_seconds
    return frequency


def build_directory_spec(
    dir_config: DirectoryConfig, settings: Settings, resolve_symlinks: bool = True
) -> DirectorySpec:
    canonical = canonicalize_path(dir_config.dir) if resolve_symlinks else dir_config.dir
    return DirectorySpec(
        path=dir_config.dir,
        canonical_path=canonical,
        interval_seconds=effective_interval(dir_config.frequency, settings),
        only_files=dir_config.only_files,
        exclude=compile_patterns(dir_config.exclude_files, dir_config.dir, "exclude"),
        include=compile_patterns(dir_config.include_files, dir_config.dir, "include"),
    )


def build_directory_specs(config: ExporterConfig, settings: Settings) -> List[DirectorySpec]:
    """Turn the raw directory list into specs; any invalid pattern aborts the whole load."""
    return [build_directory_spec(dir_config, settings) for dir_config in config.dirs]

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Directory list (JSON)
    config_file: str = "directory-exporter.json"

    # Metrics endpoint
    listen_host: str = "0.0.0.0"
    listen_port: int = 2112
    metrics_namespace: str = "directory_exporter"

    # Scheduling
    tick_interval_seconds: float = 30.0
    default_scan_interval_seconds: int = 1800  # 30 minutes
    min_scan_interval_seconds: int = 30  # intervals at or below this use the default

    # Logging konfiguration
    log_level: str = "INFO"
    log_file_path: str = "logs/directory_exporter.log"
    log_retention_days: int = 30

    model_config = SettingsConfigDict(env_file="settings.env", extra="ignore")

    @property
    def log_directory(self) -> Path:
        """Returnerer log directory som Path objekt"""
        return Path(self.log_file_path).parent

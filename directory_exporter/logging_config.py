import logging
import logging.handlers
from rich.logging import RichHandler
from rich.console import Console

from .config import Settings


def setup_logging(settings: Settings, debug: bool = False) -> None:
    log_level = "DEBUG" if debug else settings.log_level.upper()

    log_dir = settings.log_directory
    log_dir.mkdir(parents=True, exist_ok=True)

    # Console output
    console = Console(width=120)
    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_level=True,
        show_path=debug,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
    )
    rich_handler.setLevel(log_level)

    # File handler with detailed format for debugging
    file_format = (
        "%(asctime)s - %(levelname)s - "
        "%(filename)s:%(lineno)d in %(funcName)s() - "
        "%(message)s"
    )

    file_handler = logging.handlers.TimedRotatingFileHandler(
        filename=settings.log_file_path,
        when="midnight",
        interval=1,
        backupCount=settings.log_retention_days,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(logging.Formatter(file_format))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear any existing handlers to avoid duplicates
    root_logger.handlers.clear()
    root_logger.addHandler(rich_handler)
    root_logger.addHandler(file_handler)

    # Silence noisy third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("watchdog").setLevel(logging.WARNING)

    logging.info(
        f"Logging initialized - File: {settings.log_file_path}, "
        f"Level: {log_level}, Retention: {settings.log_retention_days} days"
    )

"""
Centralized logging setup for the HTML Render Service.

Logging is configured once from the 'logging' section of the YAML configuration
(console and rotating file handlers). Modules obtain their logger with
`get_logger(__name__)`, which falls back to a basic setup if the application
entry point has not configured logging yet.
"""
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from html_render_service.core.config import ConfigurationManager

# Relative log file paths in the configuration are resolved against the project root.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s - %(message)s"
BASIC_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_logging_initialized = False


def _basic_fallback(reason: str) -> None:
    global _logging_initialized
    logging.basicConfig(level=logging.INFO, format=BASIC_LOG_FORMAT)
    logging.warning(f"Logging setup: {reason}. Using basicConfig.")
    _logging_initialized = True


def _add_file_handler(root_logger: logging.Logger, formatter: logging.Formatter, settings: Dict[str, Any]) -> Optional[str]:
    """Attaches a RotatingFileHandler; returns the absolute log path, or None if it failed."""
    log_path = os.path.join(PROJECT_ROOT, settings.get("path", "logs/html_render_service.log"))
    max_bytes = int(settings.get("max_bytes", 10 * 1024 * 1024))
    backup_count = int(settings.get("backup_count", 5))
    try:
        os.makedirs(os.path.dirname(log_path), exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        logging.error(f"Logging setup: Failed to configure file logging at '{log_path}': {e}. File logging disabled.", exc_info=True)
        return None
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)
    return log_path


def setup_logging(config: Optional[ConfigurationManager] = None) -> None:
    """
    Sets up centralized logging using the 'logging' section of the configuration.

    Meant to be called once at application startup (see `api/main.py`). Repeated
    calls are ignored.

    Args:
        config (Optional[ConfigurationManager]): The configuration to read. If None,
            the global `config_manager` is used.
    """
    global _logging_initialized
    if _logging_initialized:
        logging.getLogger(__name__).debug("setup_logging: already initialized.")
        return

    if config is None:
        from html_render_service.core.config import config_manager as global_config_manager
        config = global_config_manager

    log_settings: Optional[Dict[str, Any]] = config.get("logging")
    if not log_settings:
        _basic_fallback("'logging' section not found in configuration")
        return

    log_level_name = str(log_settings.get("level", "INFO")).upper()
    log_level = getattr(logging, log_level_name, logging.INFO)
    log_format = log_settings.get("format", DEFAULT_LOG_FORMAT)

    root_logger = logging.getLogger()
    # Drop handlers installed by basicConfig or an earlier setup.
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.setLevel(log_level)
    formatter = logging.Formatter(log_format)

    handlers = log_settings.get("handlers", {}) or {}
    console_enabled = bool((handlers.get("console") or {}).get("enabled", False))
    if console_enabled:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    log_path = None
    file_settings = handlers.get("file") or {}
    if file_settings.get("enabled", False):
        log_path = _add_file_handler(root_logger, formatter, file_settings)

    _logging_initialized = True
    logging.info(f"Logging system initialized. Level: {log_level_name}.")
    if console_enabled:
        logging.debug("Console logging handler enabled.")
    if log_path:
        logging.debug(f"File logging handler enabled at path: {log_path}")


def get_logger(name: str) -> logging.Logger:
    """
    Returns the logger for `name`, initializing logging with defaults first if needed.

    Args:
        name (str): Usually the calling module's `__name__`.
    """
    if not _logging_initialized:
        setup_logging()
    return logging.getLogger(name)

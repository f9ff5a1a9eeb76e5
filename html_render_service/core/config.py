"""
Configuration management for the HTML Render Service.

This module provides a singleton `ConfigurationManager` class to load and access
configuration settings from YAML files. The environment-specific file
(e.g., `development.yaml`, `production.yaml`) is chosen by the APP_ENV
environment variable.

Key Features:
- Loads settings from `html_render_service/config/<env>.yaml`.
- Defaults to the 'development' environment if APP_ENV is not set.
- Provides a global `config_manager` instance for easy access.
- Supports dot notation for accessing nested keys (e.g., "components.engine_session.load_timeout_ms").
"""
import logging
import os
import yaml
from typing import Any, Dict, Optional

from html_render_service.core.exceptions import ConfigurationError

# Directory holding the <env>.yaml files, one level up from 'core'.
CONFIG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "config")

DEFAULT_ENV = "development"

_log = logging.getLogger(__name__)


class ConfigError(Exception):
    """Base class for all configuration-loading errors."""
    pass


class ConfigFileNotFoundError(ConfigError):
    """Raised when the configuration file for an environment cannot be found."""
    pass


class InvalidYamlError(ConfigError):
    """Raised when a configuration file contains invalid YAML or is not a mapping."""
    pass


class ConfigurationManager:
    """
    Manages loading and accessing configuration settings from YAML files.

    This class is implemented as a singleton. The first instantiation loads the
    configuration; later instantiations return the existing instance.
    """
    CONFIG_DIR: str = CONFIG_DIR

    _instance: Optional['ConfigurationManager'] = None
    _config: Dict[str, Any] = {}
    _current_env: str = ""

    def __new__(cls) -> 'ConfigurationManager':
        if cls._instance is None:
            cls._instance = super(ConfigurationManager, cls).__new__(cls)
            cls._instance.load_config()
        return cls._instance

    def load_config(self, env: Optional[str] = None) -> None:
        """
        Loads configuration from the YAML file for the given environment.

        Precedence: the `env` argument, then APP_ENV, then `DEFAULT_ENV`.

        Args:
            env (Optional[str]): The environment name (e.g., "production") to load.

        Raises:
            ConfigFileNotFoundError: If the YAML file for the target environment is not found.
            InvalidYamlError: If the YAML file is malformed or not a dictionary.
        """
        self._current_env = env or os.getenv("APP_ENV", DEFAULT_ENV)
        config_file_path = os.path.join(self.CONFIG_DIR, f"{self._current_env}.yaml")

        try:
            with open(config_file_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigFileNotFoundError(
                f"Configuration file not found for environment '{self._current_env}' at '{config_file_path}'. "
                f"Ensure '{self._current_env}.yaml' exists in the '{self.CONFIG_DIR}' directory."
            )
        except yaml.YAMLError as e:
            raise InvalidYamlError(
                f"Error parsing YAML in configuration file '{config_file_path}': {e}"
            )
        if not isinstance(loaded, dict):
            raise InvalidYamlError(
                f"Configuration file '{config_file_path}' does not contain a valid YAML dictionary."
            )
        self._config = loaded

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        """
        Retrieves a configuration value, using dot notation for nested keys.

        Args:
            key (str): The configuration key (e.g., "components.readiness_probe.initial_delay_ms").
            default (Optional[Any]): The value to return if the key is not found.

        Returns:
            Any: The configuration value if found, otherwise the default value.
        """
        value: Any = self._config
        for k_part in key.split("."):
            if not isinstance(value, dict) or k_part not in value:
                return default
            value = value[k_part]
        return value

    def reload_config(self, env: Optional[str] = None) -> None:
        """Reloads the configuration, optionally switching to another environment."""
        old_env = self._current_env
        self.load_config(env or old_env or None)
        _log.info(f"Configuration reloaded: '{old_env}' -> '{self._current_env}'.")

    @property
    def current_environment(self) -> str:
        """The name of the currently loaded environment (e.g., "development")."""
        return self._current_env


# Created at first import, which triggers the initial load.
config_manager = ConfigurationManager()


def get_config(key: str, default: Optional[Any] = None) -> Any:
    """Shortcut for `config_manager.get(key, default)`."""
    return config_manager.get(key, default)


def int_setting(config: Optional[Any], key: str, default: int, minimum: int = 0) -> int:
    """
    Reads an integer setting and checks its lower bound.

    Args:
        config: Anything with a `get(key, default)` method, or None to use `default`.
        key (str): Dot-notation key, e.g. "components.engine_session.load_timeout_ms".
        default (int): Value used when the key is absent.
        minimum (int): Smallest accepted value.

    Raises:
        ConfigurationError: If the value is not an integer or is below `minimum`.
    """
    value = config.get(key, default) if config is not None else default
    if isinstance(value, bool):
        raise ConfigurationError(f"Setting '{key}' must be an integer, got {value!r}.")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Setting '{key}' must be an integer, got {value!r}.")
    if number < minimum:
        raise ConfigurationError(f"Setting '{key}' must be at least {minimum}, got {number}.")
    return number

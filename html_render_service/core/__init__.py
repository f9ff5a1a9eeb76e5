from .config import get_config, config_manager, ConfigurationManager, ConfigError, ConfigFileNotFoundError, InvalidYamlError
from .exceptions import (
    RenderServiceError,
    ConfigurationError,
    ComponentError,
    ErrorKind,
    RenderError,
    InputError,
    ResolutionError,
    SessionError,
)
from .logger import setup_logging, get_logger
from .models import ContentType, RenderEnvelope, RenderRequest, ReadinessResult, RenderResult

__all__ = [
    # Config
    "get_config",
    "config_manager",
    "ConfigurationManager",
    "ConfigError",
    "ConfigFileNotFoundError",
    "InvalidYamlError",
    # Logger
    "setup_logging",
    "get_logger",
    # Exceptions
    "RenderServiceError",
    "ConfigurationError",
    "ComponentError",
    "ErrorKind",
    "RenderError",
    "InputError",
    "ResolutionError",
    "SessionError",
    # Models
    "ContentType",
    "RenderEnvelope",
    "RenderRequest",
    "ReadinessResult",
    "RenderResult",
]

"""
Core module containing configuration, storage primitives, logging and exceptions.
"""

from spot_cli.core.config import (
    ApiConfig,
    AuthConfig,
    Config,
    LoggingConfig,
    load_config,
)
from spot_cli.core.exceptions import (
    ApiError,
    AuthRequiredError,
    ConfigError,
    DecodeError,
    NotFoundError,
    ReadOnlyTargetError,
    ReauthRequiredError,
    ScopeMissingError,
    SpotCliError,
    TransportError,
    UserInputError,
)
from spot_cli.core.jsonstore import JsonFileStore
from spot_cli.core.logger import get_logger, setup_logging, shutdown_logging
from spot_cli.core.paths import ensure_dir, resolve_cache_root

__all__ = [
    # Config
    "ApiConfig",
    "AuthConfig",
    "Config",
    "LoggingConfig",
    "load_config",
    # Exceptions
    "ApiError",
    "AuthRequiredError",
    "ConfigError",
    "DecodeError",
    "NotFoundError",
    "ReadOnlyTargetError",
    "ReauthRequiredError",
    "ScopeMissingError",
    "SpotCliError",
    "TransportError",
    "UserInputError",
    # Storage
    "JsonFileStore",
    "ensure_dir",
    "resolve_cache_root",
    # Logging
    "get_logger",
    "setup_logging",
    "shutdown_logging",
]

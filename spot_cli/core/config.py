"""
Configuration management for spot-cli.

Configuration is assembled from three layers, later layers winning:
    1. Built-in defaults
    2. An optional config.yaml (explicit --config path, otherwise
       <cache root>/config.yaml when it exists)
    3. Environment variables (a .env file in the working directory is
       loaded first through python-dotenv)

Environment variables:
    SPOT_CLI_CACHE_DIR      Override of the cache root
    SPOT_CLI_CLIENT_ID      Client ID used by `auth login`
    SPOT_CLI_REDIRECT_URI   Loopback redirect URI registered for the app
    SPOT_CLI_API_BASE       Web API base URL (trailing slash trimmed)
    SPOT_CLI_ACCOUNTS_BASE  Accounts service base URL
    SPOT_CLI_LOG_LEVEL      Console log level
    SPOT_CLI_LOG_FILE       Optional log file path
    SPOT_CLI_SKIP_PROFILE   When set, never fetch the user profile

Example config.yaml:
    auth:
      client_id: "your_client_id_here"
      redirect_uri: "http://127.0.0.1:8888/callback"
      callback_timeout: 120

    api:
      base_url: "https://api.spotify.com/v1"
      request_timeout: 30

    logging:
      level: "WARNING"
      file: null
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from spot_cli.core.exceptions import ConfigError
from spot_cli.core.paths import resolve_cache_root


CONFIG_FILENAME = "config.yaml"

DEFAULT_API_BASE = "https://api.spotify.com/v1"
DEFAULT_ACCOUNTS_BASE = "https://accounts.spotify.com"
DEFAULT_REDIRECT_URI = "http://127.0.0.1:8888/callback"
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_CALLBACK_TIMEOUT = 120.0


@dataclass(frozen=True)
class ApiConfig:
    """
    Remote endpoints and request limits.

    Attributes:
        base_url: Web API base, never ending in a slash.
        accounts_url: Accounts service base (authorize and token endpoints).
        request_timeout: Per-request timeout in seconds.
    """
    base_url: str = DEFAULT_API_BASE
    accounts_url: str = DEFAULT_ACCOUNTS_BASE
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT


@dataclass(frozen=True)
class AuthConfig:
    """
    OAuth settings.

    Attributes:
        client_id: Application client ID; None means it must be given to
                   `auth login` explicitly.
        redirect_uri: Loopback redirect registered in the developer dashboard.
        callback_timeout: Seconds to wait for the browser callback.
        skip_profile: Never call the profile endpoint to learn the user name.
    """
    client_id: str | None = None
    redirect_uri: str = DEFAULT_REDIRECT_URI
    callback_timeout: float = DEFAULT_CALLBACK_TIMEOUT
    skip_profile: bool = False


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "WARNING"
    file: Path | None = None


@dataclass(frozen=True)
class Config:
    """
    Main configuration container.

    Attributes:
        cache_dir: Root directory of every local cache file.
        api: Remote endpoint settings.
        auth: OAuth settings.
        logging: Logging settings.
    """
    cache_dir: Path
    api: ApiConfig = field(default_factory=ApiConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
    use_dotenv: bool = True
) -> Config:
    """
    Build the effective configuration.

    Args:
        config_path: Optional explicit config.yaml. It must exist when given.
        environ: Environment mapping. Defaults to os.environ.
        use_dotenv: Load a .env file into os.environ first. Ignored when an
                    explicit environ mapping is passed.

    Returns:
        A frozen Config.

    Raises:
        ConfigError: If the file is missing (explicit path only), is not
                     valid YAML, is not a mapping, or holds invalid values.
    """
    if environ is None:
        if use_dotenv:
            load_dotenv()
        environ = os.environ

    cache_dir = resolve_cache_root(environ)

    if config_path is not None:
        config_path = Path(config_path).expanduser()
        if not config_path.exists():
            raise ConfigError(
                f"Configuration file not found: {config_path}",
                details={"file_path": str(config_path)}
            )
        raw = _read_yaml(config_path)
    else:
        default_path = cache_dir / CONFIG_FILENAME
        raw = _read_yaml(default_path) if default_path.exists() else {}

    api = _parse_api_config(_section(raw, "api"), environ)
    auth = _parse_auth_config(_section(raw, "auth"), environ)
    logging_config = _parse_logging_config(_section(raw, "logging"), environ)

    return Config(cache_dir=cache_dir, api=api, auth=auth, logging=logging_config)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(path), "original_error": str(e)}
        ) from e

    try:
        raw = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file {path}",
            details={"file_path": str(path), "original_error": str(e)}
        ) from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(path)}
        )
    return raw


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return value


def _parse_api_config(section: dict[str, Any], environ: Mapping[str, str]) -> ApiConfig:
    base_url = environ.get("SPOT_CLI_API_BASE") or section.get("base_url") or DEFAULT_API_BASE
    accounts_url = (
        environ.get("SPOT_CLI_ACCOUNTS_BASE")
        or section.get("accounts_url")
        or DEFAULT_ACCOUNTS_BASE
    )
    timeout = _positive_number(
        section.get("request_timeout", DEFAULT_REQUEST_TIMEOUT), "api.request_timeout"
    )
    return ApiConfig(
        base_url=str(base_url).strip().rstrip("/"),
        accounts_url=str(accounts_url).strip().rstrip("/"),
        request_timeout=timeout
    )


def _parse_auth_config(section: dict[str, Any], environ: Mapping[str, str]) -> AuthConfig:
    client_id = environ.get("SPOT_CLI_CLIENT_ID") or section.get("client_id")
    if client_id is not None and not isinstance(client_id, str):
        raise ConfigError(
            "'auth.client_id' must be a string",
            details={"field": "auth.client_id"}
        )
    redirect_uri = (
        environ.get("SPOT_CLI_REDIRECT_URI")
        or section.get("redirect_uri")
        or DEFAULT_REDIRECT_URI
    )
    timeout = _positive_number(
        section.get("callback_timeout", DEFAULT_CALLBACK_TIMEOUT), "auth.callback_timeout"
    )
    skip_profile = bool(environ.get("SPOT_CLI_SKIP_PROFILE")) or bool(section.get("skip_profile"))
    return AuthConfig(
        client_id=client_id.strip() if client_id and client_id.strip() else None,
        redirect_uri=str(redirect_uri).strip(),
        callback_timeout=timeout,
        skip_profile=skip_profile
    )


def _parse_logging_config(
    section: dict[str, Any],
    environ: Mapping[str, str]
) -> LoggingConfig:
    level = environ.get("SPOT_CLI_LOG_LEVEL") or section.get("level") or "WARNING"
    log_file = environ.get("SPOT_CLI_LOG_FILE") or section.get("file")
    return LoggingConfig(
        level=str(level).upper(),
        file=Path(log_file).expanduser() if log_file else None
    )


def _positive_number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(
            f"'{name}' must be a positive number",
            details={"field": name, "value": value}
        )
    return float(value)

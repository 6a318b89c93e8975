"""
Cache root resolution for spot-cli.

All local state (token metadata, snapshots, last search, pins and the
optional config.yaml) lives under a single cache root directory.

Precedence:
    1. SPOT_CLI_CACHE_DIR environment variable
    2. $XDG_CACHE_HOME/spot-cli
    3. Platform application data:
       - Windows: %LOCALAPPDATA%, %APPDATA%, then %USERPROFILE%/.cache
       - macOS: ~/Library/Caches
    4. $HOME/.cache/spot-cli

Resolution is pure (it only reads the environment mapping it is given);
creating the directory is a separate explicit step via ensure_dir().
"""

import os
import sys
from pathlib import Path
from typing import Mapping

from spot_cli.core.exceptions import ConfigError


APP_NAME = "spot-cli"
CACHE_DIR_ENV = "SPOT_CLI_CACHE_DIR"


def resolve_cache_root(
    environ: Mapping[str, str] | None = None,
    platform: str | None = None
) -> Path:
    """
    Resolve the cache root directory without touching the filesystem.

    Args:
        environ: Environment mapping to read. Defaults to os.environ.
        platform: Platform name as in sys.platform. Defaults to the
                  running platform.

    Returns:
        Path of the cache root.

    Raises:
        ConfigError: If no candidate location can be determined.
    """
    env = os.environ if environ is None else environ
    platform = sys.platform if platform is None else platform

    override = env.get(CACHE_DIR_ENV, "").strip()
    if override:
        return Path(override).expanduser()

    xdg = env.get("XDG_CACHE_HOME", "").strip()
    if xdg:
        return Path(xdg) / APP_NAME

    if platform.startswith("win"):
        for var in ("LOCALAPPDATA", "APPDATA"):
            value = env.get(var, "").strip()
            if value:
                return Path(value) / APP_NAME
        profile = env.get("USERPROFILE", "").strip()
        if profile:
            return Path(profile) / ".cache" / APP_NAME

    home = env.get("HOME", "").strip()
    if home:
        if platform == "darwin":
            return Path(home) / "Library" / "Caches" / APP_NAME
        return Path(home) / ".cache" / APP_NAME

    raise ConfigError(
        "unable to determine cache directory",
        details={"checked": [CACHE_DIR_ENV, "XDG_CACHE_HOME", "HOME"]},
        hint=f"set {CACHE_DIR_ENV}"
    )


def ensure_dir(path: Path) -> Path:
    """Create path (and parents) if missing and return it."""
    path.mkdir(parents=True, exist_ok=True)
    return path

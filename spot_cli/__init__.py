"""
spot-cli: control Spotify playback, playlists and library from the terminal.

The package is organized as:
    core: configuration, paths, JSON storage, logging and exceptions
    cache: metadata, snapshot, last-search and pin stores
    spotify: models, URI parsing, OAuth session, transport and API clients
    resolver: query, pin and last-search resolution with fuzzy ranking
    context: AppContext composing all of the above
    cli: the `spot` command
"""

__version__ = "0.3.0"

from spot_cli.context import AppContext
from spot_cli.core.exceptions import SpotCliError

__all__ = ["AppContext", "SpotCliError", "__version__"]

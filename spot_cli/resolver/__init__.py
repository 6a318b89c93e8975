"""
Resolver: turns queries, pin aliases and cached searches into resources.
"""

from spot_cli.resolver.playlist import (
    PlaylistMatch,
    PlaylistSelection,
    match_from_items,
    rank_playlists,
    resolve_for_read,
    resolve_for_write,
    select_playlist,
)
from spot_cli.resolver.resource import resolve_target
from spot_cli.resolver.scoring import build_query, fuzzy_score, is_writable, validate_pick

__all__ = [
    "PlaylistMatch",
    "PlaylistSelection",
    "build_query",
    "fuzzy_score",
    "is_writable",
    "match_from_items",
    "rank_playlists",
    "resolve_for_read",
    "resolve_for_write",
    "resolve_target",
    "select_playlist",
    "validate_pick",
]

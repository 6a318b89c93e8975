"""
Spotify Web API layer: models, URI parsing, OAuth session, transport and clients.

Only the dependency-free parts are re-exported here so that the cache
package can import models without pulling in the HTTP stack.
"""

from spot_cli.spotify.models import (
    Album,
    AlbumTrack,
    Artist,
    Device,
    PlayerStatus,
    Playlist,
    PlaylistDetail,
    QueueState,
    SearchItem,
    SearchKind,
    SearchResults,
    UserProfile,
)
from spot_cli.spotify.uri import (
    ResourceType,
    SpotifyResource,
    parse_resource,
    try_parse_resource,
)

__all__ = [
    "Album",
    "AlbumTrack",
    "Artist",
    "Device",
    "PlayerStatus",
    "Playlist",
    "PlaylistDetail",
    "QueueState",
    "SearchItem",
    "SearchKind",
    "SearchResults",
    "UserProfile",
    "ResourceType",
    "SpotifyResource",
    "parse_resource",
    "try_parse_resource",
]

"""
Facade over the per-family API clients.

All families share one HttpTransport, and through it one requests.Session
and one token source.

Usage:
    client = SpotifyClient(transport)
    client.playback.pause()
    results = client.search.search("radar", SearchKind.PLAYLIST)
"""

from spot_cli.spotify.albums import AlbumsClient
from spot_cli.spotify.artists import ArtistsClient
from spot_cli.spotify.devices import DevicesClient
from spot_cli.spotify.library import LibraryClient
from spot_cli.spotify.playback import PlaybackClient
from spot_cli.spotify.playlists import PlaylistsClient
from spot_cli.spotify.search import SearchClient
from spot_cli.spotify.tracks import TracksClient
from spot_cli.spotify.transport import HttpTransport
from spot_cli.spotify.users import UsersClient


class SpotifyClient:
    def __init__(self, transport: HttpTransport) -> None:
        self.transport = transport
        self.playback = PlaybackClient(transport)
        self.devices = DevicesClient(transport)
        self.search = SearchClient(transport)
        self.playlists = PlaylistsClient(transport)
        self.albums = AlbumsClient(transport)
        self.artists = ArtistsClient(transport)
        self.tracks = TracksClient(transport)
        self.library = LibraryClient(transport)
        self.users = UsersClient(transport)

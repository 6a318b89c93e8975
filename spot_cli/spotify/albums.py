"""
Album details with the complete track list.
"""

from spot_cli.spotify.models import Album
from spot_cli.spotify.transport import PAGE_LIMIT, HttpTransport


class AlbumsClient:
    def __init__(self, transport: HttpTransport) -> None:
        self.transport = transport

    def get(self, album_id: str) -> Album:
        """
        Fetch the album header, then every page of its tracks.

        The album's duration_ms is the sum over all tracks, not only the
        first page embedded in the header.
        """
        header = self.transport.get_json(f"/albums/{album_id}") or {}
        tracks = self.transport.paginate(f"/albums/{album_id}/tracks", limit=PAGE_LIMIT)
        return Album.from_spotify_api(header, tracks)

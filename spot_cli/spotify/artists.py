from spot_cli.spotify.models import Artist
from spot_cli.spotify.transport import HttpTransport


class ArtistsClient:
    def __init__(self, transport: HttpTransport) -> None:
        self.transport = transport

    def get(self, artist_id: str) -> Artist:
        return Artist.from_spotify_api(self.transport.get_json(f"/artists/{artist_id}") or {})

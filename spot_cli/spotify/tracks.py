from spot_cli.spotify.models import SearchItem, SearchKind
from spot_cli.spotify.transport import HttpTransport


class TracksClient:
    def __init__(self, transport: HttpTransport) -> None:
        self.transport = transport

    def get(self, track_id: str) -> SearchItem:
        payload = self.transport.get_json(f"/tracks/{track_id}") or {}
        return SearchItem.from_spotify_api(payload, SearchKind.TRACK)

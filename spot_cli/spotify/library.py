"""
Saved tracks ("Liked Songs").

Endpoints taking an ids parameter accept at most MAX_IDS_PER_REQUEST IDs,
so longer lists are split.
"""

from spot_cli.core.exceptions import UserInputError
from spot_cli.spotify.models import SearchItem, SearchKind
from spot_cli.spotify.transport import PAGE_LIMIT, HttpTransport


MAX_IDS_PER_REQUEST = 50


class LibraryClient:
    def __init__(self, transport: HttpTransport) -> None:
        self.transport = transport

    def like(self, track_ids: str | list[str]) -> None:
        for chunk in self._chunks(track_ids):
            self.transport.execute("PUT", "/me/tracks", query={"ids": ",".join(chunk)})

    def unlike(self, track_ids: str | list[str]) -> None:
        for chunk in self._chunks(track_ids):
            self.transport.execute("DELETE", "/me/tracks", query={"ids": ",".join(chunk)})

    def saved_tracks(self, limit: int = 20) -> list[SearchItem]:
        """Most recently saved tracks, newest first."""
        entries = self.transport.paginate(
            "/me/tracks",
            limit=min(max(1, limit), PAGE_LIMIT),
            max_items=max(1, limit),
        )
        return [
            SearchItem.from_spotify_api(entry["track"], SearchKind.TRACK)
            for entry in entries
            if entry and entry.get("track")
        ]

    def check(self, track_ids: str | list[str]) -> list[bool]:
        """Whether each track is saved, in input order."""
        saved: list[bool] = []
        for chunk in self._chunks(track_ids):
            payload = self.transport.get_json(
                "/me/tracks/contains", {"ids": ",".join(chunk)}
            ) or []
            saved.extend(bool(flag) for flag in payload)
        return saved

    def _chunks(self, track_ids: str | list[str]) -> list[list[str]]:
        return chunk_ids(track_ids, "track")


def chunk_ids(ids: str | list[str], noun: str = "track") -> list[list[str]]:
    """Split IDs into request-sized chunks; a single string is one ID."""
    if isinstance(ids, str):
        ids = [ids]
    ids = [i for i in ids if i]
    if not ids:
        raise UserInputError(f"no {noun} ids given")
    return [ids[i:i + MAX_IDS_PER_REQUEST] for i in range(0, len(ids), MAX_IDS_PER_REQUEST)]

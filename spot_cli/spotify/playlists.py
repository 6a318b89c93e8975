"""
Playlist operations.

Besides the plain REST wrappers this module derives three composite
operations from them:

    duplicate    create "<name> (Copy)" and copy every track URI into it
    deduplicate  remove every duplicated URI, then re-insert one copy at the
                 position its first occurrence should have
    items        every track URI of a playlist, across all pages

Track additions and removals are sent in chunks of MAX_TRACKS_PER_REQUEST,
the largest batch the API accepts.
"""

from typing import Any

from spot_cli.core.exceptions import UserInputError
from spot_cli.core.logger import get_logger
from spot_cli.spotify.models import Playlist, PlaylistDetail, UserProfile
from spot_cli.spotify.transport import PAGE_LIMIT, HttpTransport


logger = get_logger(__name__)

MAX_TRACKS_PER_REQUEST = 100
COPY_SUFFIX = " (Copy)"


def _chunks(values: list[str], size: int) -> list[list[str]]:
    return [values[i:i + size] for i in range(0, len(values), size)]


def find_duplicates(uris: list[str]) -> list[str]:
    """URIs that occur more than once, one entry per extra occurrence, in order."""
    seen: set[str] = set()
    extras: list[str] = []
    for uri in uris:
        if uri in seen:
            extras.append(uri)
        else:
            seen.add(uri)
    return extras


class PlaylistsClient:
    def __init__(self, transport: HttpTransport) -> None:
        self.transport = transport

    def get(self, playlist_id: str) -> PlaylistDetail:
        payload = self.transport.get_json(f"/playlists/{playlist_id}") or {}
        return PlaylistDetail.from_spotify_api(payload)

    def list_all(self) -> list[Playlist]:
        """Every playlist in the user's library (owned and followed)."""
        items = self.transport.paginate("/me/playlists", limit=PAGE_LIMIT)
        return [Playlist.from_spotify_api(p) for p in items if p]

    def list_for_user(self, user_id: str) -> list[Playlist]:
        items = self.transport.paginate(f"/users/{user_id}/playlists", limit=PAGE_LIMIT)
        return [Playlist.from_spotify_api(p) for p in items if p]

    def items(self, playlist_id: str) -> list[str]:
        """Track URIs of the playlist in playlist order."""
        entries = self.transport.paginate(
            f"/playlists/{playlist_id}/tracks",
            {"fields": "items(track(uri)),next"},
            limit=PAGE_LIMIT,
        )
        return [
            entry["track"]["uri"]
            for entry in entries
            if entry and entry.get("track") and entry["track"].get("uri")
        ]

    def create(
        self,
        name: str,
        public: bool | None = None,
        description: str | None = None
    ) -> PlaylistDetail:
        name = (name or "").strip()
        if not name:
            raise UserInputError("playlist name must not be empty")
        user = UserProfile.from_spotify_api(self.transport.get_json("/me") or {})
        body: dict[str, Any] = {"name": name}
        if public is not None:
            body["public"] = public
        if description is not None:
            body["description"] = description
        payload = self.transport.send("POST", f"/users/{user.id}/playlists", body=body) or {}
        logger.info(f"Created playlist '{name}'")
        return PlaylistDetail.from_spotify_api(payload)

    def edit(
        self,
        playlist_id: str,
        name: str | None = None,
        description: str | None = None,
        public: bool | None = None
    ) -> None:
        body: dict[str, Any] = {}
        if name is not None:
            body["name"] = name
        if description is not None:
            body["description"] = description
        if public is not None:
            body["public"] = public
        if not body:
            raise UserInputError(
                "no changes specified",
                hint="use --name, --description, --public or --private"
            )
        self.transport.execute("PUT", f"/playlists/{playlist_id}", body=body)

    def add_tracks(
        self,
        playlist_id: str,
        uris: list[str],
        position: int | None = None
    ) -> None:
        if not uris:
            raise UserInputError("no tracks to add")
        for chunk in _chunks(list(uris), MAX_TRACKS_PER_REQUEST):
            body: dict[str, Any] = {"uris": chunk}
            if position is not None:
                body["position"] = position
                position += len(chunk)
            self.transport.execute("POST", f"/playlists/{playlist_id}/tracks", body=body)

    def remove_tracks(self, playlist_id: str, uris: list[str]) -> None:
        """Remove every occurrence of each URI."""
        if not uris:
            raise UserInputError("no tracks to remove")
        for chunk in _chunks(list(uris), MAX_TRACKS_PER_REQUEST):
            self.transport.execute(
                "DELETE",
                f"/playlists/{playlist_id}/tracks",
                body={"tracks": [{"uri": uri} for uri in chunk]},
            )

    def reorder(
        self,
        playlist_id: str,
        range_start: int,
        insert_before: int,
        range_length: int = 1
    ) -> None:
        if range_start < 0 or insert_before < 0:
            raise UserInputError("positions must not be negative")
        if range_length < 1:
            raise UserInputError("count must be 1 or greater")
        self.transport.execute(
            "PUT",
            f"/playlists/{playlist_id}/tracks",
            body={
                "range_start": range_start,
                "insert_before": insert_before,
                "range_length": range_length,
            },
        )

    def follow(self, playlist_id: str, public: bool | None = None) -> None:
        body = {"public": public} if public is not None else None
        self.transport.execute("PUT", f"/playlists/{playlist_id}/followers", body=body)

    def unfollow(self, playlist_id: str) -> None:
        self.transport.execute("DELETE", f"/playlists/{playlist_id}/followers")

    def duplicate(self, playlist_id: str, name: str | None = None) -> PlaylistDetail:
        """Copy a playlist's tracks into a new private playlist."""
        source = self.get(playlist_id)
        uris = self.items(playlist_id)
        copy = self.create(
            name or f"{source.name}{COPY_SUFFIX}",
            public=False,
            description=source.description,
        )
        if uris:
            self.add_tracks(copy.id, uris)
        return copy

    def deduplicate(self, playlist_id: str, dry_run: bool = False) -> list[str]:
        """
        Remove duplicate tracks, keeping the first occurrence in place.

        Returns:
            One URI per removed occurrence, in playlist order.
        """
        uris = self.items(playlist_id)
        extras = find_duplicates(uris)
        if not extras or dry_run:
            return extras

        deduplicated = list(dict.fromkeys(uris))
        duplicated = list(dict.fromkeys(extras))
        self.remove_tracks(playlist_id, duplicated)

        # Re-insert in ascending target order so each position is final.
        targets = sorted((deduplicated.index(uri), uri) for uri in duplicated)
        for index, uri in targets:
            self.transport.execute(
                "POST",
                f"/playlists/{playlist_id}/tracks",
                body={"uris": [uri], "position": index},
            )
        logger.info(f"Removed {len(extras)} duplicate track(s)")
        return extras

    def cover(self, playlist_id: str) -> list[str]:
        """Cover image URLs, largest first."""
        payload = self.transport.get_json(f"/playlists/{playlist_id}/images") or []
        return [image["url"] for image in payload if image and image.get("url")]

"""
Data models for Spotify entities.

This module defines immutable dataclasses for everything the Web API
returns that the CLI works with: devices, playlists, search items,
player state, albums, artists and the user profile.

Design Decisions:
    - All dataclasses are frozen; sequences are stored as tuples
    - from_spotify_api() maps one remote JSON shape onto a model and fills
      only the fields that shape defines
    - to_dict()/from_dict() give the compact form written to cache files
    - SearchItem is one type tagged by SearchKind rather than one class
      per kind, so cached searches of any kind share a single format

Usage:
    from spot_cli.spotify.models import Playlist, SearchItem, SearchKind

    playlist = Playlist.from_spotify_api(payload)
    item = SearchItem.from_spotify_api(track_payload, SearchKind.TRACK)
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from spot_cli.core.exceptions import UserInputError


class SearchKind(str, Enum):
    """Kinds of catalog objects a search can target."""

    TRACK = "track"
    ALBUM = "album"
    ARTIST = "artist"
    PLAYLIST = "playlist"
    ALL = "all"

    @classmethod
    def parse(cls, value: str) -> "SearchKind":
        """Parse a user-supplied kind name (case-insensitive, plural allowed)."""
        text = (value or "").strip().lower()
        if text.endswith("s") and text[:-1] in {k.value for k in cls}:
            text = text[:-1]
        try:
            return cls(text)
        except ValueError:
            choices = ", ".join(k.value for k in cls)
            raise UserInputError(
                f"unknown search kind '{value}'",
                hint=f"choose one of: {choices}"
            ) from None

    @classmethod
    def concrete(cls) -> tuple["SearchKind", ...]:
        """Concrete kinds in the order an ALL search concatenates them."""
        return (cls.TRACK, cls.ALBUM, cls.ARTIST, cls.PLAYLIST)

    @property
    def result_key(self) -> str:
        """Key of this kind's page in a search response ('tracks', ...)."""
        return f"{self.value}s"

    @property
    def label(self) -> str:
        return self.value.capitalize()


def _artist_names(data: dict[str, Any]) -> tuple[str, ...]:
    return tuple(
        a.get("name", "") for a in (data.get("artists") or []) if a and a.get("name")
    )


def _owner_name(data: dict[str, Any]) -> str | None:
    owner = data.get("owner") or {}
    return owner.get("display_name") or owner.get("id") or None


@dataclass(frozen=True)
class Device:
    """
    A playback device known to the account.

    Attributes:
        id: Device ID, used to transfer playback.
        name: Human-readable device name.
        volume_percent: Current volume, None when the device hides it.
        is_active: True for the device currently playing.
        type: Device type as reported ("Computer", "Smartphone", ...).
    """
    id: str
    name: str
    volume_percent: int | None = None
    is_active: bool = False
    type: str | None = None

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "Device":
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            volume_percent=data.get("volume_percent"),
            is_active=bool(data.get("is_active", False)),
            type=data.get("type"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "volume_percent": self.volume_percent,
            "is_active": self.is_active,
            "type": self.type,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Device":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            volume_percent=data.get("volume_percent"),
            is_active=bool(data.get("is_active", False)),
            type=data.get("type"),
        )


@dataclass(frozen=True)
class Playlist:
    """
    Playlist summary as listed in the user's library.

    Attributes:
        id: Playlist ID.
        name: Playlist name.
        owner: Owner display name (falls back to the owner's user ID).
        collaborative: True if any follower may edit it.
        public: Visibility, None when unknown.
    """
    id: str
    name: str
    owner: str | None = None
    collaborative: bool = False
    public: bool | None = None

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "Playlist":
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            owner=_owner_name(data),
            collaborative=bool(data.get("collaborative", False)),
            public=data.get("public"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "owner": self.owner,
            "collaborative": self.collaborative,
            "public": self.public,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Playlist":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            owner=data.get("owner"),
            collaborative=bool(data.get("collaborative", False)),
            public=data.get("public"),
        )

    @property
    def uri(self) -> str:
        return f"spotify:playlist:{self.id}"


@dataclass(frozen=True)
class PlaylistDetail:
    """
    Full playlist header returned by GET /playlists/{id}.

    Superset of Playlist plus the URI, track count and description.
    """
    id: str
    name: str
    uri: str
    owner: str | None = None
    owner_id: str | None = None
    collaborative: bool = False
    public: bool | None = None
    tracks_total: int | None = None
    description: str | None = None

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "PlaylistDetail":
        tracks = data.get("tracks") or data.get("items") or {}
        playlist_id = data.get("id") or ""
        return cls(
            id=playlist_id,
            name=data.get("name") or "",
            uri=data.get("uri") or f"spotify:playlist:{playlist_id}",
            owner=_owner_name(data),
            owner_id=(data.get("owner") or {}).get("id"),
            collaborative=bool(data.get("collaborative", False)),
            public=data.get("public"),
            tracks_total=tracks.get("total") if isinstance(tracks, dict) else None,
            description=data.get("description") or None,
        )

    def summary(self) -> Playlist:
        return Playlist(
            id=self.id,
            name=self.name,
            owner=self.owner,
            collaborative=self.collaborative,
            public=self.public,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "uri": self.uri,
            "owner": self.owner,
            "collaborative": self.collaborative,
            "public": self.public,
            "tracks_total": self.tracks_total,
            "description": self.description,
        }


@dataclass(frozen=True)
class SearchItem:
    """
    One catalog object from a search, tagged by kind.

    Only the fields the kind defines are filled: tracks carry artists,
    album and duration; albums carry artists; playlists carry owner.

    Attributes:
        id: Object ID.
        name: Display name.
        uri: Spotify URI of the object.
        kind: Which catalog kind this item is.
        artists: Artist names (tracks and albums).
        album: Album name (tracks).
        duration_ms: Track length (tracks).
        owner: Owner display name (playlists).
        score: Fuzzy score when the item came out of a local ranking.
    """
    id: str
    name: str
    uri: str
    kind: SearchKind
    artists: tuple[str, ...] = field(default_factory=tuple)
    album: str | None = None
    duration_ms: int | None = None
    owner: str | None = None
    score: float | None = None

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any], kind: SearchKind) -> "SearchItem":
        """
        Create a SearchItem from one entry of a search result page.

        Args:
            data: The track/album/artist/playlist object.
            kind: The concrete kind the entry was listed under.
        """
        item_id = data.get("id") or ""
        base = dict(
            id=item_id,
            name=data.get("name") or "",
            uri=data.get("uri") or f"spotify:{kind.value}:{item_id}",
            kind=kind,
        )
        if kind is SearchKind.TRACK:
            return cls(
                **base,
                artists=_artist_names(data),
                album=(data.get("album") or {}).get("name"),
                duration_ms=data.get("duration_ms"),
            )
        if kind is SearchKind.ALBUM:
            return cls(**base, artists=_artist_names(data))
        if kind is SearchKind.PLAYLIST:
            return cls(**base, owner=_owner_name(data))
        return cls(**base)

    def with_score(self, score: float) -> "SearchItem":
        return replace(self, score=score)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "uri": self.uri,
            "kind": self.kind.value,
            "artists": list(self.artists),
        }
        for key in ("album", "duration_ms", "owner", "score"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchItem":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            uri=data.get("uri", ""),
            kind=SearchKind(data["kind"]),
            artists=tuple(data.get("artists") or ()),
            album=data.get("album"),
            duration_ms=data.get("duration_ms"),
            owner=data.get("owner"),
            score=data.get("score"),
        )


@dataclass(frozen=True)
class SearchResults:
    """Search results for one kind (or ALL, with items of mixed kinds)."""
    kind: SearchKind
    items: tuple[SearchItem, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "items": [i.to_dict() for i in self.items]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchResults":
        return cls(
            kind=SearchKind(data["kind"]),
            items=tuple(SearchItem.from_dict(i) for i in data.get("items") or ()),
        )


@dataclass(frozen=True)
class PlayerStatus:
    """
    Current playback state.

    An idle status (nothing playing, no active device) is what
    GET /me/player answers with 204 No Content.
    """
    is_playing: bool = False
    track: SearchItem | None = None
    device: Device | None = None
    progress_ms: int | None = None
    shuffle_state: bool | None = None
    repeat_state: str | None = None
    context_uri: str | None = None

    @classmethod
    def idle(cls) -> "PlayerStatus":
        return cls()

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "PlayerStatus":
        item = data.get("item")
        device = data.get("device")
        context = data.get("context") or {}
        return cls(
            is_playing=bool(data.get("is_playing", False)),
            track=(
                SearchItem.from_spotify_api(item, SearchKind.TRACK)
                if item and item.get("type", "track") == "track"
                else None
            ),
            device=Device.from_spotify_api(device) if device else None,
            progress_ms=data.get("progress_ms"),
            shuffle_state=data.get("shuffle_state"),
            repeat_state=data.get("repeat_state"),
            context_uri=context.get("uri"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_playing": self.is_playing,
            "track": self.track.to_dict() if self.track else None,
            "device": self.device.to_dict() if self.device else None,
            "progress_ms": self.progress_ms,
            "shuffle_state": self.shuffle_state,
            "repeat_state": self.repeat_state,
            "context_uri": self.context_uri,
        }


@dataclass(frozen=True)
class QueueState:
    """The user's queue: what is playing now and what comes next."""
    now_playing: SearchItem | None = None
    queue: tuple[SearchItem, ...] = field(default_factory=tuple)

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any], limit: int | None = None) -> "QueueState":
        current = data.get("currently_playing")
        items = [
            SearchItem.from_spotify_api(t, SearchKind.TRACK)
            for t in (data.get("queue") or [])
            if t
        ]
        if limit is not None:
            items = items[:max(0, limit)]
        return cls(
            now_playing=SearchItem.from_spotify_api(current, SearchKind.TRACK) if current else None,
            queue=tuple(items),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "now_playing": self.now_playing.to_dict() if self.now_playing else None,
            "queue": [t.to_dict() for t in self.queue],
        }


@dataclass(frozen=True)
class AlbumTrack:
    name: str
    duration_ms: int = 0
    track_number: int | None = None

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "AlbumTrack":
        return cls(
            name=data.get("name") or "",
            duration_ms=int(data.get("duration_ms") or 0),
            track_number=data.get("track_number"),
        )


@dataclass(frozen=True)
class Album:
    """
    Album header plus its complete track list.

    Attributes:
        duration_ms: Sum of the durations of every track on the album.
    """
    id: str
    name: str
    uri: str
    artists: tuple[str, ...] = field(default_factory=tuple)
    release_date: str | None = None
    total_tracks: int | None = None
    tracks: tuple[AlbumTrack, ...] = field(default_factory=tuple)
    duration_ms: int = 0

    @classmethod
    def from_spotify_api(
        cls,
        data: dict[str, Any],
        track_items: list[dict[str, Any]]
    ) -> "Album":
        """
        Create an Album from the header payload and all track pages.

        Args:
            data: Response of GET /albums/{id}.
            track_items: Every item of /albums/{id}/tracks, all pages.
        """
        tracks = tuple(AlbumTrack.from_spotify_api(t) for t in track_items if t)
        album_id = data.get("id") or ""
        return cls(
            id=album_id,
            name=data.get("name") or "",
            uri=data.get("uri") or f"spotify:album:{album_id}",
            artists=_artist_names(data),
            release_date=data.get("release_date"),
            total_tracks=data.get("total_tracks"),
            tracks=tracks,
            duration_ms=sum(t.duration_ms for t in tracks),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "uri": self.uri,
            "artists": list(self.artists),
            "release_date": self.release_date,
            "total_tracks": self.total_tracks,
            "tracks": [
                {"name": t.name, "duration_ms": t.duration_ms, "track_number": t.track_number}
                for t in self.tracks
            ],
            "duration_ms": self.duration_ms,
        }


@dataclass(frozen=True)
class Artist:
    id: str
    name: str
    uri: str
    genres: tuple[str, ...] = field(default_factory=tuple)
    followers: int | None = None

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "Artist":
        artist_id = data.get("id") or ""
        return cls(
            id=artist_id,
            name=data.get("name") or "",
            uri=data.get("uri") or f"spotify:artist:{artist_id}",
            genres=tuple(data.get("genres") or ()),
            followers=(data.get("followers") or {}).get("total"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "uri": self.uri,
            "genres": list(self.genres),
            "followers": self.followers,
        }


@dataclass(frozen=True)
class UserProfile:
    """
    A Spotify user as returned by GET /me or GET /users/{id}.

    country, email and product are only present for the signed-in user.
    """
    id: str
    display_name: str | None = None
    country: str | None = None
    email: str | None = None
    product: str | None = None
    followers: int | None = None

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "UserProfile":
        return cls(
            id=data.get("id") or "",
            display_name=data.get("display_name") or None,
            country=data.get("country") or None,
            email=data.get("email") or None,
            product=data.get("product") or None,
            followers=(data.get("followers") or {}).get("total"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "country": self.country,
            "email": self.email,
            "product": self.product,
            "followers": self.followers,
        }

    @property
    def name(self) -> str:
        """Name used for writability checks: display name, else user ID."""
        return self.display_name or self.id

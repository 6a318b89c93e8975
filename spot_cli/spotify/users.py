"""
User profiles, top items and followed artists.

Top items are ranked by Spotify over one of three time windows:

    short   ~4 weeks      (short_term)
    medium  ~6 months     (medium_term, the default)
    long    several years (long_term)
"""

from spot_cli.core.exceptions import UserInputError
from spot_cli.spotify.library import chunk_ids
from spot_cli.spotify.models import SearchItem, SearchKind, UserProfile
from spot_cli.spotify.transport import PAGE_LIMIT, HttpTransport


TIME_RANGES = {
    "short": "short_term",
    "medium": "medium_term",
    "long": "long_term",
}

TIME_RANGE_LABELS = {
    "short": "4 weeks",
    "medium": "6 months",
    "long": "all time",
}

TOP_KINDS = (SearchKind.TRACK, SearchKind.ARTIST)


class UsersClient:
    def __init__(self, transport: HttpTransport) -> None:
        self.transport = transport

    def profile(self) -> UserProfile:
        """The signed-in user."""
        return UserProfile.from_spotify_api(self.transport.get_json("/me") or {})

    def get(self, user_id: str) -> UserProfile:
        user_id = (user_id or "").strip()
        if not user_id:
            raise UserInputError("missing user id")
        return UserProfile.from_spotify_api(self.transport.get_json(f"/users/{user_id}") or {})

    def top(self, kind: SearchKind, time_range: str = "medium", limit: int = 20) -> list[SearchItem]:
        """
        The user's top tracks or artists, best first.

        Args:
            kind: SearchKind.TRACK or SearchKind.ARTIST.
            time_range: "short", "medium" or "long".
            limit: Number of items, clamped to 1..50.

        Raises:
            UserInputError: Unsupported kind or time range.
        """
        if kind not in TOP_KINDS:
            raise UserInputError(f"top items are tracks or artists, not {kind.value}s")
        if time_range not in TIME_RANGES:
            raise UserInputError(
                f"unknown time range '{time_range}'",
                hint=f"choose one of: {', '.join(TIME_RANGES)}"
            )
        payload = self.transport.get_json(
            f"/me/top/{kind.result_key}",
            {
                "time_range": TIME_RANGES[time_range],
                "limit": min(max(1, limit), PAGE_LIMIT),
            },
        ) or {}
        return [
            SearchItem.from_spotify_api(item, kind)
            for item in payload.get("items") or []
            if item
        ]

    def follow_artists(self, artist_ids: str | list[str]) -> None:
        for chunk in chunk_ids(artist_ids, "artist"):
            self.transport.execute(
                "PUT", "/me/following", query={"type": "artist", "ids": ",".join(chunk)}
            )

    def unfollow_artists(self, artist_ids: str | list[str]) -> None:
        for chunk in chunk_ids(artist_ids, "artist"):
            self.transport.execute(
                "DELETE", "/me/following", query={"type": "artist", "ids": ",".join(chunk)}
            )

    def follows_artists(self, artist_ids: str | list[str]) -> list[bool]:
        """Whether the user follows each artist, in input order."""
        following: list[bool] = []
        for chunk in chunk_ids(artist_ids, "artist"):
            payload = self.transport.get_json(
                "/me/following/contains", {"type": "artist", "ids": ",".join(chunk)}
            ) or []
            following.extend(bool(flag) for flag in payload)
        return following

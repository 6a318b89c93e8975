"""
Playback control: transport controls, player state, settings and queue.
"""

from spot_cli.core.exceptions import UserInputError
from spot_cli.spotify.models import PlayerStatus, QueueState
from spot_cli.spotify.transport import HttpTransport


REPEAT_MODES = ("off", "track", "context")


class PlaybackClient:
    def __init__(self, transport: HttpTransport) -> None:
        self.transport = transport

    def play(self) -> None:
        """Resume playback on the active device."""
        self.transport.execute("PUT", "/me/player/play")

    def pause(self) -> None:
        self.transport.execute("PUT", "/me/player/pause")

    def next(self) -> None:
        self.transport.execute("POST", "/me/player/next")

    def previous(self) -> None:
        self.transport.execute("POST", "/me/player/previous")

    def play_context(self, uri: str) -> None:
        """Start an album, playlist or artist context."""
        self.transport.execute("PUT", "/me/player/play", body={"context_uri": uri})

    def play_track(self, uri: str) -> None:
        self.transport.execute("PUT", "/me/player/play", body={"uris": [uri]})

    def status(self) -> PlayerStatus:
        """Current player state; an idle status when nothing is active (204)."""
        payload = self.transport.get_json("/me/player")
        if not payload:
            return PlayerStatus.idle()
        return PlayerStatus.from_spotify_api(payload)

    def shuffle(self, state: bool) -> None:
        self.transport.execute("PUT", "/me/player/shuffle", query={"state": state})

    def repeat(self, mode: str) -> None:
        mode = (mode or "").lower()
        if mode not in REPEAT_MODES:
            raise UserInputError(
                f"invalid repeat mode '{mode}'",
                hint=f"choose one of: {', '.join(REPEAT_MODES)}"
            )
        self.transport.execute("PUT", "/me/player/repeat", query={"state": mode})

    def set_volume(self, percent: int) -> None:
        if not 0 <= percent <= 100:
            raise UserInputError(f"volume must be between 0 and 100; got {percent}")
        self.transport.execute("PUT", "/me/player/volume", query={"volume_percent": percent})

    def seek(self, position_ms: int) -> None:
        if position_ms < 0:
            raise UserInputError(f"position must not be negative; got {position_ms}")
        self.transport.execute("PUT", "/me/player/seek", query={"position_ms": position_ms})

    def queue(self, limit: int = 10) -> QueueState:
        """The current track and at most limit upcoming tracks."""
        payload = self.transport.get_json("/me/player/queue") or {}
        return QueueState.from_spotify_api(payload, limit=limit)

    def add_to_queue(self, uri: str) -> None:
        self.transport.execute("POST", "/me/player/queue", query={"uri": uri})

"""
Playback devices.
"""

from spot_cli.spotify.models import Device
from spot_cli.spotify.transport import HttpTransport


class DevicesClient:
    def __init__(self, transport: HttpTransport) -> None:
        self.transport = transport

    def list(self) -> list[Device]:
        payload = self.transport.get_json("/me/player/devices") or {}
        return [Device.from_spotify_api(d) for d in payload.get("devices") or [] if d]

    def set_active(self, device_id: str) -> None:
        """Transfer playback to device_id and start playing there."""
        self.transport.execute(
            "PUT",
            "/me/player",
            body={"device_ids": [device_id], "play": True},
        )

"""
Parsing of Spotify URIs and open.spotify.com URLs.

Accepted shapes (all whitespace is removed first):
    spotify:<type>:<id>
    spotify:<type>:<id>:<anything>
    spotify:user:<uid>:<type>:<id>          (uid is ignored)
    http(s)://<host>.spotify.com/<type>/<id>[?query][#fragment]

<type> is one of track, album, playlist, artist. Anything after the first
':', '?' or '#' in the id is dropped. Every other input is rejected;
nothing is guessed.

Example:
    resource = parse_resource("https://open.spotify.com/album/X?si=y")
    resource.type     # ResourceType.ALBUM
    resource.uri      # "spotify:album:X"
"""

import re
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlparse

from spot_cli.core.exceptions import UserInputError


URI_SCHEME = "spotify"
PUBLIC_DOMAIN = "spotify.com"
OPEN_URL_BASE = "https://open.spotify.com"

_ID_TERMINATORS = re.compile(r"[:?#]")


class ResourceType(str, Enum):
    TRACK = "track"
    ALBUM = "album"
    PLAYLIST = "playlist"
    ARTIST = "artist"


@dataclass(frozen=True)
class SpotifyResource:
    """A parsed (type, id) pair."""
    type: ResourceType
    id: str

    @property
    def uri(self) -> str:
        return f"{URI_SCHEME}:{self.type.value}:{self.id}"

    @property
    def url(self) -> str:
        return f"{OPEN_URL_BASE}/{self.type.value}/{self.id}"


def parse_resource(text: str) -> SpotifyResource:
    """
    Parse a URI or URL into a SpotifyResource.

    Raises:
        UserInputError: If the input is not a recognized resource.
    """
    resource = try_parse_resource(text)
    if resource is None:
        raise UserInputError(
            f"unrecognized resource '{text}'",
            hint="use a spotify:<type>:<id> URI or an open.spotify.com URL"
        )
    return resource


def try_parse_resource(text: str | None) -> SpotifyResource | None:
    """Like parse_resource() but returns None for unrecognized input."""
    if not text:
        return None
    value = "".join(text.split())
    if value.lower().startswith(f"{URI_SCHEME}:"):
        return _parse_uri(value)
    if value.lower().startswith(("http://", "https://")):
        return _parse_url(value)
    return None


def to_uri(resource_type: ResourceType, resource_id: str) -> str:
    return SpotifyResource(resource_type, resource_id).uri


def _parse_uri(value: str) -> SpotifyResource | None:
    parts = value.split(":")
    # spotify:user:<uid>:<type>:<id>
    if len(parts) >= 5 and parts[1].lower() == "user":
        return _build(parts[3], ":".join(parts[4:]))
    if len(parts) >= 3:
        return _build(parts[1], ":".join(parts[2:]))
    return None


def _parse_url(value: str) -> SpotifyResource | None:
    parsed = urlparse(value)
    host = (parsed.hostname or "").lower()
    if host != PUBLIC_DOMAIN and not host.endswith("." + PUBLIC_DOMAIN):
        return None
    segments = [s for s in parsed.path.split("/") if s]
    # Localized links look like /intl-de/track/<id>
    if segments and segments[0].startswith("intl-"):
        segments = segments[1:]
    if len(segments) < 2:
        return None
    return _build(segments[0], segments[1])


def _build(type_text: str, raw_id: str) -> SpotifyResource | None:
    try:
        resource_type = ResourceType(type_text.lower())
    except ValueError:
        return None
    resource_id = _ID_TERMINATORS.split(raw_id, maxsplit=1)[0]
    if not resource_id:
        return None
    return SpotifyResource(resource_type, resource_id)

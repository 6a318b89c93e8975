"""
Playlist selection for read and write commands.

A playlist argument may be a URI/URL, a pin alias, or free text. Free
text is resolved in this order:

    1. --last: the cached search (must be a playlist search); the top
       item or the --pick'th one.
    2. The local playlist snapshot, ranked by fuzzy score.
    3. A remote playlist search, then the playlist detail.

For writes the signed-in user is needed to judge writability; the user
name is fetched from the profile once if it is not cached yet. A ranked
local match that is not writable is rejected rather than skipped, so a
command never silently edits a different playlist than the best match.

Ranking (stable): writable first, then higher score, then lowercase name.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable

from spot_cli.core.exceptions import NotFoundError, ReadOnlyTargetError, UserInputError
from spot_cli.core.logger import get_logger
from spot_cli.resolver.scoring import build_query, fuzzy_score, is_writable, validate_pick
from spot_cli.spotify.models import Playlist, PlaylistDetail, SearchItem, SearchKind
from spot_cli.spotify.uri import ResourceType, try_parse_resource

if TYPE_CHECKING:
    from spot_cli.context import AppContext


logger = get_logger(__name__)

READ_ONLY_MESSAGE = "playlist is read-only; choose an owned or collaborative playlist"
REMOTE_PICK_LIMIT = 10


@dataclass(frozen=True)
class PlaylistMatch:
    playlist: Playlist
    score: float
    writable: bool


@dataclass(frozen=True)
class PlaylistSelection:
    """
    The playlist a command will act on.

    Attributes:
        id: Playlist ID.
        name: Playlist name when known.
        source: Where it came from: "uri", "pin", "last", "cache" or "search".
        writable: Writability for the signed-in user, None when not checked.
        score: Fuzzy score for cache matches.
    """
    id: str
    name: str | None
    source: str
    writable: bool | None = None
    score: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "source": self.source,
            "writable": self.writable,
            "score": self.score,
        }


def rank_playlists(
    items: Iterable[Playlist],
    query: str,
    user: str | None = None
) -> list[PlaylistMatch]:
    """Score items against query, drop non-matches, and sort for selection."""
    matches = []
    for playlist in items:
        score = fuzzy_score(query, playlist.name)
        if score > 0:
            matches.append(PlaylistMatch(playlist, score, is_writable(playlist, user)))
    matches.sort(key=lambda m: (not m.writable, -m.score, m.playlist.name.lower()))
    return matches


def match_from_items(
    items: Iterable[Playlist],
    query: str,
    pick: int | None = None,
    user: str | None = None
) -> PlaylistMatch | None:
    """
    Best (or pick'th) ranked match, None when nothing matches.

    Raises:
        UserInputError: pick is 0 or beyond the number of matches.
    """
    matches = rank_playlists(items, query, user)
    if not matches:
        return None
    return matches[validate_pick(pick, len(matches))]


def select_playlist(
    ctx: "AppContext",
    target: str | None,
    last: bool = False,
    pick: int | None = None,
    write: bool = False,
    market_from_token: bool = False
) -> PlaylistSelection:
    """
    Resolve a playlist argument for a read or write command.

    URIs, URLs and pin aliases are used as given; anything else goes
    through resolve_for_write() or resolve_for_read().
    """
    if target and not last:
        explicit = _explicit_playlist(ctx, target)
        if explicit is not None:
            return explicit
    if write:
        return resolve_for_write(ctx, target, last, market_from_token, pick)
    return resolve_for_read(ctx, target, last, market_from_token, pick)


def resolve_for_write(
    ctx: "AppContext",
    query: str | None,
    last: bool = False,
    market_from_token: bool = False,
    pick: int | None = None
) -> PlaylistSelection:
    """
    Choose a playlist the signed-in user may modify.

    Raises:
        UserInputError: No query without --last, wrong cached search kind,
                        or bad pick.
        NotFoundError: No cached search, or nothing matched.
        ReadOnlyTargetError: The chosen playlist is not writable.
    """
    user = ctx.auth.ensure_user_name()

    if last:
        item = _pick_from_last_search(ctx, pick)
        detail = ctx.spotify().playlists.get(item.id)
        _require_writable(detail, user)
        return PlaylistSelection(detail.id, detail.name, "last", writable=True)

    if not query or not query.strip():
        raise UserInputError("missing playlist query; use --last")

    snapshot = ctx.cache.playlist_cache().load()
    if snapshot is not None:
        match = match_from_items(snapshot.items, query, pick, user)
        if match is not None:
            if not match.writable:
                raise ReadOnlyTargetError(
                    READ_ONLY_MESSAGE,
                    details={"playlist_id": match.playlist.id, "owner": match.playlist.owner}
                )
            logger.debug(f"Matched '{match.playlist.name}' from cache ({match.score:.2f})")
            return PlaylistSelection(
                match.playlist.id, match.playlist.name, "cache",
                writable=True, score=match.score,
            )

    item = _pick_from_remote_search(ctx, query, pick, market_from_token)
    detail = ctx.spotify().playlists.get(item.id)
    _require_writable(detail, user)
    return PlaylistSelection(detail.id, detail.name, "search", writable=True)


def resolve_for_read(
    ctx: "AppContext",
    query: str | None,
    last: bool = False,
    market_from_token: bool = False,
    pick: int | None = None
) -> PlaylistSelection:
    """Like resolve_for_write() without the writability requirement."""
    if last:
        item = _pick_from_last_search(ctx, pick)
        return PlaylistSelection(item.id, item.name, "last")

    if not query or not query.strip():
        raise UserInputError("missing playlist query; use --last")

    snapshot = ctx.cache.playlist_cache().load()
    if snapshot is not None:
        match = match_from_items(snapshot.items, query, pick, ctx.auth.user_name())
        if match is not None:
            return PlaylistSelection(
                match.playlist.id, match.playlist.name, "cache",
                writable=match.writable, score=match.score,
            )

    item = _pick_from_remote_search(ctx, query, pick, market_from_token)
    return PlaylistSelection(item.id, item.name, "search")


def _explicit_playlist(ctx: "AppContext", target: str) -> PlaylistSelection | None:
    resource = try_parse_resource(target)
    source = "uri"
    if resource is None:
        pin = ctx.cache.pin_store().find(target)
        if pin is None:
            return None
        resource = try_parse_resource(pin.url)
        source = "pin"
        if resource is None:
            raise UserInputError(f"pin '{pin.name}' does not point at a Spotify resource")
    if resource.type is not ResourceType.PLAYLIST:
        raise UserInputError(f"'{target}' is a {resource.type.value}, not a playlist")
    return PlaylistSelection(resource.id, None, source)


def _pick_from_last_search(ctx: "AppContext", pick: int | None) -> SearchItem:
    cached = ctx.cache.search_store().load()
    if cached is None:
        raise NotFoundError("no cached search", hint="run `spot search playlist <query>`")
    if cached.results.kind is not SearchKind.PLAYLIST:
        raise UserInputError(
            f"cached search is {cached.results.kind.label}; run search playlist"
        )
    items = cached.results.items
    if not items:
        raise NotFoundError(f"cached search for '{cached.query}' has no results")
    return items[validate_pick(pick, len(items))]


def _pick_from_remote_search(
    ctx: "AppContext",
    query: str,
    pick: int | None,
    market_from_token: bool
) -> SearchItem:
    limit = REMOTE_PICK_LIMIT if pick else 1
    results = ctx.spotify().search.search(
        build_query(query), SearchKind.PLAYLIST, limit=limit,
        market_from_token=market_from_token,
    )
    if not results.items:
        raise NotFoundError(f"no playlist matches '{query}'")
    return results.items[validate_pick(pick, len(results.items))]


def _require_writable(detail: PlaylistDetail, user: str | None) -> None:
    if not is_writable(detail, user):
        raise ReadOnlyTargetError(
            READ_ONLY_MESSAGE,
            details={"playlist_id": detail.id, "owner": detail.owner}
        )

"""
Resolution of generic resource targets (tracks, albums, artists, playlists).

A target is a URI/URL or a pin alias, or the --last search with an
optional --pick.
"""

from typing import TYPE_CHECKING

from spot_cli.core.exceptions import NotFoundError, UserInputError
from spot_cli.resolver.scoring import validate_pick
from spot_cli.spotify.uri import ResourceType, SpotifyResource, parse_resource, try_parse_resource

if TYPE_CHECKING:
    from spot_cli.context import AppContext


def resolve_target(
    ctx: "AppContext",
    target: str | None = None,
    last: bool = False,
    pick: int | None = None,
    allowed: tuple[ResourceType, ...] | None = None
) -> SpotifyResource:
    """
    Resolve a command target to a SpotifyResource.

    Args:
        target: URI, URL or pin alias (case-insensitive).
        last: Use the cached search instead of target.
        pick: 1-indexed item of the cached search.
        allowed: Resource types the command accepts; None accepts all.

    Raises:
        UserInputError: Missing or unrecognized target, bad pick, or a
                        resource of a type the command does not accept.
        NotFoundError: --last without a cached search.
    """
    if last:
        resource = _from_last_search(ctx, pick)
    elif not target:
        raise UserInputError(
            "missing target",
            hint="pass a URI, URL or pin name, or use --last"
        )
    else:
        resource = try_parse_resource(target)
        if resource is None:
            pin = ctx.cache.pin_store().find(target)
            if pin is None:
                raise UserInputError(
                    f"'{target}' is neither a Spotify URI/URL nor a pin",
                    hint="see `spot pin list`"
                )
            resource = parse_resource(pin.url)

    if allowed is not None and resource.type not in allowed:
        names = ", ".join(t.value for t in allowed)
        raise UserInputError(f"expected a {names}; got a {resource.type.value}")
    return resource


def _from_last_search(ctx: "AppContext", pick: int | None) -> SpotifyResource:
    cached = ctx.cache.search_store().load()
    if cached is None:
        raise NotFoundError("no cached search", hint="run `spot search <kind> <query>`")
    items = cached.results.items
    if not items:
        raise NotFoundError(f"cached search for '{cached.query}' has no results")
    item = items[validate_pick(pick, len(items))]
    return SpotifyResource(ResourceType(item.kind.value), item.id)

"""
Command-line interface for spot-cli.

This module implements the `spot` command using Click, one thin adapter
per operation: parse arguments, resolve targets, call the API clients
through AppContext, and print the result. rich-click is used for the
help colors.

Commands:
    spot auth login|status|scopes|logout     Manage the OAuth session
    spot play <uri>                          Play a track, album, playlist or artist
    spot player ...                          Playback, devices and queue
    spot playlist ...                        List, inspect and edit playlists
    spot search <kind> <query>               Search the catalog
    spot info track|album|artist [target]    Track, album and artist details
    spot user profile|top|get                Profiles and top tracks or artists
    spot artist follow|unfollow|check        Followed artists
    spot library ...                         Saved tracks
    spot pin add|remove|list                 Local aliases for URIs
    spot cache status|country|user           Local cache and settings
    spot sync                                Refresh device and playlist snapshots
    spot completions bash|zsh|fish           Shell completion scripts

Usage:
    # Log in once (opens the browser)
    spot auth login --client-id <your-client-id>

    # Play something and check what is playing
    spot play "https://open.spotify.com/album/..."
    spot player status

    # Search, then act on the second result
    spot search playlist "road trip"
    spot player play --last --pick 2

    # Add the current track to a playlist found by name
    spot playlist add "road trip" --now-playing

Every command accepts the global --json flag, which prints a single JSON
document ({"ok": true, "data": ...} or {"ok": false, "error": {...}}).

Exit Codes:
    0   success
    1   bad input, nothing found, read-only playlist, corrupt cache
    2   not logged in or session must be renewed
    3   the remote API or the network failed
    130 interrupted
"""

import functools
import re
import sys
from pathlib import Path
from typing import Any, Callable

import rich_click as click
from click.exceptions import Abort, ClickException, Exit
from click.shell_completion import CompletionItem, get_completion_class

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100
click.rich_click.COMMAND_GROUPS = {
    "spot": [
        {
            "name": "Playback",
            "commands": ["play", "player", "search", "info"],
        },
        {
            "name": "Collections",
            "commands": ["playlist", "library", "artist", "user", "pin"],
        },
        {
            "name": "Session & Cache",
            "commands": ["auth", "cache", "sync", "completions", "complete"],
        },
    ],
}

from spot_cli import __version__
from spot_cli.cache import Cache, CachedSearch
from spot_cli.context import AppContext
from spot_cli.core.config import load_config
from spot_cli.core.exceptions import (
    EXIT_OK,
    EXIT_USER,
    ConfigError,
    NotFoundError,
    SpotCliError,
    UserInputError,
)
from spot_cli.core.logger import get_logger, setup_logging, shutdown_logging, verbosity_to_level
from spot_cli.output import (
    Output,
    describe_item,
    format_duration,
    format_timestamp,
    numbered,
    table,
)
from spot_cli.resolver import is_writable, resolve_target, select_playlist
from spot_cli.resolver.playlist import PlaylistSelection
from spot_cli.spotify.auth import AuthState
from spot_cli.spotify.models import Device, PlayerStatus, SearchKind, UserProfile
from spot_cli.spotify.uri import ResourceType, SpotifyResource, parse_resource, try_parse_resource
from spot_cli.spotify.users import TIME_RANGE_LABELS, TIME_RANGES

logger = get_logger(__name__)

TRACK_ID_PATTERN = re.compile(r"[A-Za-z0-9]+")
POSITION_PATTERN = re.compile(r"(\d+):([0-5]\d)")
COMPLETION_KINDS = ("playlist", "pin", "device")
SHELLS = ("bash", "zsh", "fish")
COMPLETION_PATHS = {
    "bash": Path("~/.local/share/bash-completion/completions/spot"),
    "zsh": Path("~/.zfunc/_spot"),
    "fish": Path("~/.config/fish/completions/spot.fish"),
}
COMPLETE_VAR = "_SPOT_COMPLETE"


class CliState:
    """
    Per-invocation state stored on the click context.

    The AppContext is created on first use so that configuration errors
    surface inside a command, where they are mapped to an exit code.
    """

    def __init__(self, output: Output, config_path: Path | None, verbose: int) -> None:
        self.output = output
        self.config_path = config_path
        self.verbose = verbose
        self._app: AppContext | None = None

    def app(self) -> AppContext:
        if self._app is None:
            config = load_config(self.config_path)
            setup_logging(
                verbosity_to_level(self.verbose, config.logging.level),
                log_file=config.logging.file,
            )
            logger.debug(f"Cache directory: {config.cache_dir}")
            self._app = AppContext(config)
        return self._app


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Map exceptions raised by a command to output and an exit code.

    SpotCliError subclasses carry their own exit code. Click's own
    exceptions pass through untouched.
    """
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        output = _current_output()
        try:
            return func(*args, **kwargs)
        except (ClickException, Abort, Exit):
            raise
        except SpotCliError as e:
            logger.debug(f"{type(e).__name__}: {e.message}", exc_info=True)
            output.error(e)
            sys.exit(e.exit_code)
        except KeyboardInterrupt:
            click.echo("\nInterrupted by user", err=True)
            logger.info("Interrupted by user")
            sys.exit(130)
        except Exception as e:
            logger.exception("Unexpected error")
            output.error(SpotCliError(f"unexpected error: {e}"))
            sys.exit(EXIT_USER)
    return wrapper


def _current_output() -> Output:
    ctx = click.get_current_context(silent=True)
    state = ctx.find_object(CliState) if ctx is not None else None
    return state.output if state is not None else Output()


# ----------------------------------------------------------------------
# Shell completion of cached names
# ----------------------------------------------------------------------


def cached_names(cache: Cache, kind: str) -> list[str]:
    """Names from the local caches: playlist or device snapshots, or pins."""
    if kind == "playlist":
        snapshot = cache.playlist_cache().load()
        return [p.name for p in snapshot.items] if snapshot else []
    if kind == "device":
        snapshot = cache.device_cache().load()
        return [d.name for d in snapshot.items] if snapshot else []
    if kind == "pin":
        return [p.name for p in cache.pin_store().load().items]
    raise UserInputError(f"unknown completion kind '{kind}'")


def _completer(*kinds: str) -> Callable[..., list[CompletionItem]]:
    def complete(ctx: click.Context, param: click.Parameter, incomplete: str) -> list[CompletionItem]:
        try:
            cache = Cache.from_environment()
            names = [name for kind in kinds for name in cached_names(cache, kind)]
        except SpotCliError:
            return []
        prefix = incomplete.lower()
        return [CompletionItem(name) for name in names if name.lower().startswith(prefix)]
    return complete


complete_playlists = _completer("playlist", "pin")
complete_pins = _completer("pin")
complete_devices = _completer("device")


def target_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """--last and --pick, shared by every command taking a target."""
    func = click.option(
        "--pick",
        type=int,
        default=None,
        help="1-indexed item of the search results.",
    )(func)
    func = click.option(
        "--last",
        is_flag=True,
        help="Use the results of the last `spot search`.",
    )(func)
    return func


# ----------------------------------------------------------------------
# Root group
# ----------------------------------------------------------------------


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--json",
    "json_mode",
    is_flag=True,
    help="Print one JSON document instead of text.",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Show INFO logs (-v) or DEBUG logs (-vv) on stderr.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to a config.yaml (default: <cache dir>/config.yaml).",
)
@click.version_option(__version__, "--version", prog_name="spot-cli")
@click.pass_context
def cli(ctx: click.Context, json_mode: bool, verbose: int, config_path: Path | None) -> None:
    """
    spot-cli - control Spotify from the terminal.

    Log in once with [bold]spot auth login[/bold], then play, search and
    edit playlists. Run [bold]spot sync[/bold] to cache your devices and
    playlists for fast name lookups.
    """
    setup_logging(verbosity_to_level(verbose))
    ctx.obj = CliState(Output(json_mode), config_path, verbose)
    ctx.call_on_close(shutdown_logging)


# ----------------------------------------------------------------------
# auth
# ----------------------------------------------------------------------


@cli.group()
def auth() -> None:
    """Log in, inspect and end the OAuth session."""


@auth.command()
@click.option("--client-id", default=None, help="Application client ID.")
@click.option("--redirect-uri", default=None, help="Loopback redirect URI registered for the app.")
@click.option("--no-browser", is_flag=True, help="Only print the authorization URL.")
@click.pass_obj
@handle_errors
def login(state: CliState, client_id: str | None, redirect_uri: str | None, no_browser: bool) -> None:
    """Authorize spot-cli with the PKCE flow."""
    app = state.app()

    def notify(url: str) -> None:
        click.echo(f"Open this URL in your browser to log in:\n  {url}", err=True)

    app.auth.login(
        client_id=client_id,
        redirect_uri=redirect_uri,
        open_browser=not no_browser,
        notify=notify,
    )
    user = app.auth.user_name()
    text = f"Logged in as {user}" if user else "Logged in"
    state.output.message(text, {**app.auth.status().to_dict(), "user_name": user})


@auth.command("status")
@click.pass_obj
@handle_errors
def auth_status(state: CliState) -> None:
    """Show whether a session exists and when the token expires."""
    status = state.app().auth.status()
    if status.state is AuthState.LOGGED_OUT:
        lines = ["Not logged in"]
    elif status.state is AuthState.LOGGED_IN_EXPIRED:
        lines = ["Logged in (token expired; it is refreshed on the next request)"]
    else:
        lines = [f"Logged in (token valid until {format_timestamp(status.expires_at)})"]
    if status.client_id:
        lines.append(f"Client ID: {status.client_id}")
    state.output.emit(status.to_dict(), lines)


@auth.command()
@click.pass_obj
@handle_errors
def scopes(state: CliState) -> None:
    """
    Compare granted scopes with the ones spot-cli needs.

    Exits with code 2 when a required scope is known to be missing.
    """
    app = state.app()
    result = app.auth.scopes()
    if result.granted is None:
        lines = ["Granted scopes unknown; log in again to record them"]
        lines += [f"  [?] {scope}" for scope in result.required]
    else:
        lines = [
            f"  [{' ' if scope in result.missing else 'x'}] {scope}"
            for scope in result.required
        ]
    # In JSON mode the error envelope is the only document
    if not (result.missing and state.output.json_mode):
        state.output.emit(result.to_dict(), lines)
    app.auth.require_scopes()


@auth.command()
@click.pass_obj
@handle_errors
def logout(state: CliState) -> None:
    """Forget the token. The client ID and settings are kept."""
    removed = state.app().auth.logout()
    state.output.message("Logged out" if removed else "Not logged in", {"logged_out": removed})


# ----------------------------------------------------------------------
# play / player
# ----------------------------------------------------------------------


def _start_playback(app: AppContext, resource: SpotifyResource) -> None:
    playback = app.spotify().playback
    if resource.type is ResourceType.TRACK:
        playback.play_track(resource.uri)
    else:
        playback.play_context(resource.uri)


@cli.command("play")
@click.argument("target", shell_complete=complete_pins)
@click.pass_obj
@handle_errors
def play_command(state: CliState, target: str) -> None:
    """Play a track, album, playlist or artist by URI, URL or pin."""
    app = state.app()
    resource = resolve_target(app, target)
    _start_playback(app, resource)
    state.output.message(f"Playing {resource.uri}", {"uri": resource.uri})


@cli.group()
def player() -> None:
    """Playback control, devices and queue."""


@player.command("play")
@click.argument("target", required=False, shell_complete=complete_pins)
@target_options
@click.pass_obj
@handle_errors
def player_play(state: CliState, target: str | None, last: bool, pick: int | None) -> None:
    """Resume playback, or start TARGET."""
    app = state.app()
    if target is None and not last:
        app.spotify().playback.play()
        state.output.message("Resumed")
        return
    resource = resolve_target(app, target, last=last, pick=pick)
    _start_playback(app, resource)
    state.output.message(f"Playing {resource.uri}", {"uri": resource.uri})


@player.command()
@click.pass_obj
@handle_errors
def pause(state: CliState) -> None:
    """Pause playback."""
    state.app().spotify().playback.pause()
    state.output.message("Paused")


@player.command("next")
@click.pass_obj
@handle_errors
def next_track(state: CliState) -> None:
    """Skip to the next track."""
    state.app().spotify().playback.next()
    state.output.message("Skipped to next track")


@player.command()
@click.pass_obj
@handle_errors
def previous(state: CliState) -> None:
    """Go back to the previous track."""
    state.app().spotify().playback.previous()
    state.output.message("Back to previous track")


def status_lines(status: PlayerStatus) -> list[str]:
    if status.track is None and status.device is None:
        return ["Nothing playing"]
    lines = []
    if status.track is not None:
        word = "Playing" if status.is_playing else "Paused"
        lines.append(f"{word}: {describe_item(status.track)}")
        lines.append(
            f"Progress: {format_duration(status.progress_ms)}"
            f" / {format_duration(status.track.duration_ms)}"
        )
    if status.device is not None:
        volume = status.device.volume_percent
        suffix = f" ({volume}%)" if volume is not None else ""
        lines.append(f"Device: {status.device.name}{suffix}")
    shuffle = "on" if status.shuffle_state else "off"
    lines.append(f"Shuffle: {shuffle}  Repeat: {status.repeat_state or 'off'}")
    return lines


@player.command("status")
@click.pass_obj
@handle_errors
def player_status(state: CliState) -> None:
    """Show the current track, device and modes."""
    status = state.app().spotify().playback.status()
    state.output.emit(status.to_dict(), status_lines(status))


def parse_position(text: str) -> int:
    """Milliseconds from either a plain integer or M:SS."""
    text = text.strip()
    if text.isdigit():
        return int(text)
    match = POSITION_PATTERN.fullmatch(text)
    if match is None:
        raise UserInputError(
            f"invalid position '{text}'",
            hint="use milliseconds or M:SS"
        )
    return (int(match.group(1)) * 60 + int(match.group(2))) * 1000


@player.command()
@click.argument("position")
@click.pass_obj
@handle_errors
def seek(state: CliState, position: str) -> None:
    """Seek to POSITION (milliseconds or M:SS) in the current track."""
    position_ms = parse_position(position)
    state.app().spotify().playback.seek(position_ms)
    state.output.message(
        f"Seeked to {format_duration(position_ms)}", {"position_ms": position_ms}
    )


@player.command()
@click.argument("percent", type=int)
@click.pass_obj
@handle_errors
def volume(state: CliState, percent: int) -> None:
    """Set the volume (0-100)."""
    state.app().spotify().playback.set_volume(percent)
    state.output.message(f"Volume set to {percent}%", {"volume_percent": percent})


@player.command()
@click.argument("mode", type=click.Choice(["on", "off"], case_sensitive=False))
@click.pass_obj
@handle_errors
def shuffle(state: CliState, mode: str) -> None:
    """Turn shuffle on or off."""
    enabled = mode.lower() == "on"
    state.app().spotify().playback.shuffle(enabled)
    state.output.message(f"Shuffle {mode.lower()}", {"shuffle_state": enabled})


@player.command()
@click.argument("mode", type=click.Choice(["off", "track", "context"], case_sensitive=False))
@click.pass_obj
@handle_errors
def repeat(state: CliState, mode: str) -> None:
    """Set the repeat mode."""
    mode = mode.lower()
    state.app().spotify().playback.repeat(mode)
    state.output.message(f"Repeat {mode}", {"repeat_state": mode})


@player.command()
@click.option("--limit", type=int, default=20, show_default=True, help="Number of tracks.")
@click.pass_obj
@handle_errors
def recent(state: CliState, limit: int) -> None:
    """Show recently played tracks."""
    items = state.app().spotify().search.recently_played(limit)
    lines = numbered(items) if items else ["No recently played tracks"]
    state.output.emit([item.to_dict() for item in items], lines)


@player.group()
def devices() -> None:
    """List devices and transfer playback."""


def _device_rows(items: list[Device] | tuple[Device, ...]) -> list[list[Any]]:
    return [
        [
            ("* " if d.is_active else "  ") + d.name,
            d.type or "",
            "" if d.volume_percent is None else f"{d.volume_percent}%",
            d.id,
        ]
        for d in items
    ]


@devices.command("list")
@click.option("--live", is_flag=True, help="Ask the API instead of the device cache.")
@click.pass_obj
@handle_errors
def devices_list(state: CliState, live: bool) -> None:
    """List playback devices."""
    app = state.app()
    snapshot = None if live else app.cache.device_cache().load()
    if snapshot is None:
        snapshot = app.cache.device_cache().replace(app.spotify().devices.list())
    items = snapshot.items
    lines = (
        table(_device_rows(items), headers=["NAME", "TYPE", "VOLUME", "ID"])
        if items else ["No devices found; open Spotify on a device"]
    )
    state.output.emit([d.to_dict() for d in items], lines)


def find_device(items: list[Device] | tuple[Device, ...], name_or_id: str) -> Device | None:
    """Exact ID match first, then case-insensitive name match."""
    for device in items:
        if device.id == name_or_id:
            return device
    wanted = name_or_id.strip().lower()
    for device in items:
        if device.name.lower() == wanted:
            return device
    return None


@devices.command("set")
@click.argument("name_or_id", shell_complete=complete_devices)
@click.pass_obj
@handle_errors
def devices_set(state: CliState, name_or_id: str) -> None:
    """Transfer playback to a device by name or ID."""
    app = state.app()
    snapshot = app.cache.device_cache().load()
    device = find_device(snapshot.items, name_or_id) if snapshot else None
    if device is None:
        logger.debug(f"Device '{name_or_id}' not cached, fetching live list")
        snapshot = app.cache.device_cache().replace(app.spotify().devices.list())
        device = find_device(snapshot.items, name_or_id)
    if device is None:
        raise NotFoundError(
            f"no device named '{name_or_id}'",
            hint="run `spot player devices list --live`"
        )
    app.spotify().devices.set_active(device.id)
    state.output.message(f"Playing on {device.name}", device.to_dict())


@player.group("queue")
def queue_group() -> None:
    """Show and extend the playback queue."""


@queue_group.command("list")
@click.option("--limit", type=int, default=10, show_default=True, help="Number of upcoming tracks.")
@click.pass_obj
@handle_errors
def queue_list(state: CliState, limit: int) -> None:
    """Show the current track and what comes next."""
    queue = state.app().spotify().playback.queue(limit)
    lines = []
    if queue.now_playing is not None:
        lines.append(f"Now playing: {describe_item(queue.now_playing)}")
    lines += numbered(queue.queue) if queue.queue else ["Queue is empty"]
    state.output.emit(queue.to_dict(), lines)


@queue_group.command("add")
@click.argument("target", required=False, shell_complete=complete_pins)
@target_options
@click.pass_obj
@handle_errors
def queue_add(state: CliState, target: str | None, last: bool, pick: int | None) -> None:
    """Add a track to the end of the queue."""
    app = state.app()
    resource = resolve_target(app, target, last=last, pick=pick, allowed=(ResourceType.TRACK,))
    app.spotify().playback.add_to_queue(resource.uri)
    state.output.message(f"Queued {resource.uri}", {"uri": resource.uri})


# ----------------------------------------------------------------------
# playlist
# ----------------------------------------------------------------------


def _label(selection: PlaylistSelection) -> str:
    return selection.name or selection.id


def track_uris(values: tuple[str, ...] | list[str]) -> list[str]:
    """Track URIs from URIs or URLs; anything else is rejected."""
    uris = []
    for value in values:
        resource = parse_resource(value)
        if resource.type is not ResourceType.TRACK:
            raise UserInputError(f"'{value}' is a {resource.type.value}, not a track")
        uris.append(resource.uri)
    return uris


@cli.group()
def playlist() -> None:
    """List, inspect and edit playlists."""


@playlist.command("list")
@click.option("--sort", "sort_by", type=click.Choice(["name", "owner"]), default=None, help="Sort order.")
@click.option("--owned", is_flag=True, help="Only playlists you can modify.")
@click.option("--live", is_flag=True, help="Ask the API instead of the playlist cache.")
@click.pass_obj
@handle_errors
def playlist_list(state: CliState, sort_by: str | None, owned: bool, live: bool) -> None:
    """List the playlists in your library."""
    app = state.app()
    snapshot = None if live else app.cache.playlist_cache().load()
    if snapshot is None:
        snapshot = app.cache.playlist_cache().replace(app.spotify().playlists.list_all())
    items = list(snapshot.items)

    if owned:
        user = app.auth.ensure_user_name()
        items = [p for p in items if is_writable(p, user)]
    if sort_by == "name":
        items.sort(key=lambda p: p.name.lower())
    elif sort_by == "owner":
        items.sort(key=lambda p: ((p.owner or "").lower(), p.name.lower()))

    rows = [[p.name, p.owner or "", p.id] for p in items]
    lines = table(rows, headers=["NAME", "OWNER", "ID"]) if rows else ["No playlists"]
    state.output.emit([p.to_dict() for p in items], lines)


@playlist.command("get")
@click.argument("target", required=False, shell_complete=complete_playlists)
@target_options
@click.pass_obj
@handle_errors
def playlist_get(state: CliState, target: str | None, last: bool, pick: int | None) -> None:
    """Show a playlist's details."""
    app = state.app()
    selection = select_playlist(app, target, last=last, pick=pick)
    detail = app.spotify().playlists.get(selection.id)
    visibility = "public" if detail.public else "private"
    if detail.collaborative:
        visibility += ", collaborative"
    lines = [
        detail.name,
        f"Owner: {detail.owner or 'unknown'}",
        f"Tracks: {detail.tracks_total if detail.tracks_total is not None else '?'}",
        f"Visibility: {visibility}",
        f"URI: {detail.uri}",
    ]
    if detail.description:
        lines.append(f"Description: {detail.description}")
    state.output.emit(detail.to_dict(), lines)


@playlist.command("create")
@click.argument("name")
@click.option("--public", is_flag=True, help="Make the playlist public.")
@click.option("--description", default=None, help="Playlist description.")
@click.pass_obj
@handle_errors
def playlist_create(state: CliState, name: str, public: bool, description: str | None) -> None:
    """Create a new playlist."""
    detail = state.app().spotify().playlists.create(name, public=public, description=description)
    state.output.message(f"Created playlist '{detail.name}' ({detail.id})", detail.to_dict())


@playlist.command("add")
@click.argument("target", required=False, shell_complete=complete_playlists)
@click.argument("uris", nargs=-1)
@click.option("--now-playing", is_flag=True, help="Add the track that is playing now.")
@click.option("--position", type=int, default=None, help="0-indexed insert position.")
@click.option("--dry-run", is_flag=True, help="Resolve everything but change nothing.")
@target_options
@click.pass_obj
@handle_errors
def playlist_add(
    state: CliState,
    target: str | None,
    uris: tuple[str, ...],
    now_playing: bool,
    position: int | None,
    dry_run: bool,
    last: bool,
    pick: int | None
) -> None:
    """Add tracks to a playlist you can modify."""
    app = state.app()
    if last and target is not None:
        # With --last the playlist comes from the cached search
        uris = (target,) + uris
        target = None
    tracks = track_uris(uris)
    if now_playing:
        current = app.spotify().playback.status().track
        if current is None:
            raise NotFoundError("nothing is playing")
        tracks.append(current.uri)
    if not tracks:
        raise UserInputError("no tracks to add", hint="pass track URIs or use --now-playing")
    if position is not None and position < 0:
        raise UserInputError("position must not be negative")

    selection = select_playlist(app, target, last=last, pick=pick, write=True)
    data = {"playlist": selection.to_dict(), "uris": tracks, "position": position, "dry_run": dry_run}
    if dry_run:
        state.output.message(f"Would add {len(tracks)} track(s) to {_label(selection)}", data)
        return
    app.spotify().playlists.add_tracks(selection.id, tracks, position=position)
    state.output.message(f"Added {len(tracks)} track(s) to {_label(selection)}", data)


@playlist.command("remove")
@click.argument("target", shell_complete=complete_playlists)
@click.argument("uris", nargs=-1, required=True)
@click.option("--dry-run", is_flag=True, help="Resolve everything but change nothing.")
@click.pass_obj
@handle_errors
def playlist_remove(state: CliState, target: str, uris: tuple[str, ...], dry_run: bool) -> None:
    """Remove every occurrence of the given tracks from a playlist."""
    app = state.app()
    tracks = track_uris(uris)
    selection = select_playlist(app, target, write=True)
    data = {"playlist": selection.to_dict(), "uris": tracks, "dry_run": dry_run}
    if dry_run:
        state.output.message(f"Would remove {len(tracks)} track(s) from {_label(selection)}", data)
        return
    app.spotify().playlists.remove_tracks(selection.id, tracks)
    state.output.message(f"Removed {len(tracks)} track(s) from {_label(selection)}", data)


@playlist.command("edit")
@click.argument("target", shell_complete=complete_playlists)
@click.option("--name", default=None, help="New name.")
@click.option("--description", default=None, help="New description.")
@click.option("--public/--private", "public", default=None, help="Change visibility.")
@click.pass_obj
@handle_errors
def playlist_edit(
    state: CliState,
    target: str,
    name: str | None,
    description: str | None,
    public: bool | None
) -> None:
    """Rename a playlist or change its description or visibility."""
    app = state.app()
    selection = select_playlist(app, target, write=True)
    app.spotify().playlists.edit(selection.id, name=name, description=description, public=public)
    state.output.message(f"Updated {_label(selection)}", selection.to_dict())


@playlist.command("reorder")
@click.argument("target", shell_complete=complete_playlists)
@click.option("--from", "range_start", type=int, required=True, help="0-indexed first track to move.")
@click.option("--to", "insert_before", type=int, required=True, help="0-indexed position to insert before.")
@click.option("--count", "range_length", type=int, default=1, show_default=True, help="Tracks to move.")
@click.pass_obj
@handle_errors
def playlist_reorder(
    state: CliState,
    target: str,
    range_start: int,
    insert_before: int,
    range_length: int
) -> None:
    """Move a range of tracks within a playlist."""
    app = state.app()
    selection = select_playlist(app, target, write=True)
    app.spotify().playlists.reorder(selection.id, range_start, insert_before, range_length)
    state.output.message(
        f"Moved {range_length} track(s) in {_label(selection)}",
        {
            "playlist": selection.to_dict(),
            "range_start": range_start,
            "insert_before": insert_before,
            "range_length": range_length,
        },
    )


@playlist.command("follow")
@click.argument("target", required=False, shell_complete=complete_playlists)
@click.option("--public", is_flag=True, help="Show it on your public profile.")
@target_options
@click.pass_obj
@handle_errors
def playlist_follow(
    state: CliState,
    target: str | None,
    public: bool,
    last: bool,
    pick: int | None
) -> None:
    """Follow a playlist."""
    app = state.app()
    selection = select_playlist(app, target, last=last, pick=pick)
    app.spotify().playlists.follow(selection.id, public=public or None)
    state.output.message(f"Followed {_label(selection)}", selection.to_dict())


@playlist.command("unfollow")
@click.argument("target", required=False, shell_complete=complete_playlists)
@target_options
@click.pass_obj
@handle_errors
def playlist_unfollow(state: CliState, target: str | None, last: bool, pick: int | None) -> None:
    """Unfollow a playlist (deletes it from your library)."""
    app = state.app()
    selection = select_playlist(app, target, last=last, pick=pick)
    app.spotify().playlists.unfollow(selection.id)
    state.output.message(f"Unfollowed {_label(selection)}", selection.to_dict())


@playlist.command("duplicate")
@click.argument("target", required=False, shell_complete=complete_playlists)
@click.option("--name", default=None, help="Name of the copy (default: '<name> (Copy)').")
@target_options
@click.pass_obj
@handle_errors
def playlist_duplicate(
    state: CliState,
    target: str | None,
    name: str | None,
    last: bool,
    pick: int | None
) -> None:
    """Copy a playlist into a new private playlist."""
    app = state.app()
    selection = select_playlist(app, target, last=last, pick=pick)
    copy = app.spotify().playlists.duplicate(selection.id, name=name)
    state.output.message(f"Created '{copy.name}' ({copy.id})", copy.to_dict())


@playlist.command("cover")
@click.argument("target", required=False, shell_complete=complete_playlists)
@target_options
@click.pass_obj
@handle_errors
def playlist_cover(state: CliState, target: str | None, last: bool, pick: int | None) -> None:
    """Print the URLs of a playlist's cover images."""
    app = state.app()
    selection = select_playlist(app, target, last=last, pick=pick)
    urls = app.spotify().playlists.cover(selection.id)
    state.output.emit(urls, urls or ["No cover image"])


@playlist.command("user")
@click.argument("user_id")
@click.pass_obj
@handle_errors
def playlist_user(state: CliState, user_id: str) -> None:
    """List another user's public playlists."""
    items = state.app().spotify().playlists.list_for_user(user_id)
    rows = [[p.name, p.owner or "", p.id] for p in items]
    lines = table(rows, headers=["NAME", "OWNER", "ID"]) if rows else ["No public playlists"]
    state.output.emit([p.to_dict() for p in items], lines)


@playlist.command("deduplicate")
@click.argument("target", required=False, shell_complete=complete_playlists)
@click.option("--dry-run", is_flag=True, help="Only list the duplicates.")
@target_options
@click.pass_obj
@handle_errors
def playlist_deduplicate(
    state: CliState,
    target: str | None,
    dry_run: bool,
    last: bool,
    pick: int | None
) -> None:
    """Remove repeated tracks, keeping the first occurrence."""
    app = state.app()
    selection = select_playlist(app, target, last=last, pick=pick, write=True)
    removed = app.spotify().playlists.deduplicate(selection.id, dry_run=dry_run)
    data = {"playlist": selection.to_dict(), "duplicates": removed, "dry_run": dry_run}
    if not removed:
        state.output.message(f"No duplicates in {_label(selection)}", data)
        return
    verb = "Would remove" if dry_run else "Removed"
    lines = [f"{verb} {len(removed)} duplicate(s) from {_label(selection)}"]
    lines += [f"  {uri}" for uri in removed]
    state.output.emit(data, lines)


# ----------------------------------------------------------------------
# search / info
# ----------------------------------------------------------------------


@cli.command()
@click.argument("kind")
@click.argument("query", nargs=-1, required=True)
@click.option("--limit", type=int, default=10, show_default=True, help="Results per kind (1-50).")
@click.option("--market-from-token", is_flag=True, help="Only items playable in your market.")
@click.pass_obj
@handle_errors
def search(
    state: CliState,
    kind: str,
    query: tuple[str, ...],
    limit: int,
    market_from_token: bool
) -> None:
    """
    Search the catalog. KIND is track, album, artist, playlist or all.

    The results are remembered for --last and --pick.
    """
    search_kind = SearchKind.parse(kind)
    text = " ".join(query)
    app = state.app()
    results = app.spotify().search.search(
        text, search_kind, limit=limit, market_from_token=market_from_token
    )
    app.cache.search_store().save(CachedSearch(query=text, results=results))
    lines = (
        numbered(results.items, show_kind=search_kind is SearchKind.ALL)
        if results.items else [f"No results for '{text}'"]
    )
    state.output.emit(results.to_dict(), lines)


@cli.group()
def info() -> None:
    """Track, album and artist details."""


@info.command("track")
@click.argument("target", required=False, shell_complete=complete_pins)
@target_options
@click.pass_obj
@handle_errors
def info_track(state: CliState, target: str | None, last: bool, pick: int | None) -> None:
    """Show a track; defaults to the one playing now."""
    app = state.app()
    if target is None and not last:
        current = app.spotify().playback.status().track
        if current is None:
            raise NotFoundError("nothing is playing", hint="pass a track URI or use --last")
        resource_id = current.id
    else:
        resource_id = resolve_target(
            app, target, last=last, pick=pick, allowed=(ResourceType.TRACK,)
        ).id
    track = app.spotify().tracks.get(resource_id)
    lines = [describe_item(track), f"URI: {track.uri}"]
    state.output.emit(track.to_dict(), lines)


@info.command("album")
@click.argument("target", required=False, shell_complete=complete_pins)
@target_options
@click.pass_obj
@handle_errors
def info_album(state: CliState, target: str | None, last: bool, pick: int | None) -> None:
    """Show an album with its track list."""
    app = state.app()
    resource = resolve_target(app, target, last=last, pick=pick, allowed=(ResourceType.ALBUM,))
    album = app.spotify().albums.get(resource.id)
    header = album.name
    if album.artists:
        header += f" - {', '.join(album.artists)}"
    lines = [
        header,
        f"Released: {album.release_date or 'unknown'}",
        f"Tracks: {len(album.tracks)}  Length: {format_duration(album.duration_ms)}",
    ]
    width = len(str(len(album.tracks)))
    for index, track in enumerate(album.tracks, start=1):
        number = track.track_number or index
        lines.append(f"{number:>{width}}. {track.name} [{format_duration(track.duration_ms)}]")
    state.output.emit(album.to_dict(), lines)


@info.command("artist")
@click.argument("target", required=False, shell_complete=complete_pins)
@target_options
@click.pass_obj
@handle_errors
def info_artist(state: CliState, target: str | None, last: bool, pick: int | None) -> None:
    """Show an artist's genres and follower count."""
    app = state.app()
    resource = resolve_target(app, target, last=last, pick=pick, allowed=(ResourceType.ARTIST,))
    artist = app.spotify().artists.get(resource.id)
    lines = [artist.name]
    if artist.genres:
        lines.append(f"Genres: {', '.join(artist.genres)}")
    if artist.followers is not None:
        lines.append(f"Followers: {artist.followers:,}")
    lines.append(f"URI: {artist.uri}")
    state.output.emit(artist.to_dict(), lines)


# ----------------------------------------------------------------------
# user / artist
# ----------------------------------------------------------------------


def _profile_lines(profile: UserProfile) -> list[str]:
    lines = [profile.name]
    if profile.followers is not None:
        lines.append(f"Followers: {profile.followers:,}")
    lines.append(f"ID: {profile.id}")
    return lines


@cli.group()
def user() -> None:
    """Your profile and listening history."""


@user.command("profile")
@click.pass_obj
@handle_errors
def user_profile(state: CliState) -> None:
    """Show the signed-in user."""
    profile = state.app().spotify().users.profile()
    lines = _profile_lines(profile)
    lines[0] = f"{profile.name} ({profile.product or 'free'})"
    if profile.country:
        lines.append(f"Country: {profile.country}")
    state.output.emit(profile.to_dict(), lines)


@user.command("top")
@click.argument("kind", type=click.Choice(["tracks", "artists"]))
@click.option(
    "--range",
    "time_range",
    type=click.Choice(list(TIME_RANGES)),
    default="medium",
    show_default=True,
    help="short (4 weeks), medium (6 months) or long (all time).",
)
@click.option("--limit", type=click.IntRange(1, 50), default=20, show_default=True, help="Number of items.")
@click.pass_obj
@handle_errors
def user_top(state: CliState, kind: str, time_range: str, limit: int) -> None:
    """List your most played tracks or artists."""
    items = state.app().spotify().users.top(SearchKind.parse(kind), time_range, limit)
    header = f"Top {len(items)} {kind} ({TIME_RANGE_LABELS[time_range]})"
    lines = [header, *numbered(items)] if items else [f"No top {kind} found"]
    state.output.emit([item.to_dict() for item in items], lines)


@user.command("get")
@click.argument("user_id")
@click.pass_obj
@handle_errors
def user_get(state: CliState, user_id: str) -> None:
    """Show another user's public profile."""
    profile = state.app().spotify().users.get(user_id)
    state.output.emit(profile.to_dict(), _profile_lines(profile))


def artist_ids(app: AppContext, targets: tuple[str, ...], last: bool, pick: int | None) -> list[str]:
    """Artist IDs from URIs, URLs and pins, plus the --last pick."""
    allowed = (ResourceType.ARTIST,)
    ids = [resolve_target(app, value, allowed=allowed).id for value in targets]
    if last:
        ids.append(resolve_target(app, None, last=True, pick=pick, allowed=allowed).id)
    if not ids:
        raise UserInputError("no artists given", hint="pass artist URIs or use --last")
    return ids


@cli.group()
def artist() -> None:
    """Follow and unfollow artists."""


@artist.command("follow")
@click.argument("targets", nargs=-1, shell_complete=complete_pins)
@click.option("--dry-run", is_flag=True, help="Resolve everything but change nothing.")
@target_options
@click.pass_obj
@handle_errors
def artist_follow(
    state: CliState,
    targets: tuple[str, ...],
    dry_run: bool,
    last: bool,
    pick: int | None
) -> None:
    """Follow artists."""
    app = state.app()
    ids = artist_ids(app, targets, last, pick)
    data = {"action": "follow", "ids": ids, "dry_run": dry_run}
    if dry_run:
        state.output.message(f"Would follow {len(ids)} artist(s)", data)
        return
    app.spotify().users.follow_artists(ids)
    state.output.message(f"Followed {len(ids)} artist(s)", data)


@artist.command("unfollow")
@click.argument("targets", nargs=-1, shell_complete=complete_pins)
@click.option("--dry-run", is_flag=True, help="Resolve everything but change nothing.")
@target_options
@click.pass_obj
@handle_errors
def artist_unfollow(
    state: CliState,
    targets: tuple[str, ...],
    dry_run: bool,
    last: bool,
    pick: int | None
) -> None:
    """Unfollow artists."""
    app = state.app()
    ids = artist_ids(app, targets, last, pick)
    data = {"action": "unfollow", "ids": ids, "dry_run": dry_run}
    if dry_run:
        state.output.message(f"Would unfollow {len(ids)} artist(s)", data)
        return
    app.spotify().users.unfollow_artists(ids)
    state.output.message(f"Unfollowed {len(ids)} artist(s)", data)


@artist.command("check")
@click.argument("targets", nargs=-1, shell_complete=complete_pins)
@target_options
@click.pass_obj
@handle_errors
def artist_check(state: CliState, targets: tuple[str, ...], last: bool, pick: int | None) -> None:
    """Check whether you follow artists."""
    app = state.app()
    ids = artist_ids(app, targets, last, pick)
    following = app.spotify().users.follows_artists(ids)
    results = [{"id": aid, "following": flag} for aid, flag in zip(ids, following)]
    rows = [[r["id"], "following" if r["following"] else "not following"] for r in results]
    state.output.emit(results, table(rows))


# ----------------------------------------------------------------------
# library
# ----------------------------------------------------------------------


def track_id(value: str) -> str:
    """Track ID from a bare ID, a track URI or a track URL."""
    resource = try_parse_resource(value)
    if resource is None:
        value = value.strip()
        if not TRACK_ID_PATTERN.fullmatch(value):
            raise UserInputError(f"'{value}' is not a track ID, URI or URL")
        return value
    if resource.type is not ResourceType.TRACK:
        raise UserInputError(f"'{value}' is a {resource.type.value}, not a track")
    return resource.id


@cli.group()
def library() -> None:
    """Your saved tracks."""


@library.command("list")
@click.option("--limit", type=int, default=20, show_default=True, help="Number of tracks.")
@click.pass_obj
@handle_errors
def library_list(state: CliState, limit: int) -> None:
    """List the most recently saved tracks."""
    items = state.app().spotify().library.saved_tracks(limit)
    lines = numbered(items) if items else ["No saved tracks"]
    state.output.emit([item.to_dict() for item in items], lines)


@library.command("save")
@click.argument("ids", nargs=-1)
@click.option("--now-playing", is_flag=True, help="Save the track that is playing now.")
@click.pass_obj
@handle_errors
def library_save(state: CliState, ids: tuple[str, ...], now_playing: bool) -> None:
    """Save tracks to your library."""
    app = state.app()
    track_ids = [track_id(value) for value in ids]
    if now_playing:
        current = app.spotify().playback.status().track
        if current is None:
            raise NotFoundError("nothing is playing")
        track_ids.append(current.id)
    app.spotify().library.like(track_ids)
    state.output.message(f"Saved {len(track_ids)} track(s)", {"ids": track_ids})


@library.command("remove")
@click.argument("ids", nargs=-1, required=True)
@click.pass_obj
@handle_errors
def library_remove(state: CliState, ids: tuple[str, ...]) -> None:
    """Remove tracks from your library."""
    track_ids = [track_id(value) for value in ids]
    state.app().spotify().library.unlike(track_ids)
    state.output.message(f"Removed {len(track_ids)} track(s)", {"ids": track_ids})


@library.command("check")
@click.argument("ids", nargs=-1, required=True)
@click.pass_obj
@handle_errors
def library_check(state: CliState, ids: tuple[str, ...]) -> None:
    """Check whether tracks are in your library."""
    track_ids = [track_id(value) for value in ids]
    saved = state.app().spotify().library.check(track_ids)
    results = [{"id": tid, "saved": flag} for tid, flag in zip(track_ids, saved)]
    rows = [[r["id"], "saved" if r["saved"] else "not saved"] for r in results]
    state.output.emit(results, table(rows))


# ----------------------------------------------------------------------
# pin
# ----------------------------------------------------------------------


@cli.group()
def pin() -> None:
    """Local aliases for URIs, usable wherever a target is expected."""


@pin.command("add")
@click.argument("name")
@click.argument("url")
@click.pass_obj
@handle_errors
def pin_add(state: CliState, name: str, url: str) -> None:
    """Pin URL under NAME (replaces a pin with the same name)."""
    resource = parse_resource(url)
    pinned = state.app().cache.pin_store().add(name, url)
    state.output.message(
        f"Pinned '{pinned.name}' -> {resource.uri}",
        {"name": pinned.name, "url": pinned.url, "uri": resource.uri},
    )


@pin.command("remove")
@click.argument("name", shell_complete=complete_pins)
@click.pass_obj
@handle_errors
def pin_remove(state: CliState, name: str) -> None:
    """Remove a pin (name is case-insensitive)."""
    if not state.app().cache.pin_store().remove(name):
        raise UserInputError(f"pin '{name}' not found", hint="see `spot pin list`")
    state.output.message(f"Removed pin '{name}'", {"name": name})


@pin.command("list")
@click.pass_obj
@handle_errors
def pin_list(state: CliState) -> None:
    """List pins."""
    items = state.app().cache.pin_store().load().items
    lines = table([[p.name, p.url] for p in items], headers=["NAME", "URL"]) if items else ["No pins"]
    state.output.emit([{"name": p.name, "url": p.url} for p in items], lines)


# ----------------------------------------------------------------------
# cache / sync
# ----------------------------------------------------------------------


@cli.group()
def cache() -> None:
    """Inspect the local cache and settings."""


@cache.command("status")
@click.pass_obj
@handle_errors
def cache_status(state: CliState) -> None:
    """Show what the cache holds."""
    status = state.app().cache.status()

    def snapshot_line(label: str, count: int | None, updated_at: int | None) -> str:
        if count is None:
            return f"{label}: not synced"
        return f"{label}: {count} (updated {format_timestamp(updated_at)})"

    lines = [
        f"Cache directory: {status.root}",
        snapshot_line("Devices", status.device_count, status.devices_updated_at),
        snapshot_line("Playlists", status.playlist_count, status.playlists_updated_at),
        f"Pins: {status.pin_count}",
        f"Last search: {status.last_search or 'none'}",
    ]
    state.output.emit(status.to_dict(), lines)


@cache.command("country")
@click.argument("code", required=False)
@click.pass_obj
@handle_errors
def cache_country(state: CliState, code: str | None) -> None:
    """Show or set the country code (ISO 3166-1 alpha-2)."""
    auth_service = state.app().auth
    if code is None:
        country = auth_service.country()
        state.output.emit({"country": country}, country or "Country not set")
        return
    country = auth_service.set_country(code)
    state.output.message(f"Country set to {country}", {"country": country})


@cache.command("user")
@click.argument("name", required=False)
@click.pass_obj
@handle_errors
def cache_user(state: CliState, name: str | None) -> None:
    """Show or set the user name used for playlist ownership checks."""
    auth_service = state.app().auth
    if name is None:
        user = auth_service.user_name()
        state.output.emit({"user_name": user}, user or "User name not set")
        return
    user = auth_service.set_user_name(name)
    state.output.message(f"User name set to {user}", {"user_name": user})


@cli.command()
@click.pass_obj
@handle_errors
def sync(state: CliState) -> None:
    """Refresh the device and playlist caches and the user name."""
    summary = state.app().sync()
    lines = [
        f"Synced {summary.device_count} device(s) and {summary.playlist_count} playlist(s)",
    ]
    if summary.user_name:
        lines.append(f"User: {summary.user_name}")
    state.output.emit(summary.to_dict(), lines)


# ----------------------------------------------------------------------
# completion
# ----------------------------------------------------------------------


def completion_source(shell: str) -> str:
    """Shell completion script for the `spot` command."""
    completion_class = get_completion_class(shell)
    if completion_class is None:
        raise UserInputError(f"unsupported shell '{shell}'")
    return completion_class(cli, {}, "spot", COMPLETE_VAR).source()


@cli.command()
@click.argument("shell", type=click.Choice(SHELLS))
@click.option("--install", is_flag=True, help="Write the script to the shell's completion directory.")
@click.pass_obj
@handle_errors
def completions(state: CliState, shell: str, install: bool) -> None:
    """Print or install the completion script for SHELL."""
    source = completion_source(shell)
    if not install:
        if state.output.json_mode:
            state.output.emit({"shell": shell, "script": source})
        else:
            click.echo(source)
        return

    path = COMPLETION_PATHS[shell].expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source, encoding="utf-8")
    except OSError as e:
        raise ConfigError(
            f"failed to write {path}",
            details={"file_path": str(path), "original_error": str(e)}
        ) from e
    lines = [f"Installed {shell} completion to {path}"]
    if shell == "zsh":
        lines.append("Add `fpath=(~/.zfunc $fpath)` before `compinit` in ~/.zshrc")
    state.output.emit({"shell": shell, "path": str(path)}, lines)


@cli.command(hidden=True)
@click.argument("kind", type=click.Choice(COMPLETION_KINDS))
@click.pass_obj
@handle_errors
def complete(state: CliState, kind: str) -> None:
    """Print cached names of KIND, one per line."""
    names = cached_names(state.app().cache, kind)
    state.output.emit(names, names)


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `spot` from the command line.
    Usage errors reported by Click exit with status 1 like any other
    invalid input.
    """
    try:
        exit_code = cli.main(prog_name="spot", standalone_mode=False)
    except ClickException as e:
        e.show()
        sys.exit(EXIT_USER)
    except Abort:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)
    sys.exit(exit_code if isinstance(exit_code, int) else EXIT_OK)


if __name__ == "__main__":
    main()

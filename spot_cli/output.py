"""
Command output: human-readable lines or a JSON envelope.

With --json every command prints exactly one JSON document on stdout:
    {"ok": true, "data": ...}
    {"ok": false, "error": {"kind": "...", "message": "...", "hint": "..."}}

Without it, data is printed as plain lines and errors go to stderr as
"Error: <message>; hint: <hint>".
"""

import json
from datetime import datetime
from typing import Any, Iterable, Sequence

import click

from spot_cli.core.exceptions import SpotCliError
from spot_cli.spotify.models import SearchItem, SearchKind


class Output:
    def __init__(self, json_mode: bool = False) -> None:
        self.json_mode = json_mode

    def emit(self, data: Any, lines: str | Iterable[str] | None = None) -> None:
        """
        Print a command result.

        Args:
            data: JSON-serializable result for --json.
            lines: Human-readable rendering; nothing is printed in human
                   mode when it is None.
        """
        if self.json_mode:
            click.echo(json.dumps({"ok": True, "data": data}, indent=2, ensure_ascii=False))
            return
        if lines is None:
            return
        if isinstance(lines, str):
            click.echo(lines)
            return
        for line in lines:
            click.echo(line)

    def message(self, text: str, data: Any | None = None) -> None:
        """Short confirmation such as "Paused"."""
        self.emit(data if data is not None else {"message": text}, text)

    def error(self, err: SpotCliError) -> None:
        if self.json_mode:
            click.echo(json.dumps({"ok": False, "error": err.to_dict()}, ensure_ascii=False))
            return
        click.echo(click.style(f"Error: {err}", fg="red"), err=True)


def format_duration(ms: int | None) -> str:
    """Format milliseconds as M:SS or H:MM:SS."""
    if not ms or ms < 0:
        return "0:00"
    total = ms // 1000
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def format_timestamp(epoch: int | None) -> str:
    if epoch is None:
        return "never"
    return datetime.fromtimestamp(epoch).strftime("%Y-%m-%d %H:%M:%S")


def describe_item(item: SearchItem) -> str:
    """One-line description of a search item."""
    text = item.name
    if item.artists:
        text += f" - {', '.join(item.artists)}"
    if item.kind is SearchKind.TRACK:
        if item.album:
            text += f" ({item.album})"
        if item.duration_ms:
            text += f" [{format_duration(item.duration_ms)}]"
    elif item.kind is SearchKind.PLAYLIST and item.owner:
        text += f" by {item.owner}"
    return text


def numbered(items: Sequence[SearchItem], show_kind: bool = False) -> list[str]:
    width = len(str(len(items)))
    lines = []
    for index, item in enumerate(items, start=1):
        prefix = f"[{item.kind.label}] " if show_kind else ""
        lines.append(f"{index:>{width}}. {prefix}{describe_item(item)}")
    return lines


def table(rows: Sequence[Sequence[Any]], headers: Sequence[str] | None = None) -> list[str]:
    """Left-aligned columns separated by two spaces."""
    cells = [[("" if c is None else str(c)) for c in row] for row in rows]
    if headers:
        cells.insert(0, list(headers))
    if not cells:
        return []
    widths = [max(len(row[i]) for row in cells) for i in range(len(cells[0]))]
    return ["  ".join(c.ljust(w) for c, w in zip(row, widths)).rstrip() for row in cells]

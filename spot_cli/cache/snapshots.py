"""
Timestamped snapshots of devices and playlists.

A snapshot file holds {"updated_at": <epoch seconds>, "items": [...]} and
is only ever replaced whole, by `spot sync` or a live listing. Its absence
means "never synced"; a present file with no items means "synced, empty".
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Generic, TypeVar

from spot_cli.core.exceptions import DecodeError
from spot_cli.core.jsonstore import JsonFileStore
from spot_cli.spotify.models import Device, Playlist


DEVICES_FILENAME = "devices.json"
PLAYLISTS_FILENAME = "playlists.json"

T = TypeVar("T")


@dataclass(frozen=True)
class CacheSnapshot(Generic[T]):
    updated_at: int
    items: tuple[T, ...] = field(default_factory=tuple)

    @classmethod
    def now(cls, items: list[T] | tuple[T, ...]) -> "CacheSnapshot[T]":
        return cls(updated_at=int(time.time()), items=tuple(items))


class SnapshotStore(Generic[T]):
    """JSON-backed store of one CacheSnapshot of T."""

    def __init__(
        self,
        path: Path,
        decode: Callable[[dict[str, Any]], T],
        encode: Callable[[T], dict[str, Any]]
    ) -> None:
        self._store = JsonFileStore(path)
        self._decode = decode
        self._encode = encode

    @property
    def path(self) -> Path:
        return self._store.path

    def load(self) -> CacheSnapshot[T] | None:
        raw = self._store.load()
        if raw is None:
            return None
        try:
            return CacheSnapshot(
                updated_at=int(raw["updated_at"]),
                items=tuple(self._decode(item) for item in raw.get("items") or ()),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DecodeError(
                f"unexpected snapshot format in {self.path}",
                details={"file_path": str(self.path), "original_error": str(e)}
            ) from e

    def save(self, snapshot: CacheSnapshot[T]) -> None:
        self._store.save({
            "updated_at": snapshot.updated_at,
            "items": [self._encode(item) for item in snapshot.items],
        })

    def replace(self, items: list[T] | tuple[T, ...]) -> CacheSnapshot[T]:
        """Save items as a fresh snapshot stamped with the current time."""
        snapshot = CacheSnapshot.now(items)
        self.save(snapshot)
        return snapshot


class DeviceCache(SnapshotStore[Device]):
    def __init__(self, path: Path) -> None:
        super().__init__(path, Device.from_dict, Device.to_dict)


class PlaylistCache(SnapshotStore[Playlist]):
    def __init__(self, path: Path) -> None:
        super().__init__(path, Playlist.from_dict, Playlist.to_dict)

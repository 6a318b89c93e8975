"""
Local cache rooted at the cache directory.

File layout under the root:
    metadata.json   token, client identity, settings (mode 0600)
    devices.json    Snapshot of devices
    playlists.json  Snapshot of playlists
    search.json     Last search
    pins.json       Pin shortcuts

Usage:
    cache = Cache.from_environment()
    pins = cache.pin_store().load()
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from spot_cli.cache.metadata import (
    METADATA_FILENAME,
    AuthToken,
    ClientIdentity,
    Metadata,
    MetadataStore,
    Settings,
)
from spot_cli.cache.pins import PINS_FILENAME, PinnedResource, Pins, PinStore
from spot_cli.cache.search import SEARCH_FILENAME, CachedSearch, SearchStore
from spot_cli.cache.snapshots import (
    DEVICES_FILENAME,
    PLAYLISTS_FILENAME,
    CacheSnapshot,
    DeviceCache,
    PlaylistCache,
)
from spot_cli.core.paths import ensure_dir, resolve_cache_root


@dataclass(frozen=True)
class CacheStatus:
    """Summary of what the cache currently holds, for `spot cache status`."""
    root: Path
    device_count: int | None
    devices_updated_at: int | None
    playlist_count: int | None
    playlists_updated_at: int | None
    pin_count: int
    last_search: str | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": str(self.root),
            "device_count": self.device_count,
            "devices_updated_at": self.devices_updated_at,
            "playlist_count": self.playlist_count,
            "playlists_updated_at": self.playlists_updated_at,
            "pin_count": self.pin_count,
            "last_search": self.last_search,
        }


class Cache:
    """Factory for the typed stores under one cache root."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    @classmethod
    def from_environment(cls) -> "Cache":
        return cls(resolve_cache_root())

    def ensure_dirs(self) -> Path:
        return ensure_dir(self.root)

    def metadata_store(self) -> MetadataStore:
        return MetadataStore(self.root / METADATA_FILENAME)

    def device_cache(self) -> DeviceCache:
        return DeviceCache(self.root / DEVICES_FILENAME)

    def playlist_cache(self) -> PlaylistCache:
        return PlaylistCache(self.root / PLAYLISTS_FILENAME)

    def search_store(self) -> SearchStore:
        return SearchStore(self.root / SEARCH_FILENAME)

    def pin_store(self) -> PinStore:
        return PinStore(self.root / PINS_FILENAME)

    def status(self) -> CacheStatus:
        devices = self.device_cache().load()
        playlists = self.playlist_cache().load()
        search = self.search_store().load()
        return CacheStatus(
            root=self.root,
            device_count=len(devices.items) if devices else None,
            devices_updated_at=devices.updated_at if devices else None,
            playlist_count=len(playlists.items) if playlists else None,
            playlists_updated_at=playlists.updated_at if playlists else None,
            pin_count=len(self.pin_store().load().items),
            last_search=search.query if search else None,
        )


__all__ = [
    "AuthToken",
    "Cache",
    "CacheSnapshot",
    "CacheStatus",
    "CachedSearch",
    "ClientIdentity",
    "DeviceCache",
    "Metadata",
    "MetadataStore",
    "PinnedResource",
    "PinStore",
    "Pins",
    "PlaylistCache",
    "SearchStore",
    "Settings",
]

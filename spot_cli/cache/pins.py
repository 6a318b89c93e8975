"""
Pin store: user-named shortcuts to Spotify URLs.

Pins are keyed by the lowercased name. Adding a pin whose name collides
(case-insensitively) with an existing one replaces that entry in place,
keeping its position but taking the new name spelling and URL.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from spot_cli.core.exceptions import DecodeError
from spot_cli.core.jsonstore import JsonFileStore


PINS_FILENAME = "pins.json"


@dataclass(frozen=True)
class PinnedResource:
    name: str
    url: str

    @property
    def key(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class Pins:
    items: tuple[PinnedResource, ...] = field(default_factory=tuple)

    def find(self, name: str) -> PinnedResource | None:
        key = name.lower()
        for pin in self.items:
            if pin.key == key:
                return pin
        return None

    def with_pin(self, pin: PinnedResource) -> "Pins":
        items = list(self.items)
        for index, existing in enumerate(items):
            if existing.key == pin.key:
                items[index] = pin
                return Pins(tuple(items))
        items.append(pin)
        return Pins(tuple(items))

    def without(self, name: str) -> "Pins":
        key = name.lower()
        return Pins(tuple(p for p in self.items if p.key != key))

    def to_dict(self) -> dict[str, Any]:
        return {"items": [{"name": p.name, "url": p.url} for p in self.items]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Pins":
        return cls(tuple(
            PinnedResource(name=item["name"], url=item["url"])
            for item in data.get("items") or ()
        ))


class PinStore:
    """
    Typed wrapper around pins.json.

    Example:
        store = PinStore(cache_root / "pins.json")
        store.add("Release Radar", "https://open.spotify.com/playlist/...")
        store.remove("release radar")   # True
    """

    def __init__(self, path: Path) -> None:
        self._store = JsonFileStore(path)

    @property
    def path(self) -> Path:
        return self._store.path

    def load(self) -> Pins:
        raw = self._store.load()
        if raw is None:
            return Pins()
        try:
            return Pins.from_dict(raw)
        except (KeyError, TypeError, AttributeError) as e:
            raise DecodeError(
                f"unexpected pins format in {self.path}",
                details={"file_path": str(self.path), "original_error": str(e)}
            ) from e

    def save(self, pins: Pins) -> None:
        self._store.save(pins.to_dict())

    def add(self, name: str, url: str) -> PinnedResource:
        pin = PinnedResource(name=name, url=url)
        self.save(self.load().with_pin(pin))
        return pin

    def remove(self, name: str) -> bool:
        """Remove the pin named name. Returns True if one was present."""
        pins = self.load()
        if pins.find(name) is None:
            return False
        self.save(pins.without(name))
        return True

    def find(self, name: str) -> PinnedResource | None:
        return self.load().find(name)

"""
Last-search store backing --last and --pick.

search.json holds {"query": "...", "results": {"kind": "...", "items": [...]}}
and is overwritten by every `spot search`.
"""

from dataclasses import dataclass
from pathlib import Path

from spot_cli.core.exceptions import DecodeError
from spot_cli.core.jsonstore import JsonFileStore
from spot_cli.spotify.models import SearchResults


SEARCH_FILENAME = "search.json"


@dataclass(frozen=True)
class CachedSearch:
    query: str
    results: SearchResults


class SearchStore:
    def __init__(self, path: Path) -> None:
        self._store = JsonFileStore(path)

    @property
    def path(self) -> Path:
        return self._store.path

    def load(self) -> CachedSearch | None:
        raw = self._store.load()
        if raw is None:
            return None
        try:
            return CachedSearch(
                query=raw["query"],
                results=SearchResults.from_dict(raw["results"]),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DecodeError(
                f"unexpected search cache format in {self.path}",
                details={"file_path": str(self.path), "original_error": str(e)}
            ) from e

    def save(self, search: CachedSearch) -> None:
        self._store.save({"query": search.query, "results": search.results.to_dict()})

"""
Catalog search and recently played tracks.

The search endpoint returns one page per requested type under its own key
("tracks", "albums", ...). A kind of ALL is served by one request per
concrete kind, concatenated in the fixed order Track, Album, Artist,
Playlist. Null entries inside result pages (the API returns them for
unavailable objects) are skipped.
"""

from spot_cli.core.exceptions import UserInputError
from spot_cli.spotify.models import SearchItem, SearchKind, SearchResults
from spot_cli.spotify.transport import PAGE_LIMIT, HttpTransport


MARKET_FROM_TOKEN = "from_token"


class SearchClient:
    def __init__(self, transport: HttpTransport) -> None:
        self.transport = transport

    def search(
        self,
        query: str,
        kind: SearchKind,
        limit: int = 10,
        market_from_token: bool = False
    ) -> SearchResults:
        """
        Search the catalog.

        Args:
            query: Search text, passed through as the q parameter.
            kind: Concrete kind, or ALL for one request per kind.
            limit: Items per kind, clamped to 1..50.
            market_from_token: Restrict to the user's market.
        """
        query = (query or "").strip()
        if not query:
            raise UserInputError("search query must not be empty")
        limit = max(1, min(int(limit), PAGE_LIMIT))

        kinds = SearchKind.concrete() if kind is SearchKind.ALL else (kind,)
        items: list[SearchItem] = []
        for concrete in kinds:
            items.extend(self._search_kind(query, concrete, limit, market_from_token))
        return SearchResults(kind=kind, items=tuple(items))

    def recently_played(self, limit: int = 20) -> list[SearchItem]:
        limit = max(1, min(int(limit), PAGE_LIMIT))
        payload = self.transport.get_json(
            "/me/player/recently-played", {"limit": limit}
        ) or {}
        return [
            SearchItem.from_spotify_api(entry["track"], SearchKind.TRACK)
            for entry in payload.get("items") or []
            if entry and entry.get("track")
        ]

    def _search_kind(
        self,
        query: str,
        kind: SearchKind,
        limit: int,
        market_from_token: bool
    ) -> list[SearchItem]:
        params = {"q": query, "type": kind.value, "limit": limit}
        if market_from_token:
            params["market"] = MARKET_FROM_TOKEN
        payload = self.transport.get_json("/search", params) or {}
        page = payload.get(kind.result_key) or {}
        return [
            SearchItem.from_spotify_api(raw, kind)
            for raw in page.get("items") or []
            if raw
        ]

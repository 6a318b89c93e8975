"""
Authorized request execution against the Spotify Web API.

Every API client goes through HttpTransport.execute():

    1. Acquire a valid bearer token from the auth service (refreshing if needed)
    2. Build the URL from the API base (trailing slash trimmed) and the path;
       absolute URLs (pagination "next" links) are used verbatim
    3. Send a JSON body when given, otherwise an empty body for mutating verbs
    4. Network failures raise TransportError("remote request failed")
    5. 2xx responses are returned (204 has an empty body)
    6. Anything else raises ApiError, decorated with a hint:
       - body mentions "Insufficient client scope" -> ScopeMissingError, re-login
       - 401 -> token expired or invalid
       - 403 -> resource read-only or missing modify scope

Pagination:
    paginate() follows the server-provided "next" URL until it is null and
    never asks for more than PAGE_LIMIT items per page.
"""

from typing import Any, Protocol

import requests

from spot_cli.core.exceptions import ApiError, DecodeError, ScopeMissingError, TransportError
from spot_cli.core.logger import get_logger


logger = get_logger(__name__)

PAGE_LIMIT = 50
DEFAULT_TIMEOUT = 30.0
MUTATING_METHODS = frozenset({"POST", "PUT", "DELETE", "PATCH"})

SCOPE_SIGNAL = "Insufficient client scope"
HINT_SCOPE = "missing scope, re-login"
HINT_UNAUTHORIZED = "token expired or invalid"
HINT_FORBIDDEN = "resource read-only or missing modify scope"


class TokenSource(Protocol):
    def token(self) -> str: ...


def build_api_error(method: str, path: str, status: int, body: str) -> ApiError:
    """Build the ApiError for a non-success response, with its hint."""
    if SCOPE_SIGNAL in (body or ""):
        return ScopeMissingError(method, path, status, body, hint=HINT_SCOPE)
    if status == 401:
        return ApiError(method, path, status, body, hint=HINT_UNAUTHORIZED)
    if status == 403:
        return ApiError(method, path, status, body, hint=HINT_FORBIDDEN)
    return ApiError(method, path, status, body)


def json_or_none(response: requests.Response) -> Any | None:
    """Decode a response body; empty bodies (204) give None."""
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except ValueError as e:
        raise DecodeError(
            "remote returned invalid JSON",
            details={"url": response.url, "status": response.status_code}
        ) from e


class HttpTransport:
    """
    Bearer-authenticated request pipeline shared by all API clients.

    Attributes:
        auth: Anything with a token() method returning the access token.
        base_url: API base, without trailing slash.
        session: Shared requests.Session (connection pool).
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        auth: TokenSource,
        base_url: str,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT
    ) -> None:
        self.auth = auth
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.base_url}{path}"

    def execute(
        self,
        method: str,
        path: str,
        query: dict[str, Any] | None = None,
        body: Any | None = None
    ) -> requests.Response:
        """
        Send one authorized request.

        Raises:
            AuthRequiredError / ReauthRequiredError: No usable token.
            TransportError: The request never got a response.
            ApiError / ScopeMissingError: Non-success status.
        """
        method = method.upper()
        headers = {"Authorization": f"Bearer {self.auth.token()}"}
        kwargs: dict[str, Any] = {
            "headers": headers,
            "params": _clean_query(query),
            "timeout": self.timeout,
        }
        if body is not None:
            kwargs["json"] = body
        elif method in MUTATING_METHODS:
            kwargs["data"] = b""

        try:
            response = self.session.request(method, self.url_for(path), **kwargs)
        except requests.RequestException as e:
            raise TransportError(
                "remote request failed",
                details={"method": method, "path": path, "original_error": str(e)},
                hint="check your network connection"
            ) from e

        logger.debug(f"{method} {path} -> {response.status_code}")
        if 200 <= response.status_code < 300:
            return response
        raise build_api_error(method, path, response.status_code, response.text)

    def get_json(self, path: str, query: dict[str, Any] | None = None) -> Any | None:
        return json_or_none(self.execute("GET", path, query))

    def send(
        self,
        method: str,
        path: str,
        query: dict[str, Any] | None = None,
        body: Any | None = None
    ) -> Any | None:
        """Execute a request and decode its body if it has one."""
        return json_or_none(self.execute(method, path, query, body))

    def paginate(
        self,
        path: str,
        query: dict[str, Any] | None = None,
        limit: int = PAGE_LIMIT,
        max_items: int | None = None
    ) -> list[Any]:
        """
        Collect every item of a paged listing, in order.

        Args:
            path: First page path.
            query: Extra query parameters for the first page.
            limit: Page size, clamped to 1..PAGE_LIMIT.
            max_items: Stop once this many items were collected.
        """
        page_query = dict(query or {})
        page_query["limit"] = max(1, min(int(limit), PAGE_LIMIT))

        items: list[Any] = []
        next_path: str | None = path
        first = True
        while next_path:
            page = self.get_json(next_path, page_query if first else None) or {}
            first = False
            items.extend(page.get("items") or [])
            if max_items is not None and len(items) >= max_items:
                return items[:max_items]
            next_path = page.get("next")
        return items


def _clean_query(query: dict[str, Any] | None) -> dict[str, str] | None:
    if not query:
        return None
    cleaned: dict[str, str] = {}
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, bool):
            cleaned[key] = "true" if value else "false"
        else:
            cleaned[key] = str(value)
    return cleaned

"""
OAuth 2.0 Authorization Code + PKCE building blocks.

This module holds the pieces of the login flow that do not touch the
metadata store: PKCE verifier/challenge generation, the state nonce, the
authorization URL, redirect URI validation, and the loopback HTTP server
that captures the browser redirect.

Callback Server:
    The redirect URI must point at the loopback interface
    (http://127.0.0.1:<port>/<path>; "localhost" is treated as 127.0.0.1).
    CallbackServer binds that address, serves requests on a daemon thread
    and records the first request that hits the redirect path. Requests
    to other paths (a browser asking for /favicon.ico) get a 404 and the
    server keeps waiting. After one callback is consumed the server is
    shut down.

Example:
    verifier = pkce_verifier()
    with CallbackServer.for_redirect(redirect_uri, expected_state) as server:
        webbrowser.open(build_authorize_url(..., pkce_challenge(verifier), ...))
        code = server.wait_for_code(expected_state, timeout=120)
"""

import base64
import hashlib
import html
import secrets
import threading
import urllib.parse
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, HTTPServer

from spot_cli.core.exceptions import AuthRequiredError, UserInputError
from spot_cli.core.logger import get_logger


logger = get_logger(__name__)


REQUIRED_SCOPES: tuple[str, ...] = (
    "user-read-playback-state",
    "user-modify-playback-state",
    "user-read-currently-playing",
    "user-read-playback-position",
    "user-top-read",
    "user-read-recently-played",
    "user-library-modify",
    "user-library-read",
    "user-read-private",
    "user-read-email",
    "user-follow-modify",
    "user-follow-read",
    "playlist-read-private",
    "playlist-read-collaborative",
    "playlist-modify-public",
    "playlist-modify-private",
)

STATE_PREFIX = "spot-cli-"
VERIFIER_BYTES = 96  # 128 base64url characters
DEFAULT_CALLBACK_PORT = 8888
LOOPBACK_HOST = "127.0.0.1"


SUCCESS_HTML = """<!DOCTYPE html>
<html>
<head><title>spot-cli</title></head>
<body style="font-family: Arial, sans-serif; text-align: center; margin-top: 50px;">
    <h1 style="color: #1DB954;">Authenticated!</h1>
    <p>You can close this window and return to your terminal.</p>
</body>
</html>
"""

ERROR_HTML = """<!DOCTYPE html>
<html>
<head><title>spot-cli - Error</title></head>
<body style="font-family: Arial, sans-serif; text-align: center; margin-top: 50px;">
    <h1 style="color: #E22134;">Authentication Failed</h1>
    <p>{message}</p>
</body>
</html>
"""


def pkce_verifier() -> str:
    """Random URL-safe PKCE code verifier (128 characters)."""
    return secrets.token_urlsafe(VERIFIER_BYTES)


def pkce_challenge(verifier: str) -> str:
    """S256 challenge: base64url(sha256(verifier)) without padding."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def oauth_state() -> str:
    return STATE_PREFIX + secrets.token_urlsafe(16)


def build_authorize_url(
    accounts_url: str,
    client_id: str,
    redirect_uri: str,
    state: str,
    challenge: str,
    scopes: tuple[str, ...] | list[str] = REQUIRED_SCOPES
) -> str:
    params = {
        "response_type": "code",
        "client_id": client_id,
        "scope": " ".join(scopes),
        "redirect_uri": redirect_uri,
        "state": state,
        "code_challenge_method": "S256",
        "code_challenge": challenge,
    }
    return f"{accounts_url.rstrip('/')}/authorize?{urllib.parse.urlencode(params)}"


@dataclass(frozen=True)
class RedirectTarget:
    """Where the loopback listener binds, derived from the redirect URI."""
    host: str
    port: int
    path: str


def parse_redirect_uri(redirect_uri: str) -> RedirectTarget:
    """
    Validate a redirect URI and derive the listener address.

    Raises:
        UserInputError: If the URI is not an http loopback URI.
    """
    parsed = urllib.parse.urlparse(redirect_uri.strip())
    if parsed.scheme != "http":
        raise UserInputError(
            f"redirect URI must use http: {redirect_uri}",
            hint=f"use http://{LOOPBACK_HOST}:{DEFAULT_CALLBACK_PORT}/callback"
        )
    host = (parsed.hostname or "").lower()
    if host == "localhost":
        host = LOOPBACK_HOST
    if host != LOOPBACK_HOST:
        raise UserInputError(
            f"redirect URI must point at the loopback interface: {redirect_uri}",
            hint=f"use http://{LOOPBACK_HOST}:{DEFAULT_CALLBACK_PORT}/callback"
        )
    try:
        port = parsed.port or DEFAULT_CALLBACK_PORT
    except ValueError:
        raise UserInputError(f"invalid port in redirect URI: {redirect_uri}") from None
    return RedirectTarget(host=host, port=port, path=parsed.path or "/")


@dataclass(frozen=True)
class CallbackResult:
    code: str | None = None
    state: str | None = None
    error: str | None = None


class _CallbackHTTPServer(HTTPServer):
    """HTTPServer carrying the expected path and the captured result."""

    def __init__(
        self,
        address: tuple[str, int],
        path: str,
        expected_state: str | None = None
    ) -> None:
        super().__init__(address, CallbackHandler)
        self.callback_path = path
        self.expected_state = expected_state
        self.result: CallbackResult | None = None
        self.received = threading.Event()


class CallbackHandler(BaseHTTPRequestHandler):
    """
    Handles the browser redirect from the authorization server.

    Callback URL formats:
        - Success: <redirect>?code=AUTHORIZATION_CODE&state=STATE
        - Error:   <redirect>?error=ERROR_CODE&error_description=DESCRIPTION

    The first request on the redirect path is stored on the server as a
    CallbackResult; later requests are answered but ignored.
    """

    server: _CallbackHTTPServer

    def do_GET(self) -> None:
        parsed = urllib.parse.urlparse(self.path)
        if parsed.path != self.server.callback_path:
            self._respond(404, "Not found", content_type="text/plain")
            return

        params = urllib.parse.parse_qs(parsed.query)
        error = _first(params, "error")
        if error:
            description = _first(params, "error_description") or error
            result = CallbackResult(error=description, state=_first(params, "state"))
            self._respond(200, ERROR_HTML.format(message=html.escape(description)))
        else:
            code = _first(params, "code")
            result = CallbackResult(
                code=code,
                state=_first(params, "state"),
                error=None if code else "missing authorization code",
            )
            expected = self.server.expected_state
            if code and expected is not None and result.state != expected:
                self._respond(400, ERROR_HTML.format(message="State mismatch, please retry the login"))
            elif code:
                self._respond(200, SUCCESS_HTML)
            else:
                self._respond(400, ERROR_HTML.format(message="Missing authorization code"))

        if self.server.result is None:
            self.server.result = result
            self.server.received.set()

    def log_message(self, format: str, *args) -> None:
        logger.debug("callback server: " + format % args)

    def _respond(self, status: int, body: str, content_type: str = "text/html") -> None:
        payload = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", f"{content_type}; charset=utf-8")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)


class CallbackServer:
    """
    Loopback listener that captures exactly one OAuth callback.

    The server is started on construction via start() (or the context
    manager) and serves on a daemon thread, so the caller is free to open
    the browser while it waits.
    """

    def __init__(self, host: str, port: int, path: str, expected_state: str | None = None) -> None:
        self.host = host
        self.port = port
        self.path = path
        self.expected_state = expected_state
        self._server: _CallbackHTTPServer | None = None
        self._thread: threading.Thread | None = None

    @classmethod
    def for_redirect(cls, redirect_uri: str, expected_state: str | None = None) -> "CallbackServer":
        target = parse_redirect_uri(redirect_uri)
        return cls(target.host, target.port, target.path, expected_state)

    @property
    def bound_port(self) -> int:
        """Actual port, useful when port 0 asked for an ephemeral one."""
        if self._server is None:
            return self.port
        return self._server.server_address[1]

    def start(self) -> "CallbackServer":
        try:
            self._server = _CallbackHTTPServer(
                (self.host, self.port), self.path, self.expected_state
            )
        except OSError as e:
            raise UserInputError(
                f"cannot listen on {self.host}:{self.port}: {e.strerror or e}",
                hint="free the port or pass a different --redirect-uri"
            ) from e
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name="spot-cli-oauth-callback",
            daemon=True,
        )
        self._thread.start()
        logger.debug(f"Callback server listening on {self.host}:{self.bound_port}{self.path}")
        return self

    def wait(self, timeout: float) -> CallbackResult:
        """
        Block until the callback arrives.

        Raises:
            AuthRequiredError: If nothing arrived within timeout seconds.
        """
        if self._server is None:
            raise RuntimeError("callback server not started")
        if not self._server.received.wait(timeout):
            raise AuthRequiredError(
                "authorization not completed",
                details={"timeout": timeout},
                hint="finish the consent in the browser and retry `spot auth login`"
            )
        return self._server.result or CallbackResult(error="empty callback")

    def wait_for_code(self, expected_state: str, timeout: float) -> str:
        """
        Wait for the callback and validate it.

        Raises:
            AuthRequiredError: On timeout, denial, missing code or state mismatch.
        """
        result = self.wait(timeout)
        if result.error:
            raise AuthRequiredError(f"authorization failed: {result.error}")
        if result.state != expected_state:
            raise AuthRequiredError(
                "authorization state mismatch",
                details={"expected": expected_state, "received": result.state}
            )
        return result.code or ""

    def close(self) -> None:
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def __enter__(self) -> "CallbackServer":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _first(params: dict[str, list[str]], key: str) -> str | None:
    values = params.get(key)
    return values[0] if values else None

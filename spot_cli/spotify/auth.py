"""
Authentication service for the Spotify Web API.

AuthService owns the OAuth 2.0 Authorization Code + PKCE session and the
token lifecycle in metadata.json.

States (derived from the persisted token):
    LOGGED_OUT          no token
    LOGGED_IN_VALID     token present, not past expires_at
    LOGGED_IN_EXPIRED   token present, past expires_at

Transitions:
    LOGGED_OUT --login--> LOGGED_IN_VALID
    any --logout--> LOGGED_OUT
    LOGGED_IN_EXPIRED --refresh--> LOGGED_IN_VALID

Token Access:
    token() returns a usable access token. A token within REFRESH_MARGIN
    seconds of expiry is refreshed first and the rotated token persisted,
    so every later call (in this or another invocation) sees it. There is
    no token cache outside metadata.json.

Concurrency:
    Two logins running at the same time both rewrite metadata.json; the
    last writer wins. There is no file locking.
"""

import time
import webbrowser
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

import requests

from spot_cli.cache.metadata import AuthToken, ClientIdentity, Metadata, MetadataStore
from spot_cli.core.config import Config
from spot_cli.core.exceptions import (
    ApiError,
    AuthRequiredError,
    DecodeError,
    ReauthRequiredError,
    TransportError,
    UserInputError,
)
from spot_cli.core.logger import get_logger
from spot_cli.spotify.models import UserProfile
from spot_cli.spotify.oauth import (
    REQUIRED_SCOPES,
    CallbackServer,
    build_authorize_url,
    oauth_state,
    pkce_challenge,
    pkce_verifier,
)
from spot_cli.spotify.transport import build_api_error


logger = get_logger(__name__)

REFRESH_MARGIN = 60
DEFAULT_EXPIRES_IN = 3600
TOKEN_PATH = "/api/token"


class AuthState(str, Enum):
    LOGGED_OUT = "logged_out"
    LOGGED_IN_VALID = "logged_in_valid"
    LOGGED_IN_EXPIRED = "logged_in_expired"


@dataclass(frozen=True)
class AuthStatus:
    logged_in: bool
    state: AuthState
    expires_at: int | None = None
    client_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "logged_in": self.logged_in,
            "state": self.state.value,
            "expires_at": self.expires_at,
            "client_id": self.client_id,
        }


@dataclass(frozen=True)
class AuthScopes:
    """
    Scope reconciliation.

    Attributes:
        required: Scopes the CLI declares it needs.
        granted: Scopes the server granted, None when unknown.
        missing: required minus granted; empty when granted is unknown.
    """
    required: tuple[str, ...]
    granted: tuple[str, ...] | None
    missing: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "required": list(self.required),
            "granted": list(self.granted) if self.granted is not None else None,
            "missing": list(self.missing),
        }


def is_expired(token: AuthToken, now: float, margin: int = 0) -> bool:
    return token.expires_at is not None and now + margin >= token.expires_at


class AuthService:
    """
    OAuth session manager backed by the metadata store.

    Attributes:
        store: Metadata store holding token, client identity and settings.
        config: Effective configuration (endpoints, client ID, timeouts).
        session: requests.Session used for token and profile calls.

    Example:
        auth = AuthService(cache.metadata_store(), config)
        auth.login(client_id="abc")
        headers = {"Authorization": f"Bearer {auth.token()}"}
    """

    def __init__(
        self,
        store: MetadataStore,
        config: Config,
        session: requests.Session | None = None,
        opener: Callable[[str], Any] = webbrowser.open,
        clock: Callable[[], float] = time.time
    ) -> None:
        self.store = store
        self.config = config
        self.session = session or requests.Session()
        self._opener = opener
        self._clock = clock

    @property
    def token_url(self) -> str:
        return f"{self.config.api.accounts_url}{TOKEN_PATH}"

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------

    def login(
        self,
        client_id: str | None = None,
        redirect_uri: str | None = None,
        open_browser: bool = True,
        notify: Callable[[str], None] | None = None
    ) -> AuthToken:
        """
        Run the interactive PKCE login.

        Args:
            client_id: Application client ID. Falls back to configuration.
            redirect_uri: Loopback redirect URI. Falls back to configuration.
            open_browser: Open the authorization URL in the default browser.
            notify: Called with the authorization URL so the caller can
                    show it when no browser opens.

        Returns:
            The persisted token.

        Raises:
            UserInputError: No client ID, or an unusable redirect URI.
            AuthRequiredError: Callback timed out, was denied, or had a
                               mismatching state.
            ApiError / TransportError: Code exchange failed.
        """
        client_id = (client_id or self.config.auth.client_id or "").strip()
        if not client_id:
            raise UserInputError(
                "missing client id",
                hint="pass --client-id or set SPOT_CLI_CLIENT_ID"
            )
        redirect_uri = redirect_uri or self.config.auth.redirect_uri

        verifier = pkce_verifier()
        state = oauth_state()
        url = build_authorize_url(
            self.config.api.accounts_url,
            client_id,
            redirect_uri,
            state,
            pkce_challenge(verifier),
        )

        with CallbackServer.for_redirect(redirect_uri, state) as server:
            logger.info("Waiting for authorization callback...")
            if notify is not None:
                notify(url)
            if open_browser:
                self._opener(url)
            code = server.wait_for_code(state, timeout=self.config.auth.callback_timeout)

        token = self._request_token({
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "client_id": client_id,
            "code_verifier": verifier,
        })
        self._persist_login(token, client_id)
        logger.info("Authorization successful")

        if not self.config.auth.skip_profile:
            self.ensure_user_name()
        return token

    def login_with_token(self, token: AuthToken, client_id: str | None = None) -> None:
        """Persist an externally obtained token as the current session."""
        self._persist_login(token, client_id)

    def logout(self) -> bool:
        """
        Drop the persisted token. Client identity and settings are kept.

        Returns:
            True if a token was present.
        """
        metadata = self.store.load()
        if metadata.auth is None:
            return False
        self.store.save(metadata.with_auth(None))
        logger.info("Logged out")
        return True

    # ------------------------------------------------------------------
    # Token access
    # ------------------------------------------------------------------

    def token(self) -> str:
        """Return a valid access token, refreshing it first when needed."""
        return self.current_token().access_token

    def current_token(self) -> AuthToken:
        """
        Return the persisted token, refreshed if it is about to expire.

        Raises:
            AuthRequiredError: Nothing persisted.
            ReauthRequiredError: Expired without a refresh token, or the
                                 refresh token was rejected.
        """
        metadata = self.store.load()
        token = metadata.auth
        if token is None:
            raise AuthRequiredError()
        if not is_expired(token, self._clock(), REFRESH_MARGIN):
            return token
        if not token.refresh_token:
            raise ReauthRequiredError()
        if metadata.client is None:
            raise ReauthRequiredError(
                "no client id recorded for this session, re-login"
            )
        return self.refresh(metadata)

    def refresh(self, metadata: Metadata | None = None) -> AuthToken:
        """Exchange the refresh token for a new access token and persist it."""
        metadata = metadata or self.store.load()
        previous = metadata.auth
        if previous is None:
            raise AuthRequiredError()
        if not previous.refresh_token or metadata.client is None:
            raise ReauthRequiredError()

        logger.info("Refreshing access token")
        token = self._request_token(
            {
                "grant_type": "refresh_token",
                "refresh_token": previous.refresh_token,
                "client_id": metadata.client.client_id,
            },
            previous=previous,
        )
        self.store.update(lambda m: m.with_auth(token))
        return token

    # ------------------------------------------------------------------
    # Status and scopes
    # ------------------------------------------------------------------

    def state(self) -> AuthState:
        token = self.store.load().auth
        if token is None:
            return AuthState.LOGGED_OUT
        if is_expired(token, self._clock()):
            return AuthState.LOGGED_IN_EXPIRED
        return AuthState.LOGGED_IN_VALID

    def status(self) -> AuthStatus:
        metadata = self.store.load()
        state = self.state()
        return AuthStatus(
            logged_in=state is not AuthState.LOGGED_OUT,
            state=state,
            expires_at=metadata.auth.expires_at if metadata.auth else None,
            client_id=metadata.client.client_id if metadata.client else None,
        )

    def scopes(self) -> AuthScopes:
        token = self.store.load().auth
        granted = token.granted_scopes if token else None
        if granted is None:
            return AuthScopes(required=REQUIRED_SCOPES, granted=None, missing=())
        missing = tuple(s for s in REQUIRED_SCOPES if s not in granted)
        return AuthScopes(required=REQUIRED_SCOPES, granted=tuple(sorted(granted)), missing=missing)

    def require_scopes(self) -> None:
        """Raise ReauthRequiredError if a required scope is known to be missing."""
        missing = self.scopes().missing
        if missing:
            raise ReauthRequiredError(
                f"missing scopes: {', '.join(missing)}",
                details={"missing": list(missing)}
            )

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def country(self) -> str | None:
        return self.store.load().settings.country

    def set_country(self, country: str) -> str:
        code = (country or "").strip().upper()
        if len(code) != 2 or not code.isalpha() or not code.isascii():
            raise UserInputError(
                f"invalid country code '{country}'",
                hint="use an ISO 3166-1 alpha-2 code such as US or DE"
            )
        self.store.update(lambda m: m.with_settings(country=code))
        return code

    def user_name(self) -> str | None:
        return self.store.load().settings.user_name

    def set_user_name(self, name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise UserInputError("user name must not be empty")
        self.store.update(lambda m: m.with_settings(user_name=name))
        return name

    def ensure_user_name(self) -> str | None:
        """
        Return the signed-in user's name, fetching the profile once if needed.

        The persisted name wins. Otherwise GET /me is called, the display
        name (or user ID) is persisted and returned. Returns None only when
        profile fetches are disabled by configuration.
        """
        settings = self.store.load().settings
        if settings.user_name:
            return settings.user_name
        if self.config.auth.skip_profile:
            return None

        profile = self.profile()
        name = profile.name or "You"

        def apply(metadata: Metadata) -> Metadata:
            changes: dict[str, Any] = {"user_name": name}
            if metadata.settings.country is None and profile.country:
                changes["country"] = profile.country
            return metadata.with_settings(**changes)

        self.store.update(apply)
        return name

    def profile(self) -> UserProfile:
        """Fetch the signed-in user's profile (GET /me)."""
        path = "/me"
        try:
            response = self.session.get(
                f"{self.config.api.base_url}{path}",
                headers={"Authorization": f"Bearer {self.token()}"},
                timeout=self.config.api.request_timeout,
            )
        except requests.RequestException as e:
            raise TransportError(
                "remote request failed",
                details={"method": "GET", "path": path, "original_error": str(e)}
            ) from e
        if not 200 <= response.status_code < 300:
            raise build_api_error("GET", path, response.status_code, response.text)
        try:
            return UserProfile.from_spotify_api(response.json())
        except ValueError as e:
            raise DecodeError("unexpected profile response") from e

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _persist_login(self, token: AuthToken, client_id: str | None) -> None:
        if not token.access_token:
            raise AuthRequiredError("refusing to persist an empty access token")

        def apply(metadata: Metadata) -> Metadata:
            metadata = metadata.with_auth(token)
            if client_id:
                metadata = metadata.with_client(ClientIdentity(client_id))
            return metadata

        self.store.update(apply)

    def _request_token(
        self,
        data: dict[str, str],
        previous: AuthToken | None = None
    ) -> AuthToken:
        """
        POST a form to the token endpoint and build the resulting token.

        A refresh response may omit refresh_token and scope; the previous
        values are kept in that case.
        """
        grant = data.get("grant_type")
        try:
            response = self.session.post(
                self.token_url,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.config.api.request_timeout,
            )
        except requests.RequestException as e:
            raise TransportError(
                "remote request failed",
                details={"method": "POST", "path": TOKEN_PATH, "original_error": str(e)}
            ) from e

        if grant == "refresh_token" and response.status_code in (400, 401):
            raise ReauthRequiredError(
                "refresh token rejected, re-login",
                details={"status": response.status_code, "body": response.text}
            )
        if not 200 <= response.status_code < 300:
            raise ApiError("POST", TOKEN_PATH, response.status_code, response.text)

        try:
            payload = response.json()
            access_token = payload["access_token"]
        except (ValueError, KeyError, TypeError) as e:
            raise DecodeError("unexpected token response") from e
        if not access_token:
            raise DecodeError("token response carried an empty access token")

        expires_in = payload.get("expires_in", DEFAULT_EXPIRES_IN)
        scope = payload.get("scope")
        if scope is not None:
            granted = frozenset(scope.split())
        else:
            granted = previous.granted_scopes if previous else None

        return AuthToken(
            access_token=access_token,
            refresh_token=payload.get("refresh_token") or (previous.refresh_token if previous else None),
            expires_at=int(self._clock()) + int(expires_in),
            granted_scopes=granted,
        )

# tests/test_auth.py
"""Test the OAuth session lifecycle"""

from unittest.mock import patch

import pytest
import requests

from conftest import NOW, make_response, make_token
from spot_cli.cache import ClientIdentity
from spot_cli.core.exceptions import (
    ApiError,
    AuthRequiredError,
    DecodeError,
    ReauthRequiredError,
    TransportError,
    UserInputError,
)
from spot_cli.spotify.auth import AuthState, is_expired
from spot_cli.spotify.oauth import REQUIRED_SCOPES


def _token_response(access="access-2", refresh=None, expires_in=3600, scope=None):
    payload = {"access_token": access, "token_type": "Bearer", "expires_in": expires_in}
    if refresh is not None:
        payload["refresh_token"] = refresh
    if scope is not None:
        payload["scope"] = scope
    return make_response(200, payload)


class TestTokenAccess:
    """Test token() and refresh"""

    def test_not_logged_in(self, auth_service):
        with pytest.raises(AuthRequiredError) as exc_info:
            auth_service.token()
        assert exc_info.value.exit_code == 2

    def test_valid_token_no_refresh(self, auth_service, logged_in, session):
        assert auth_service.token() == "access-1"
        session.post.assert_not_called()

    def test_refresh_on_expiry(self, auth_service, cache, session):
        """An expired token is refreshed once and the new token persisted"""
        auth_service.login_with_token(make_token(expires_at=NOW - 1), client_id="client-123")
        session.post.return_value = _token_response(access="access-2", refresh="refresh-2")

        assert auth_service.token() == "access-2"
        assert auth_service.token() == "access-2"
        assert session.post.call_count == 1

        persisted = cache.metadata_store().load().auth
        assert persisted.access_token == "access-2"
        assert persisted.refresh_token == "refresh-2"
        assert persisted.expires_at == NOW + 3600

        form = session.post.call_args.kwargs["data"]
        assert form == {
            "grant_type": "refresh_token",
            "refresh_token": "refresh-1",
            "client_id": "client-123",
        }

    def test_refresh_within_margin(self, auth_service, session):
        auth_service.login_with_token(make_token(expires_at=NOW + 30), client_id="client-123")
        session.post.return_value = _token_response()
        assert auth_service.token() == "access-2"

    def test_refresh_keeps_old_refresh_token_and_scopes(self, auth_service, cache, session):
        auth_service.login_with_token(
            make_token(expires_at=NOW - 1, scopes=["user-read-private"]),
            client_id="client-123",
        )
        session.post.return_value = _token_response()

        auth_service.token()
        persisted = cache.metadata_store().load().auth
        assert persisted.refresh_token == "refresh-1"
        assert persisted.granted_scopes == frozenset({"user-read-private"})

    def test_refresh_rejected(self, auth_service, session):
        auth_service.login_with_token(make_token(expires_at=NOW - 1), client_id="client-123")
        session.post.return_value = make_response(400, {"error": "invalid_grant"})

        with pytest.raises(ReauthRequiredError) as exc_info:
            auth_service.token()
        assert exc_info.value.message == "refresh token rejected, re-login"

    def test_expired_without_refresh_token(self, auth_service):
        auth_service.login_with_token(
            make_token(expires_at=NOW - 1, refresh_token=None), client_id="client-123"
        )
        with pytest.raises(ReauthRequiredError):
            auth_service.token()

    def test_expired_without_client(self, auth_service):
        auth_service.login_with_token(make_token(expires_at=NOW - 1))
        with pytest.raises(ReauthRequiredError):
            auth_service.token()

    def test_token_endpoint_failure(self, auth_service, session):
        auth_service.login_with_token(make_token(expires_at=NOW - 1), client_id="client-123")
        session.post.return_value = make_response(503, text="unavailable")
        with pytest.raises(ApiError) as exc_info:
            auth_service.token()
        assert exc_info.value.status == 503

    def test_token_endpoint_unreachable(self, auth_service, session):
        auth_service.login_with_token(make_token(expires_at=NOW - 1), client_id="client-123")
        session.post.side_effect = requests.ConnectionError("down")
        with pytest.raises(TransportError):
            auth_service.token()

    def test_token_response_without_access_token(self, auth_service, session):
        auth_service.login_with_token(make_token(expires_at=NOW - 1), client_id="client-123")
        session.post.return_value = make_response(200, {"token_type": "Bearer"})
        with pytest.raises(DecodeError):
            auth_service.token()

    def test_is_expired(self):
        token = make_token(expires_at=NOW)
        assert not is_expired(token, NOW - 1)
        assert is_expired(token, NOW)
        assert is_expired(token, NOW - 30, margin=60)


class TestLogin:
    """Test the PKCE login flow with a stubbed callback server"""

    @patch("spot_cli.spotify.auth.CallbackServer")
    def test_login_persists_token_and_client(self, callback_server, auth_service, cache, session):
        server = callback_server.for_redirect.return_value.__enter__.return_value
        server.wait_for_code.return_value = "auth-code"
        session.post.return_value = _token_response(
            access="fresh", refresh="r", scope=" ".join(REQUIRED_SCOPES)
        )
        opened = []
        auth_service._opener = opened.append
        shown = []

        auth_service.login(notify=shown.append)

        metadata = cache.metadata_store().load()
        assert metadata.auth.access_token == "fresh"
        assert metadata.client == ClientIdentity("client-123")
        assert opened == shown
        assert "code_challenge=" in opened[0]

        form = session.post.call_args.kwargs["data"]
        assert form["grant_type"] == "authorization_code"
        assert form["code"] == "auth-code"
        assert len(form["code_verifier"]) >= 43
        assert auth_service.state() is AuthState.LOGGED_IN_VALID

        redirect, expected_state = callback_server.for_redirect.call_args.args
        assert f"state={expected_state}" in opened[0]
        server.wait_for_code.assert_called_once_with(expected_state, timeout=120.0)

    @patch("spot_cli.spotify.auth.CallbackServer")
    def test_login_without_browser(self, callback_server, auth_service, session):
        server = callback_server.for_redirect.return_value.__enter__.return_value
        server.wait_for_code.return_value = "auth-code"
        session.post.return_value = _token_response()
        opened = []
        auth_service._opener = opened.append

        auth_service.login(open_browser=False)
        assert opened == []

    def test_login_requires_client_id(self, cache, session):
        from spot_cli.core.config import Config
        from spot_cli.spotify.auth import AuthService

        service = AuthService(cache.metadata_store(), Config(cache_dir=cache.root), session=session)
        with pytest.raises(UserInputError) as exc_info:
            service.login()
        assert exc_info.value.message == "missing client id"


class TestStatusAndLogout:
    """Test status, scopes and logout"""

    def test_logout_clears_auth_only(self, auth_service, cache, logged_in):
        assert auth_service.logout() is True

        status = auth_service.status()
        assert status.logged_in is False
        assert status.state is AuthState.LOGGED_OUT

        metadata = cache.metadata_store().load()
        assert metadata.auth is None
        assert metadata.client == ClientIdentity("client-123")
        assert metadata.settings.user_name == "alice"
        assert '"auth"' not in cache.metadata_store().path.read_text(encoding="utf-8")

    def test_logout_when_logged_out(self, auth_service):
        assert auth_service.logout() is False

    def test_status_expired(self, auth_service):
        auth_service.login_with_token(make_token(expires_at=NOW - 1))
        status = auth_service.status()
        assert status.logged_in is True
        assert status.state is AuthState.LOGGED_IN_EXPIRED

    def test_scopes_missing(self, auth_service):
        granted = [s for s in REQUIRED_SCOPES if s != "user-library-modify"]
        auth_service.login_with_token(make_token(scopes=granted))

        assert auth_service.scopes().missing == ("user-library-modify",)
        with pytest.raises(ReauthRequiredError):
            auth_service.require_scopes()

    def test_scopes_unknown(self, auth_service, logged_in):
        scopes = auth_service.scopes()
        assert scopes.granted is None
        assert scopes.missing == ()
        auth_service.require_scopes()


class TestSettings:
    """Test country and user name settings"""

    def test_country_validated_and_uppercased(self, auth_service):
        assert auth_service.set_country("de") == "DE"
        assert auth_service.country() == "DE"
        with pytest.raises(UserInputError):
            auth_service.set_country("DEU")

    def test_ensure_user_name_from_profile(self, cache, config, session):
        from dataclasses import replace

        from spot_cli.spotify.auth import AuthService

        config = replace(config, auth=replace(config.auth, skip_profile=False))
        service = AuthService(cache.metadata_store(), config, session=session, clock=lambda: NOW)
        service.login_with_token(make_token(), client_id="client-123")
        session.get.return_value = make_response(
            200, {"id": "u1", "display_name": "Alice", "country": "SE"}
        )

        assert service.ensure_user_name() == "Alice"
        assert service.ensure_user_name() == "Alice"
        assert session.get.call_count == 1
        assert service.country() == "SE"

    def test_skip_profile(self, auth_service, session):
        assert auth_service.ensure_user_name() is None
        session.get.assert_not_called()

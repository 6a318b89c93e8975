# tests/test_oauth.py
"""Test PKCE helpers, redirect validation and the loopback callback server"""

import base64
import hashlib
import urllib.error
import urllib.parse
import urllib.request

import pytest

from spot_cli.core.exceptions import AuthRequiredError, UserInputError
from spot_cli.spotify.oauth import (
    REQUIRED_SCOPES,
    CallbackServer,
    RedirectTarget,
    build_authorize_url,
    oauth_state,
    parse_redirect_uri,
    pkce_challenge,
    pkce_verifier,
)

# Bypass any proxy configured in the environment for loopback requests
_opener = urllib.request.build_opener(urllib.request.ProxyHandler({}))


def _get(url):
    with _opener.open(url, timeout=5) as response:
        return response.status


class TestPkce:
    """Test verifier, challenge and state"""

    def test_verifier_length_and_alphabet(self):
        verifier = pkce_verifier()
        assert 43 <= len(verifier) <= 128
        assert all(c.isalnum() or c in "-_" for c in verifier)
        assert pkce_verifier() != verifier

    def test_challenge_is_s256(self):
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        expected = base64.urlsafe_b64encode(
            hashlib.sha256(verifier.encode()).digest()
        ).rstrip(b"=").decode()
        assert pkce_challenge(verifier) == expected
        assert "=" not in pkce_challenge(verifier)

    def test_state_prefix(self):
        assert oauth_state().startswith("spot-cli-")

    def test_authorize_url(self):
        url = build_authorize_url(
            "https://accounts.test/", "cid", "http://127.0.0.1:8888/callback", "st", "ch"
        )
        parsed = urllib.parse.urlparse(url)
        params = urllib.parse.parse_qs(parsed.query)

        assert url.startswith("https://accounts.test/authorize?")
        assert params["response_type"] == ["code"]
        assert params["code_challenge_method"] == ["S256"]
        assert params["code_challenge"] == ["ch"]
        assert params["state"] == ["st"]
        assert params["scope"][0].split() == list(REQUIRED_SCOPES)


class TestRedirectUri:
    """Test redirect URI validation"""

    def test_loopback(self):
        assert parse_redirect_uri("http://127.0.0.1:9000/cb") == RedirectTarget("127.0.0.1", 9000, "/cb")

    def test_localhost_maps_to_ipv4(self):
        assert parse_redirect_uri("http://localhost/callback").host == "127.0.0.1"

    def test_default_port(self):
        assert parse_redirect_uri("http://127.0.0.1/callback").port == 8888

    @pytest.mark.parametrize("uri", [
        "https://127.0.0.1:8888/callback",
        "http://example.com:8888/callback",
        "http://127.0.0.1:notaport/callback",
    ])
    def test_rejected(self, uri):
        with pytest.raises(UserInputError):
            parse_redirect_uri(uri)


class TestCallbackServer:
    """Test the loopback listener with real HTTP requests"""

    def test_captures_code(self):
        with CallbackServer("127.0.0.1", 0, "/callback") as server:
            base = f"http://127.0.0.1:{server.bound_port}"
            assert _get(f"{base}/callback?code=abc&state=s1") == 200
            assert server.wait_for_code("s1", timeout=5) == "abc"

    def test_other_paths_ignored(self):
        with CallbackServer("127.0.0.1", 0, "/callback") as server:
            base = f"http://127.0.0.1:{server.bound_port}"
            with pytest.raises(urllib.error.HTTPError) as exc_info:
                _get(f"{base}/favicon.ico")
            assert exc_info.value.code == 404

            _get(f"{base}/callback?code=abc&state=s1")
            assert server.wait_for_code("s1", timeout=5) == "abc"

    def test_state_mismatch(self):
        with CallbackServer("127.0.0.1", 0, "/callback") as server:
            _get(f"http://127.0.0.1:{server.bound_port}/callback?code=abc&state=evil")
            with pytest.raises(AuthRequiredError) as exc_info:
                server.wait_for_code("s1", timeout=5)
            assert "state mismatch" in exc_info.value.message

    def test_state_mismatch_page_reports_failure(self):
        """The browser must not show success when the state is wrong"""
        with CallbackServer("127.0.0.1", 0, "/callback", expected_state="s1") as server:
            with pytest.raises(urllib.error.HTTPError) as exc_info:
                _get(f"http://127.0.0.1:{server.bound_port}/callback?code=abc&state=evil")
            assert exc_info.value.code == 400
            page = exc_info.value.read().decode("utf-8")
            assert "Authentication Failed" in page
            assert "Authenticated!" not in page
            with pytest.raises(AuthRequiredError):
                server.wait_for_code("s1", timeout=5)

    def test_matching_state_page_reports_success(self):
        with CallbackServer("127.0.0.1", 0, "/callback", expected_state="s1") as server:
            assert _get(f"http://127.0.0.1:{server.bound_port}/callback?code=abc&state=s1") == 200
            assert server.wait_for_code("s1", timeout=5) == "abc"

    def test_denied(self):
        with CallbackServer("127.0.0.1", 0, "/callback") as server:
            _get(
                f"http://127.0.0.1:{server.bound_port}/callback"
                "?error=access_denied&state=s1"
            )
            with pytest.raises(AuthRequiredError) as exc_info:
                server.wait_for_code("s1", timeout=5)
            assert "access_denied" in exc_info.value.message

    def test_timeout(self):
        with CallbackServer("127.0.0.1", 0, "/callback") as server:
            with pytest.raises(AuthRequiredError) as exc_info:
                server.wait(timeout=0.05)
            assert exc_info.value.message == "authorization not completed"

    def test_port_in_use(self):
        with CallbackServer("127.0.0.1", 0, "/callback") as first:
            second = CallbackServer("127.0.0.1", first.bound_port, "/callback")
            with pytest.raises(UserInputError):
                second.start()

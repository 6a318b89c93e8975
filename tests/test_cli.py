# tests/test_cli.py
"""Test the `spot` command end to end with CliRunner"""

import json
from unittest.mock import Mock

import pytest
import requests
from click.testing import CliRunner

from conftest import make_response, make_token, playlist_payload
from spot_cli import __version__
from spot_cli.cache import CachedSearch, ClientIdentity
from spot_cli.cli import cli, find_device, parse_position, track_id
from spot_cli.core.exceptions import UserInputError
from spot_cli.spotify.models import Device, Playlist, SearchItem, SearchKind, SearchResults
from spot_cli.spotify.oauth import REQUIRED_SCOPES

FAR_FUTURE = 4_000_000_000


@pytest.fixture
def runner(temp_dir, monkeypatch):
    monkeypatch.setenv("SPOT_CLI_CACHE_DIR", str(temp_dir))
    for name in ("SPOT_CLI_CLIENT_ID", "SPOT_CLI_API_BASE", "SPOT_CLI_LOG_FILE", "XDG_CACHE_HOME"):
        monkeypatch.delenv(name, raising=False)
    return CliRunner()


@pytest.fixture
def http(monkeypatch):
    """Replace the requests.Session built by AppContext"""
    session = Mock(spec=requests.Session)
    monkeypatch.setattr("spot_cli.context.requests.Session", lambda: session)
    return session


@pytest.fixture
def signed_in(cache):
    cache.metadata_store().update(
        lambda m: m.with_auth(make_token(expires_at=FAR_FUTURE))
        .with_client(ClientIdentity("client-123"))
        .with_settings(user_name="alice")
    )


def run_json(runner, args):
    result = runner.invoke(cli, ["--json", *args])
    return result, json.loads(result.output)


class TestGlobalOptions:
    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "playlist" in result.output


class TestPinCommands:
    """Test pins through the CLI"""

    def test_round_trip(self, runner):
        result = runner.invoke(cli, ["pin", "add", "Release Radar", "https://open.spotify.com/playlist/x1"])
        assert result.exit_code == 0
        assert "spotify:playlist:x1" in result.output

        result, payload = run_json(runner, ["pin", "list"])
        assert payload == {
            "ok": True,
            "data": [{"name": "Release Radar", "url": "https://open.spotify.com/playlist/x1"}],
        }

        result = runner.invoke(cli, ["pin", "remove", "release radar"])
        assert result.exit_code == 0

        result, payload = run_json(runner, ["pin", "list"])
        assert payload["data"] == []

    def test_remove_missing(self, runner):
        result, payload = run_json(runner, ["pin", "remove", "nothing"])
        assert result.exit_code == 1
        assert payload["ok"] is False
        assert payload["error"]["kind"] == "user_input"
        assert payload["error"]["message"] == "pin 'nothing' not found"

    def test_add_rejects_non_spotify_url(self, runner):
        result = runner.invoke(cli, ["pin", "add", "x", "https://example.com/a"])
        assert result.exit_code == 1
        assert "unrecognized resource" in result.output

    def test_complete_pins(self, runner):
        runner.invoke(cli, ["pin", "add", "Focus", "spotify:playlist:f1"])
        result = runner.invoke(cli, ["complete", "pin"])
        assert result.output.splitlines() == ["Focus"]


class TestAuthCommands:
    def test_not_logged_in_exit_code(self, runner):
        result, payload = run_json(runner, ["player", "pause"])
        assert result.exit_code == 2
        assert payload["error"]["kind"] == "auth_required"
        assert payload["error"]["hint"] == "run `spot auth login`"

    def test_human_error_on_stderr_format(self, runner):
        result = runner.invoke(cli, ["player", "pause"])
        assert result.exit_code == 2
        assert "Error: not logged in; hint: run `spot auth login`" in result.output

    def test_status_logged_out(self, runner):
        result, payload = run_json(runner, ["auth", "status"])
        assert result.exit_code == 0
        assert payload["data"]["logged_in"] is False

    def test_logout_keeps_settings(self, runner, cache, signed_in):
        result = runner.invoke(cli, ["auth", "logout"])
        assert result.exit_code == 0
        assert "Logged out" in result.output
        metadata = cache.metadata_store().load()
        assert metadata.auth is None
        assert metadata.settings.user_name == "alice"

    def _sign_in_with_scopes(self, cache, scopes):
        cache.metadata_store().update(
            lambda m: m.with_auth(make_token(expires_at=FAR_FUTURE, scopes=scopes))
        )

    def test_scopes_missing_requires_relogin(self, runner, cache):
        """A token lacking a required scope exits 2 with one error document"""
        self._sign_in_with_scopes(cache, [s for s in REQUIRED_SCOPES if s != "user-library-modify"])

        result, payload = run_json(runner, ["auth", "scopes"])

        assert result.exit_code == 2
        assert payload["ok"] is False
        assert payload["error"]["kind"] == "reauth_required"
        assert "user-library-modify" in payload["error"]["message"]

    def test_scopes_missing_human_output(self, runner, cache):
        self._sign_in_with_scopes(cache, [s for s in REQUIRED_SCOPES if s != "user-top-read"])

        result = runner.invoke(cli, ["auth", "scopes"])

        assert result.exit_code == 2
        assert "[ ] user-top-read" in result.output
        assert "Error: missing scopes: user-top-read" in result.output

    def test_scopes_complete(self, runner, cache):
        self._sign_in_with_scopes(cache, REQUIRED_SCOPES)

        result, payload = run_json(runner, ["auth", "scopes"])

        assert result.exit_code == 0
        assert payload["data"]["missing"] == []


class TestCacheCommands:
    def test_status(self, runner, temp_dir):
        result, payload = run_json(runner, ["cache", "status"])
        assert result.exit_code == 0
        assert payload["data"]["root"] == str(temp_dir)
        assert payload["data"]["playlist_count"] is None

    def test_country(self, runner):
        assert runner.invoke(cli, ["cache", "country", "se"]).exit_code == 0
        result, payload = run_json(runner, ["cache", "country"])
        assert payload["data"] == {"country": "SE"}

    def test_invalid_country(self, runner):
        result = runner.invoke(cli, ["cache", "country", "Sweden"])
        assert result.exit_code == 1

    def test_corrupt_cache_file(self, runner, temp_dir):
        (temp_dir / "pins.json").write_text("{", encoding="utf-8")
        result, payload = run_json(runner, ["pin", "list"])
        assert result.exit_code == 1
        assert payload["error"]["kind"] == "decode"


class TestRemoteCommands:
    """Commands that talk to the API through the mocked session"""

    def test_search_then_play_last(self, runner, http, signed_in, sample_track_data, cache):
        http.request.side_effect = [
            make_response(200, {"tracks": {"items": [sample_track_data]}}),
            make_response(204),
        ]

        result = runner.invoke(cli, ["search", "track", "test", "song"])
        assert result.exit_code == 0, result.output
        assert "1. Test Song - Test Artist (Test Album) [3:30]" in result.output
        assert cache.search_store().load().query == "test song"

        result = runner.invoke(cli, ["player", "play", "--last"])
        assert result.exit_code == 0, result.output
        play_call = http.request.call_args
        assert play_call.args[0] == "PUT"
        assert play_call.kwargs["json"] == {"uris": ["spotify:track:track123"]}

    def test_playlist_add_dry_run(self, runner, http, signed_in, cache):
        cache.playlist_cache().replace([Playlist("p1", "Road Trip", owner="alice")])

        result = runner.invoke(
            cli, ["playlist", "add", "road trip", "spotify:track:t1", "--dry-run"]
        )

        assert result.exit_code == 0, result.output
        assert "Would add 1 track(s) to Road Trip" in result.output
        http.request.assert_not_called()

    def test_playlist_add_read_only(self, runner, http, signed_in, cache):
        cache.playlist_cache().replace([Playlist("v1", "Viral", owner="Other")])

        result, payload = run_json(runner, ["playlist", "add", "viral", "spotify:track:t1"])

        assert result.exit_code == 1
        assert payload["error"]["kind"] == "read_only"
        http.request.assert_not_called()

    def test_playlist_add_last_keeps_first_track(self, runner, http, signed_in, cache):
        """With --last the first positional argument is a track, not the playlist"""
        results = SearchResults(
            SearchKind.PLAYLIST,
            (SearchItem("p1", "Road Trip", "spotify:playlist:p1", SearchKind.PLAYLIST, owner="alice"),),
        )
        cache.search_store().save(CachedSearch("road trip", results))
        http.request.return_value = make_response(200, playlist_payload("p1", "Road Trip", "alice"))

        result, payload = run_json(
            runner, ["playlist", "add", "--last", "spotify:track:t1", "spotify:track:t2", "--dry-run"]
        )

        assert result.exit_code == 0, result.output
        assert payload["data"]["uris"] == ["spotify:track:t1", "spotify:track:t2"]
        assert payload["data"]["playlist"]["id"] == "p1"

    def test_info_track_defaults_to_now_playing(self, runner, http, signed_in, sample_track_data):
        http.request.side_effect = [
            make_response(200, {"is_playing": True, "item": sample_track_data}),
            make_response(200, sample_track_data),
        ]

        result = runner.invoke(cli, ["info", "track"])

        assert result.exit_code == 0, result.output
        assert "Test Song - Test Artist (Test Album) [3:30]" in result.output
        assert http.request.call_args.args[1].endswith("/tracks/track123")

    def test_info_track_nothing_playing(self, runner, http, signed_in):
        http.request.return_value = make_response(204)
        result, payload = run_json(runner, ["info", "track"])
        assert result.exit_code == 1
        assert payload["error"]["kind"] == "not_found"

    def test_user_profile(self, runner, http, signed_in):
        http.request.return_value = make_response(
            200, {"id": "u1", "display_name": "Alice", "product": "premium"}
        )
        result = runner.invoke(cli, ["user", "profile"])
        assert result.exit_code == 0, result.output
        assert "Alice (premium)" in result.output

    def test_user_top(self, runner, http, signed_in):
        http.request.return_value = make_response(200, {"items": [{"id": "r1", "name": "Band"}]})

        result = runner.invoke(cli, ["user", "top", "artists", "--range", "long", "--limit", "5"])

        assert result.exit_code == 0, result.output
        assert "Top 1 artists (all time)" in result.output
        assert "1. Band" in result.output
        assert http.request.call_args.kwargs["params"] == {"time_range": "long_term", "limit": "5"}

    def test_artist_follow_last_dry_run(self, runner, http, signed_in, cache):
        results = SearchResults(
            SearchKind.ARTIST,
            (
                SearchItem("r1", "Band", "spotify:artist:r1", SearchKind.ARTIST),
                SearchItem("r2", "Other Band", "spotify:artist:r2", SearchKind.ARTIST),
            ),
        )
        cache.search_store().save(CachedSearch("band", results))

        result, payload = run_json(runner, ["artist", "follow", "--last", "--pick", "2", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert payload["data"] == {"action": "follow", "ids": ["r2"], "dry_run": True}
        http.request.assert_not_called()

    def test_artist_follow_rejects_tracks(self, runner, http, signed_in):
        result, payload = run_json(runner, ["artist", "follow", "spotify:track:t1"])
        assert result.exit_code == 1
        assert payload["error"]["kind"] == "user_input"
        http.request.assert_not_called()

    def test_artist_unfollow(self, runner, http, signed_in):
        http.request.return_value = make_response(204)
        result = runner.invoke(cli, ["artist", "unfollow", "spotify:artist:r1"])
        assert result.exit_code == 0, result.output
        assert "Unfollowed 1 artist(s)" in result.output
        assert http.request.call_args.args[0] == "DELETE"

    def test_api_failure_exit_code(self, runner, http, signed_in):
        http.request.return_value = make_response(404, {"error": {"message": "No active device"}})
        result, payload = run_json(runner, ["player", "next"])
        assert result.exit_code == 3
        assert payload["error"]["kind"] == "api"

    def test_devices_set_from_cache(self, runner, http, signed_in, cache):
        cache.device_cache().replace([Device("d1", "Kitchen Speaker")])
        http.request.return_value = make_response(204)

        result = runner.invoke(cli, ["player", "devices", "set", "kitchen speaker"])

        assert result.exit_code == 0, result.output
        assert http.request.call_count == 1
        assert http.request.call_args.kwargs["json"] == {"device_ids": ["d1"], "play": True}

    def test_playlist_list_cached(self, runner, http, signed_in, cache):
        cache.playlist_cache().replace([
            Playlist("p2", "beta", owner="bob"),
            Playlist("p1", "Alpha", owner="alice"),
        ])
        result, payload = run_json(runner, ["playlist", "list", "--sort", "name", "--owned"])
        assert [p["id"] for p in payload["data"]] == ["p1"]
        http.request.assert_not_called()


class TestCompletions:
    def test_bash_source(self, runner):
        result = runner.invoke(cli, ["completions", "bash"])
        assert result.exit_code == 0
        assert "_SPOT_COMPLETE" in result.output


class TestHelpers:
    def test_parse_position(self):
        assert parse_position("90000") == 90000
        assert parse_position("1:30") == 90000
        with pytest.raises(UserInputError):
            parse_position("1:75")

    def test_track_id(self):
        assert track_id("spotify:track:abc") == "abc"
        assert track_id("https://open.spotify.com/track/abc?si=1") == "abc"
        assert track_id("abc123") == "abc123"
        with pytest.raises(UserInputError):
            track_id("spotify:album:abc")

    def test_find_device(self):
        devices = [Device("id-1", "Desk"), Device("id-2", "desk phone")]
        assert find_device(devices, "id-2").name == "desk phone"
        assert find_device(devices, "DESK").id == "id-1"
        assert find_device(devices, "tv") is None

# tests/test_api_clients.py
"""Test the API clients against a mocked HTTP session"""

import pytest

from conftest import make_response, playlist_payload
from spot_cli.core.exceptions import UserInputError
from spot_cli.spotify.client import SpotifyClient
from spot_cli.spotify.models import SearchKind
from spot_cli.spotify.playlists import find_duplicates


@pytest.fixture
def client(transport):
    return SpotifyClient(transport)


def _calls(session):
    """(method, url, kwargs) for every request sent"""
    return [(c.args[0], c.args[1], c.kwargs) for c in session.request.call_args_list]


class TestSearch:
    """Test catalog search"""

    def test_all_concatenates_in_kind_order(self, client, session, sample_track_data):
        session.request.side_effect = [
            make_response(200, {"tracks": {"items": [sample_track_data]}}),
            make_response(200, {"albums": {"items": [{"id": "a1", "name": "LP", "artists": []}]}}),
            make_response(200, {"artists": {"items": [{"id": "r1", "name": "Band"}]}}),
            make_response(200, {"playlists": {"items": [None, playlist_payload("p1", "List", "me")]}}),
        ]

        results = client.search.search("song", SearchKind.ALL, limit=5)

        assert results.kind is SearchKind.ALL
        assert [i.kind for i in results.items] == [
            SearchKind.TRACK, SearchKind.ALBUM, SearchKind.ARTIST, SearchKind.PLAYLIST,
        ]
        assert [c[2]["params"]["type"] for c in _calls(session)] == [
            "track", "album", "artist", "playlist",
        ]
        track = results.items[0]
        assert track.artists == ("Test Artist",)
        assert track.album == "Test Album"
        assert track.duration_ms == 210000
        assert results.items[3].owner == "me"

    def test_market_and_limit(self, client, session):
        session.request.return_value = make_response(200, {"tracks": {"items": []}})
        client.search.search("x", SearchKind.TRACK, limit=99, market_from_token=True)
        params = session.request.call_args.kwargs["params"]
        assert params["limit"] == "50"
        assert params["market"] == "from_token"

    def test_empty_query(self, client, session):
        with pytest.raises(UserInputError):
            client.search.search("  ", SearchKind.TRACK)
        session.request.assert_not_called()

    def test_kind_parse(self):
        assert SearchKind.parse("Tracks") is SearchKind.TRACK
        with pytest.raises(UserInputError):
            SearchKind.parse("podcast")


class TestPlayback:
    """Test player state and controls"""

    def test_idle_status(self, client, session):
        session.request.return_value = make_response(204)
        status = client.playback.status()
        assert status.is_playing is False
        assert status.track is None

    def test_status(self, client, session, sample_track_data):
        session.request.return_value = make_response(200, {
            "is_playing": True,
            "progress_ms": 1000,
            "item": sample_track_data,
            "device": {"id": "d1", "name": "Desk", "volume_percent": 70, "is_active": True},
            "shuffle_state": False,
            "repeat_state": "off",
        })
        status = client.playback.status()
        assert status.track.name == "Test Song"
        assert status.device.volume_percent == 70

    def test_queue_truncated(self, client, session, sample_track_data):
        session.request.return_value = make_response(200, {
            "currently_playing": sample_track_data,
            "queue": [dict(sample_track_data, id=f"t{i}") for i in range(20)],
        })
        queue = client.playback.queue(limit=3)
        assert [t.id for t in queue.queue] == ["t0", "t1", "t2"]
        assert queue.now_playing.id == "track123"

    def test_play_track_and_context(self, client, session):
        session.request.return_value = make_response(204)
        client.playback.play_track("spotify:track:t1")
        client.playback.play_context("spotify:album:a1")
        bodies = [c[2]["json"] for c in _calls(session)]
        assert bodies == [{"uris": ["spotify:track:t1"]}, {"context_uri": "spotify:album:a1"}]

    def test_volume_range(self, client, session):
        with pytest.raises(UserInputError):
            client.playback.set_volume(101)
        session.request.assert_not_called()

    def test_shuffle_query(self, client, session):
        session.request.return_value = make_response(204)
        client.playback.shuffle(True)
        assert session.request.call_args.kwargs["params"] == {"state": "true"}

    def test_repeat_mode(self, client, session):
        with pytest.raises(UserInputError):
            client.playback.repeat("forever")

    def test_transfer_device(self, client, session):
        session.request.return_value = make_response(204)
        client.devices.set_active("d1")
        assert session.request.call_args.kwargs["json"] == {"device_ids": ["d1"], "play": True}


class TestAlbumsAndArtists:
    def test_album_duration_spans_pages(self, client, session):
        session.request.side_effect = [
            make_response(200, {"id": "a1", "name": "LP", "artists": [{"name": "Band"}]}),
            make_response(200, {
                "items": [{"name": "One", "duration_ms": 1000}],
                "next": "https://api.test/v1/albums/a1/tracks?offset=1",
            }),
            make_response(200, {"items": [{"name": "Two", "duration_ms": 2500}], "next": None}),
        ]
        album = client.albums.get("a1")
        assert [t.name for t in album.tracks] == ["One", "Two"]
        assert album.duration_ms == 3500

    def test_artist(self, client, session):
        session.request.return_value = make_response(200, {
            "id": "r1", "name": "Band", "genres": ["rock"], "followers": {"total": 12},
        })
        artist = client.artists.get("r1")
        assert artist.followers == 12
        assert artist.genres == ("rock",)


class TestLibrary:
    def test_ids_chunked(self, client, session):
        session.request.return_value = make_response(200)
        client.library.like([f"t{i}" for i in range(120)])
        sizes = [len(c[2]["params"]["ids"].split(",")) for c in _calls(session)]
        assert sizes == [50, 50, 20]

    def test_check(self, client, session):
        session.request.return_value = make_response(200, [True, False])
        assert client.library.check(["a", "b"]) == [True, False]

    def test_empty_ids(self, client):
        with pytest.raises(UserInputError):
            client.library.unlike([])

    def test_single_id_string_not_split_into_characters(self, client, session):
        session.request.return_value = make_response(200)
        client.library.like("abc123")
        client.library.unlike("abc123")
        assert [c[2]["params"]["ids"] for c in _calls(session)] == ["abc123", "abc123"]


class TestTracks:
    def test_get(self, client, session, sample_track_data):
        session.request.return_value = make_response(200, sample_track_data)
        track = client.tracks.get("track123")
        assert session.request.call_args.args[1].endswith("/tracks/track123")
        assert track.kind is SearchKind.TRACK
        assert track.artists == ("Test Artist",)


class TestUsers:
    """Test profiles, top items and follows"""

    def test_profile(self, client, session):
        session.request.return_value = make_response(200, {
            "id": "u1", "display_name": "Alice", "product": "premium",
            "email": "a@example.com", "followers": {"total": 7},
        })
        profile = client.users.profile()
        assert session.request.call_args.args[1].endswith("/me")
        assert profile.product == "premium"
        assert profile.followers == 7
        assert profile.to_dict()["email"] == "a@example.com"

    def test_get_other_user(self, client, session):
        session.request.return_value = make_response(200, {"id": "bob", "display_name": None})
        profile = client.users.get("bob")
        assert session.request.call_args.args[1].endswith("/users/bob")
        assert profile.name == "bob"
        assert profile.product is None

    def test_top_tracks_maps_time_range(self, client, session, sample_track_data):
        session.request.return_value = make_response(200, {"items": [sample_track_data]})

        items = client.users.top(SearchKind.TRACK, "short", limit=99)

        method, url, kwargs = _calls(session)[0]
        assert url.endswith("/me/top/tracks")
        assert kwargs["params"] == {"time_range": "short_term", "limit": "50"}
        assert [i.name for i in items] == ["Test Song"]

    def test_top_artists(self, client, session):
        session.request.return_value = make_response(200, {"items": [{"id": "r1", "name": "Band"}]})
        items = client.users.top(SearchKind.ARTIST)
        assert session.request.call_args.kwargs["params"]["time_range"] == "medium_term"
        assert items[0].uri == "spotify:artist:r1"

    def test_top_rejects_bad_input(self, client, session):
        with pytest.raises(UserInputError):
            client.users.top(SearchKind.ALBUM)
        with pytest.raises(UserInputError):
            client.users.top(SearchKind.TRACK, "forever")
        session.request.assert_not_called()

    def test_follow_and_unfollow_artists(self, client, session):
        session.request.return_value = make_response(204)
        client.users.follow_artists(["r1", "r2"])
        client.users.unfollow_artists("r3")

        calls = _calls(session)
        assert [c[0] for c in calls] == ["PUT", "DELETE"]
        assert all(c[1].endswith("/me/following") for c in calls)
        assert [c[2]["params"] for c in calls] == [
            {"type": "artist", "ids": "r1,r2"},
            {"type": "artist", "ids": "r3"},
        ]

    def test_follows_artists(self, client, session):
        session.request.return_value = make_response(200, [True, False])
        assert client.users.follows_artists(["r1", "r2"]) == [True, False]
        assert session.request.call_args.args[1].endswith("/me/following/contains")

    def test_follow_without_ids(self, client, session):
        with pytest.raises(UserInputError):
            client.users.follow_artists([])
        session.request.assert_not_called()


class TestPlaylists:
    """Test playlist operations"""

    def test_list_all_paginates(self, client, session):
        session.request.side_effect = [
            make_response(200, {
                "items": [playlist_payload("p1", "One", "me")],
                "next": "https://api.test/v1/me/playlists?offset=1",
            }),
            make_response(200, {"items": [playlist_payload("p2", "Two", "you")], "next": None}),
        ]
        assert [p.id for p in client.playlists.list_all()] == ["p1", "p2"]

    def test_add_tracks_chunked_with_position(self, client, session):
        session.request.return_value = make_response(201, {"snapshot_id": "s"})
        uris = [f"spotify:track:t{i}" for i in range(150)]
        client.playlists.add_tracks("p1", uris, position=5)

        bodies = [c[2]["json"] for c in _calls(session)]
        assert [len(b["uris"]) for b in bodies] == [100, 50]
        assert [b["position"] for b in bodies] == [5, 105]

    def test_edit_requires_change(self, client):
        with pytest.raises(UserInputError):
            client.playlists.edit("p1")

    def test_create(self, client, session):
        session.request.side_effect = [
            make_response(200, {"id": "u1", "display_name": "Me"}),
            make_response(201, playlist_payload("new", "Fresh", "u1", public=False)),
        ]
        detail = client.playlists.create("Fresh", public=False, description="d")

        assert detail.id == "new"
        method, url, kwargs = _calls(session)[1]
        assert (method, url) == ("POST", "https://api.test/v1/users/u1/playlists")
        assert kwargs["json"] == {"name": "Fresh", "public": False, "description": "d"}

    def test_find_duplicates(self):
        assert find_duplicates(["a", "b", "a", "c", "b", "a"]) == ["a", "b", "a"]
        assert find_duplicates(["a", "b"]) == []

    def test_deduplicate(self, client, session):
        items = {"items": [{"track": {"uri": u}} for u in ["a", "b", "a", "c", "b"]], "next": None}
        session.request.side_effect = [
            make_response(200, items),
            make_response(200, {"snapshot_id": "s1"}),
            make_response(201, {"snapshot_id": "s2"}),
            make_response(201, {"snapshot_id": "s3"}),
        ]

        removed = client.playlists.deduplicate("p1")

        assert removed == ["a", "b"]
        calls = _calls(session)
        assert calls[1][0] == "DELETE"
        assert calls[1][2]["json"] == {"tracks": [{"uri": "a"}, {"uri": "b"}]}
        assert [c[2]["json"] for c in calls[2:]] == [
            {"uris": ["a"], "position": 0},
            {"uris": ["b"], "position": 1},
        ]

    def test_deduplicate_dry_run(self, client, session):
        session.request.return_value = make_response(
            200, {"items": [{"track": {"uri": "a"}}, {"track": {"uri": "a"}}], "next": None}
        )
        assert client.playlists.deduplicate("p1", dry_run=True) == ["a"]
        assert session.request.call_count == 1

    def test_duplicate(self, client, session):
        session.request.side_effect = [
            make_response(200, dict(playlist_payload("src", "Mix", "me"), description="desc")),
            make_response(200, {"items": [{"track": {"uri": "spotify:track:t1"}}], "next": None}),
            make_response(200, {"id": "u1"}),
            make_response(201, playlist_payload("copy", "Mix (Copy)", "u1", public=False)),
            make_response(201, {"snapshot_id": "s"}),
        ]
        copy = client.playlists.duplicate("src")

        assert copy.id == "copy"
        calls = _calls(session)
        assert calls[3][2]["json"] == {"name": "Mix (Copy)", "public": False, "description": "desc"}
        assert calls[4][2]["json"] == {"uris": ["spotify:track:t1"]}

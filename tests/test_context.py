# tests/test_context.py
"""Test the application context"""

import threading

from conftest import make_response, playlist_payload
from spot_cli.context import AppContext


class TestAppContext:
    """Test lazy client construction and sync"""

    def test_spotify_built_once(self, context):
        assert context.spotify() is context.spotify()

    def test_spotify_built_once_across_threads(self, context):
        clients = []
        threads = [threading.Thread(target=lambda: clients.append(context.spotify())) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len({id(c) for c in clients}) == 1

    def test_shared_session(self, context, session):
        assert context.spotify().transport.session is session
        assert context.auth.session is session

    def test_defaults_from_config(self, config):
        context = AppContext(config)
        assert context.cache.root == config.cache_dir
        assert context.auth.session is context.session

    def test_sync_writes_snapshots(self, context, cache, session, logged_in):
        session.request.side_effect = [
            make_response(200, {"devices": [{"id": "d1", "name": "Desk", "volume_percent": 20}]}),
            make_response(200, {
                "items": [playlist_payload("p1", "One", "alice"), playlist_payload("p2", "Two", "bob")],
                "next": None,
            }),
        ]

        summary = context.sync()

        assert summary.to_dict() == {"devices": 1, "playlists": 2, "user_name": "alice"}
        assert [d.name for d in cache.device_cache().load().items] == ["Desk"]
        assert [p.id for p in cache.playlist_cache().load().items] == ["p1", "p2"]

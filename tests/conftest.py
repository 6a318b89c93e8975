"""Test configuration and fixtures"""

import json
import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest
import requests

from spot_cli.cache import AuthToken, Cache, ClientIdentity
from spot_cli.context import AppContext
from spot_cli.core.config import ApiConfig, AuthConfig, Config
from spot_cli.spotify.auth import AuthService
from spot_cli.spotify.transport import HttpTransport

NOW = 1_700_000_000
API_BASE = "https://api.test/v1"
ACCOUNTS_BASE = "https://accounts.test"


def make_response(status_code=200, payload=None, text=None, url="https://api.test/v1/x"):
    """Build a Mock requests.Response with a JSON or raw text body"""
    body = json.dumps(payload) if payload is not None else (text or "")
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.text = body
    response.content = body.encode("utf-8")
    response.url = url
    response.json.side_effect = lambda: json.loads(body)
    return response


def make_token(expires_at=NOW + 3600, refresh_token="refresh-1", scopes=None):
    return AuthToken(
        access_token="access-1",
        refresh_token=refresh_token,
        expires_at=expires_at,
        granted_scopes=frozenset(scopes) if scopes is not None else None,
    )


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def config(temp_dir):
    """Configuration pointing at the temporary cache and test endpoints"""
    return Config(
        cache_dir=temp_dir,
        api=ApiConfig(base_url=API_BASE, accounts_url=ACCOUNTS_BASE),
        auth=AuthConfig(client_id="client-123", skip_profile=True),
    )


@pytest.fixture
def cache(temp_dir):
    return Cache(temp_dir)


@pytest.fixture
def session():
    """requests.Session stand-in; tests set request/get/post return values"""
    return Mock(spec=requests.Session)


@pytest.fixture
def transport(session):
    """HttpTransport with a fixed bearer token over the mocked session"""
    token_source = Mock()
    token_source.token.return_value = "access-1"
    return HttpTransport(token_source, API_BASE, session=session)


@pytest.fixture
def auth_service(cache, config, session):
    return AuthService(cache.metadata_store(), config, session=session, clock=lambda: NOW)


@pytest.fixture
def logged_in(cache):
    """Persist a valid session for user 'alice'"""
    store = cache.metadata_store()
    store.update(
        lambda m: m.with_auth(make_token())
        .with_client(ClientIdentity("client-123"))
        .with_settings(user_name="alice")
    )
    return store


@pytest.fixture
def context(config, cache, auth_service, session):
    return AppContext(config, cache=cache, auth=auth_service, session=session)


@pytest.fixture
def sample_track_data():
    """Sample track payload as returned by the Web API"""
    return {
        'id': 'track123',
        'name': 'Test Song',
        'uri': 'spotify:track:track123',
        'type': 'track',
        'artists': [{'id': 'artist_123', 'name': 'Test Artist'}],
        'album': {
            'id': 'album_123',
            'name': 'Test Album',
            'album_type': 'album',
            'total_tracks': 12,
            'release_date': '2023-01-01',
            'artists': [{'id': 'artist_123', 'name': 'Test Artist'}]
        },
        'duration_ms': 210000,  # 3:30
        'explicit': False,
        'popularity': 75,
        'track_number': 3
    }


def playlist_payload(playlist_id, name, owner, collaborative=False, public=True):
    return {
        'id': playlist_id,
        'name': name,
        'uri': f'spotify:playlist:{playlist_id}',
        'owner': {'id': owner, 'display_name': owner},
        'collaborative': collaborative,
        'public': public,
        'tracks': {'total': 3},
    }

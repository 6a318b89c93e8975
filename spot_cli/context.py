"""
Application context passed explicitly to every command.

AppContext composes the cache, the auth service and the configuration,
and builds the API surface lazily: the first call to spotify() creates
the shared requests.Session, HttpTransport and SpotifyClient under a lock,
and later calls return the same instance. Commands that only touch local
files (pins, cache status, completion) never build it.
"""

import threading
from dataclasses import dataclass

import requests

from spot_cli.cache import Cache
from spot_cli.core.config import Config, load_config
from spot_cli.core.logger import get_logger
from spot_cli.spotify.auth import AuthService
from spot_cli.spotify.client import SpotifyClient
from spot_cli.spotify.transport import HttpTransport


logger = get_logger(__name__)


@dataclass(frozen=True)
class SyncSummary:
    device_count: int
    playlist_count: int
    user_name: str | None

    def to_dict(self) -> dict:
        return {
            "devices": self.device_count,
            "playlists": self.playlist_count,
            "user_name": self.user_name,
        }


class AppContext:
    """
    Owns the stores and the auth service; borrows them to the API clients.

    Attributes:
        config: Effective configuration.
        cache: Cache rooted at config.cache_dir.
        auth: Auth service over the metadata store.
        session: HTTP session shared by auth and API clients.
    """

    def __init__(
        self,
        config: Config,
        cache: Cache | None = None,
        auth: AuthService | None = None,
        session: requests.Session | None = None
    ) -> None:
        self.config = config
        self.cache = cache or Cache(config.cache_dir)
        self.session = session or requests.Session()
        self.auth = auth or AuthService(self.cache.metadata_store(), config, session=self.session)
        self._client: SpotifyClient | None = None
        self._lock = threading.Lock()

    @classmethod
    def create(cls, config: Config | None = None) -> "AppContext":
        return cls(config or load_config())

    def spotify(self) -> SpotifyClient:
        """The API surface, built on first use."""
        with self._lock:
            if self._client is None:
                logger.debug("Initializing API clients")
                transport = HttpTransport(
                    self.auth,
                    self.config.api.base_url,
                    session=self.session,
                    timeout=self.config.api.request_timeout,
                )
                self._client = SpotifyClient(transport)
            return self._client

    def sync(self) -> SyncSummary:
        """Refresh the device and playlist snapshots and the cached user name."""
        client = self.spotify()
        devices = client.devices.list()
        playlists = client.playlists.list_all()
        self.cache.device_cache().replace(devices)
        self.cache.playlist_cache().replace(playlists)
        user_name = self.auth.ensure_user_name()
        logger.info(f"Synced {len(devices)} device(s) and {len(playlists)} playlist(s)")
        return SyncSummary(len(devices), len(playlists), user_name)

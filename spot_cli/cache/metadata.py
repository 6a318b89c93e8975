"""
Metadata store: token cache, client identity and user settings.

metadata.json holds one composite document:

    {
      "auth": {"access_token": "...", "refresh_token": "...",
               "expires_at": 1700000000, "granted_scopes": ["..."]},
      "client": {"client_id": "..."},
      "settings": {"country": "DE", "user_name": "Me"}
    }

Every section may be absent; a missing file is the same as an empty
document. The file holds credentials and is always written with mode 0600.
"""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable

from spot_cli.core.exceptions import DecodeError
from spot_cli.core.jsonstore import JsonFileStore


METADATA_FILENAME = "metadata.json"


@dataclass(frozen=True)
class AuthToken:
    """
    Persisted OAuth token.

    Attributes:
        access_token: Bearer credential, never empty once persisted.
        refresh_token: Long-lived credential for minting new access tokens.
        expires_at: Epoch seconds after which the access token must be refreshed.
        granted_scopes: Scopes the server actually granted, None if unknown.
    """
    access_token: str
    refresh_token: str | None = None
    expires_at: int | None = None
    granted_scopes: frozenset[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"access_token": self.access_token}
        if self.refresh_token is not None:
            data["refresh_token"] = self.refresh_token
        if self.expires_at is not None:
            data["expires_at"] = self.expires_at
        if self.granted_scopes is not None:
            data["granted_scopes"] = sorted(self.granted_scopes)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuthToken":
        scopes = data.get("granted_scopes")
        expires_at = data.get("expires_at")
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_at=int(expires_at) if expires_at is not None else None,
            granted_scopes=frozenset(scopes) if scopes is not None else None,
        )


@dataclass(frozen=True)
class ClientIdentity:
    client_id: str

    def to_dict(self) -> dict[str, Any]:
        return {"client_id": self.client_id}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClientIdentity":
        return cls(client_id=data["client_id"])


@dataclass(frozen=True)
class Settings:
    """
    User settings that survive login and logout.

    Attributes:
        country: ISO 3166-1 alpha-2 market code.
        user_name: Name of the signed-in user, used for writability checks.
    """
    country: str | None = None
    user_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.country is not None:
            data["country"] = self.country
        if self.user_name is not None:
            data["user_name"] = self.user_name
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        return cls(country=data.get("country"), user_name=data.get("user_name"))


@dataclass(frozen=True)
class Metadata:
    auth: AuthToken | None = None
    client: ClientIdentity | None = None
    settings: Settings = field(default_factory=Settings)

    def with_auth(self, auth: AuthToken | None) -> "Metadata":
        return replace(self, auth=auth)

    def with_client(self, client: ClientIdentity | None) -> "Metadata":
        return replace(self, client=client)

    def with_settings(self, **changes: Any) -> "Metadata":
        return replace(self, settings=replace(self.settings, **changes))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.auth is not None:
            data["auth"] = self.auth.to_dict()
        if self.client is not None:
            data["client"] = self.client.to_dict()
        data["settings"] = self.settings.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Metadata":
        auth = data.get("auth")
        client = data.get("client")
        return cls(
            auth=AuthToken.from_dict(auth) if auth else None,
            client=ClientIdentity.from_dict(client) if client else None,
            settings=Settings.from_dict(data.get("settings") or {}),
        )


class MetadataStore:
    """
    Typed wrapper around metadata.json.

    Example:
        store = MetadataStore(cache_root / "metadata.json")
        store.update(lambda m: m.with_settings(country="DE"))
    """

    def __init__(self, path: Path) -> None:
        self._store = JsonFileStore(path, secret=True)

    @property
    def path(self) -> Path:
        return self._store.path

    def load(self) -> Metadata:
        raw = self._store.load()
        if raw is None:
            return Metadata()
        if not isinstance(raw, dict):
            raise DecodeError(
                f"unexpected metadata format in {self.path}",
                details={"file_path": str(self.path)}
            )
        try:
            return Metadata.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(
                f"unexpected metadata format in {self.path}",
                details={"file_path": str(self.path), "original_error": str(e)}
            ) from e

    def save(self, metadata: Metadata) -> None:
        self._store.save(metadata.to_dict())

    def update(self, change: Callable[[Metadata], Metadata]) -> Metadata:
        """Load, apply change, save and return the new document."""
        metadata = change(self.load())
        self.save(metadata)
        return metadata

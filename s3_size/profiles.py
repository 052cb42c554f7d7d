from __future__ import annotations
"""Connection profiles, their persistence and the storage configuration."""
from dataclasses import dataclass
import json
from pathlib import Path

import keyring
from keyring.errors import KeyringError

DEFAULT_REGION = "us-west-1"


class ProfileNotFoundError(LookupError):
    """Raised when a named connection profile does not exist."""


@dataclass
class ConnectionProfile:
    """Represents a saved S3 connection."""

    name: str
    access_key: str
    secret_key: str = ""
    endpoint_url: str = ""
    region: str = ""


@dataclass
class StorageConfig:
    """Explicit configuration handed to the storage service.

    ``profile`` supplies credentials; when it is ``None`` boto3 falls back to
    its default credential chain (environment, shared config, instance role).
    """

    region: str = DEFAULT_REGION
    profile: ConnectionProfile | None = None
    endpoint_url: str | None = None


class KeychainStore:
    """Encapsulates OS keychain access for secrets."""

    def __init__(self, service_name: str = "pys3size"):
        self._service_name = service_name

    def get_secret(self, profile_name: str) -> str:
        if not profile_name:
            return ""
        try:
            return keyring.get_password(self._service_name, profile_name) or ""
        except KeyringError:
            return ""

    def set_secret(self, profile_name: str, secret_key: str) -> None:
        """Store ``secret_key``; raises ``KeyringError`` when no backend can hold it."""
        if not profile_name:
            return
        if not secret_key:
            self.delete_secret(profile_name)
            return
        keyring.set_password(self._service_name, profile_name, secret_key)

    def delete_secret(self, profile_name: str) -> None:
        if not profile_name:
            return
        try:
            keyring.delete_password(self._service_name, profile_name)
        except KeyringError:
            # Nothing stored for this profile.
            return


class ProfileStorage:
    """JSON-backed store for connection profiles; secrets live in the keychain."""

    def __init__(self, storage_path: str | Path | None = None, keychain: KeychainStore | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".pys3size_connections.json"
        self._path = Path(storage_path)
        self._keychain = keychain or KeychainStore()

    def load(self) -> list[ConnectionProfile]:
        data = self._read_data()
        profiles: list[ConnectionProfile] = []
        sanitized: list[dict[str, str]] = []
        saw_plaintext = False
        for entry in data:
            try:
                name = entry["name"]
                access_key = entry["access_key"]
            except (KeyError, TypeError):
                continue
            secret_key = entry.get("secret_key", "")
            if secret_key:
                saw_plaintext = True
                self._keychain.set_secret(name, secret_key)
            else:
                secret_key = self._keychain.get_secret(name)
            profile = ConnectionProfile(
                name=name,
                access_key=access_key,
                secret_key=secret_key,
                endpoint_url=entry.get("endpoint_url", ""),
                region=entry.get("region", ""),
            )
            profiles.append(profile)
            sanitized.append(self._public_fields(profile))
        if saw_plaintext:
            self._write_data(sanitized)
        return profiles

    def get(self, name: str) -> ConnectionProfile:
        for profile in self.load():
            if profile.name == name:
                return profile
        raise ProfileNotFoundError(f"Profile '{name}' does not exist")

    def save(self, profiles: list[ConnectionProfile]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = []
        for profile in profiles:
            self._keychain.set_secret(profile.name, profile.secret_key)
            data.append(self._public_fields(profile))
        existing_names = {entry.get("name") for entry in self._read_data() if isinstance(entry, dict)}
        current_names = {profile.name for profile in profiles}
        for name in existing_names - current_names:
            if isinstance(name, str) and name:
                self._keychain.delete_secret(name)
        self._write_data(data)

    def upsert(self, profile: ConnectionProfile) -> None:
        profiles = [p for p in self.load() if p.name != profile.name]
        profiles.append(profile)
        self.save(profiles)

    def remove(self, name: str) -> None:
        profiles = self.load()
        remaining = [p for p in profiles if p.name != name]
        if len(remaining) == len(profiles):
            raise ProfileNotFoundError(f"Profile '{name}' does not exist")
        self.save(remaining)

    @staticmethod
    def _public_fields(profile: ConnectionProfile) -> dict[str, str]:
        return {
            "name": profile.name,
            "endpoint_url": profile.endpoint_url,
            "access_key": profile.access_key,
            "region": profile.region,
        }

    def _read_data(self) -> list:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return []
        return data if isinstance(data, list) else []

    def _write_data(self, data: list[dict[str, str]]) -> None:
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")

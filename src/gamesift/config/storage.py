"""Where triage state lives: local data directory, database and remote store."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_env_var
from .http_resilience import ResilienceConfig, RetryPolicy

APP_DIR_NAME: Final[str] = "gamesift"
DEFAULT_DB_FILENAME: Final[str] = "gamesift.db"
MIRROR_FILENAME: Final[str] = "mirror.json"
STORE_API_TIMEOUT_SECONDS: Final[float] = 15.0


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Files kept under one data directory; it is created on first use."""

    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME
    mirror_filename: str = MIRROR_FILENAME

    def _file(self, name: str, *, ensure: bool) -> Path:
        directory = self.data_dir.expanduser().resolve()
        if ensure:
            directory.mkdir(parents=True, exist_ok=True)
        return directory / name

    def database_path(self, *, ensure: bool = True) -> Path:
        return self._file(self.database_filename, ensure=ensure)

    def mirror_path(self, *, ensure: bool = True) -> Path:
        return self._file(self.mirror_filename, ensure=ensure)

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


@dataclass(frozen=True, slots=True)
class StoreApiConfig:
    """Remote partition store reached over HTTP instead of a local database."""

    resilience: ResilienceConfig

    @property
    def base_url(self) -> str:
        return self.resilience.base_url or ""


def _platform_data_home() -> Path:
    if os.name == "nt":
        local = optional_env_var("LOCALAPPDATA")
        return Path(local) if local else Path.home() / "AppData" / "Local"
    xdg = optional_env_var("XDG_DATA_HOME")
    return Path(xdg) if xdg else Path.home() / ".local" / "share"


def get_storage_config() -> StorageConfig:
    override = optional_env_var("GAMESIFT_DATA_DIR")
    data_dir = Path(override) if override else _platform_data_home() / APP_DIR_NAME
    return StorageConfig(data_dir=data_dir)


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``DATABASE_URI`` wins; otherwise a SQLite file in the data directory."""

    uri = optional_env_var("DATABASE_URI")
    if uri is None:
        uri = (storage or get_storage_config()).database_uri()
    return DatabaseConfig(uri=uri)


def get_store_api_config() -> StoreApiConfig | None:
    """Remote store settings, or ``None`` when ``GAMESIFT_STORE_URL`` is unset."""

    base_url = optional_env_var("GAMESIFT_STORE_URL")
    if base_url is None:
        return None
    return StoreApiConfig(
        resilience=ResilienceConfig(
            name="store-api",
            base_url=base_url.rstrip("/"),
            timeout_seconds=STORE_API_TIMEOUT_SECONDS,
            retry=RetryPolicy(total=2),
        )
    )

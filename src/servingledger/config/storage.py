"""Where the ledger keeps its database and HTTP cache.

``DATABASE_URI`` wins when set. Otherwise both files live in one data
directory: ``SERVINGLEDGER_DATA_DIR``, else ``$XDG_DATA_HOME/servingledger``,
else ``~/.local/share/servingledger``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_env_var

APP_DIR_NAME: Final[str] = "servingledger"
DATABASE_FILENAME: Final[str] = "ledger.db"
HTTP_CACHE_FILENAME: Final[str] = "catalogue_cache.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path

    @classmethod
    def from_environment(cls) -> StorageConfig:
        explicit = optional_env_var("SERVINGLEDGER_DATA_DIR")
        if explicit is not None:
            return cls(data_dir=Path(explicit))
        xdg_home = optional_env_var("XDG_DATA_HOME")
        base = Path(xdg_home) if xdg_home else Path.home() / ".local" / "share"
        return cls(data_dir=base / APP_DIR_NAME)

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def file_path(self, filename: str) -> Path:
        """Return ``filename`` inside the data directory, creating the directory."""

        directory = self.resolve_data_dir()
        directory.mkdir(parents=True, exist_ok=True)
        return directory / filename


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str

    @property
    def is_sqlite(self) -> bool:
        return self.uri.startswith("sqlite")


def get_storage_config() -> StorageConfig:
    return StorageConfig.from_environment()


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    uri = optional_env_var("DATABASE_URI")
    if uri is None:
        database_path = (storage or get_storage_config()).file_path(DATABASE_FILENAME)
        uri = f"sqlite+pysqlite:///{database_path}"
    return DatabaseConfig(uri=uri)


def get_database_uri() -> str:
    return get_database_config().uri


def get_http_cache_path() -> Path:
    return get_storage_config().file_path(HTTP_CACHE_FILENAME)

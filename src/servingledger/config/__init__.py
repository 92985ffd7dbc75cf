"""Application configuration helpers."""

from __future__ import annotations

from .catalogue import CatalogueConfig, get_catalogue_config
from .env import env_float, env_int, optional_env_var
from .errors import ConfigurationError, InvalidConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .ledger import LedgerConfig, get_ledger_config
from .logging import configure_logging
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_http_cache_path,
    get_storage_config,
)

__all__ = [
    "CacheConfig",
    "CatalogueConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "InvalidConfigurationError",
    "LedgerConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "env_float",
    "env_int",
    "get_catalogue_config",
    "get_database_config",
    "get_database_uri",
    "get_http_cache_path",
    "get_ledger_config",
    "get_storage_config",
    "optional_env_var",
]

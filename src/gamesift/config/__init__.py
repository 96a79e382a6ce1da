"""Application configuration helpers."""

from __future__ import annotations

from .env import require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .igdb import IgdbConfig, get_igdb_config
from .logging import configure_logging
from .storage import (
    DatabaseConfig,
    StorageConfig,
    StoreApiConfig,
    get_database_config,
    get_storage_config,
    get_store_api_config,
)
from .triage import TriageConfig, get_triage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "IgdbConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "StoreApiConfig",
    "TriageConfig",
    "configure_logging",
    "get_database_config",
    "get_igdb_config",
    "get_storage_config",
    "get_store_api_config",
    "get_triage_config",
    "require_env_vars",
]

"""Application configuration helpers."""

from __future__ import annotations

from .env import env_flag, env_int, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging
from .registry import (
    DEFAULT_MAX_PAGE_SIZE,
    DEFAULT_PAGE_SIZE,
    RegistryConfig,
    get_registry_config,
)
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "DEFAULT_MAX_PAGE_SIZE",
    "DEFAULT_PAGE_SIZE",
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "RegistryConfig",
    "StorageConfig",
    "configure_logging",
    "env_flag",
    "env_int",
    "get_database_config",
    "get_registry_config",
    "get_storage_config",
    "require_env_vars",
]

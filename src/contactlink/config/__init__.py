"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_float, optional_env_int
from .errors import ConfigurationError
from .logging import configure_logging
from .resolution import ResolutionConfig, get_resolution_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "ResolutionConfig",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_resolution_config",
    "get_storage_config",
    "optional_env_float",
    "optional_env_int",
]

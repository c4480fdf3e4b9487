"""Application configuration helpers."""

from __future__ import annotations

from .env import env_flag, env_float, env_int, env_list, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging
from .reconciliation import ReconciliationConfig, get_reconciliation_config
from .server import ServerConfig, get_server_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "ReconciliationConfig",
    "ServerConfig",
    "StorageConfig",
    "configure_logging",
    "env_flag",
    "env_float",
    "env_int",
    "env_list",
    "get_database_config",
    "get_reconciliation_config",
    "get_server_config",
    "get_storage_config",
    "require_env_vars",
]

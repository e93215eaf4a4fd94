from __future__ import annotations

from rememberme.core.config.manager import ConfigManager
from rememberme.core.config.models import AppConfig, AccountsConfig, LoggingConfig, RemoteConfig, StorageConfig, SubstrateConfig
from rememberme.core.config.paths import ConfigFsPaths

__all__ = [
    "AccountsConfig",
    "AppConfig",
    "ConfigFsPaths",
    "ConfigManager",
    "LoggingConfig",
    "RemoteConfig",
    "StorageConfig",
    "SubstrateConfig",
]

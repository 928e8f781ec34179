"""
QRVault Configuration

Loads qrvault.toml at startup. Environment variables override TOML values.
"""

from .loader import (
    RegistryConfig,
    RegistrySectionConfig,
    DatabaseConfig,
    LoggingConfig,
    load_config,
)

__all__ = [
    "RegistryConfig",
    "RegistrySectionConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "load_config",
]

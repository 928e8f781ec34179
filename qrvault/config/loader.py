"""
QRVault TOML Configuration Loader

Loads qrvault.toml with environment variable overrides. Defaults come from
``qrvault.constants`` (which itself honours a local ``.env`` file).

Environment variable mapping:
    [registry] admin          → QRVAULT_ADMIN
    [registry] crypto_backend → QRVAULT_CRYPTO_BACKEND
    [database] path           → QRVAULT_DATABASE_PATH (or QRVAULT_DB_PATH)
    [logging]  level          → QRVAULT_LOG_LEVEL
    [logging]  file_output    → QRVAULT_LOG_FILE_OUTPUT
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    try:
        import tomli  # type: ignore[no-redef]
    except ImportError:
        tomli = None  # type: ignore[assignment]

from .. import constants
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "qrvault.toml"
CRYPTO_BACKENDS = ("structural", "liboqs")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class RegistrySectionConfig:
    """[registry] section."""
    admin: str = str(constants.QRVAULT_ADMIN)
    crypto_backend: str = str(constants.QRVAULT_CRYPTO_BACKEND)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegistrySectionConfig":
        return cls(
            admin=data.get("admin", str(constants.QRVAULT_ADMIN)),
            crypto_backend=data.get("crypto_backend", str(constants.QRVAULT_CRYPTO_BACKEND)),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("QRVAULT_ADMIN"):
            self.admin = v
        if v := os.environ.get("QRVAULT_CRYPTO_BACKEND"):
            self.crypto_backend = v


@dataclass
class DatabaseConfig:
    """[database] section."""
    path: str = str(constants.QRVAULT_DATABASE_PATH)
    wal_mode: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DatabaseConfig":
        return cls(
            path=data.get("path", str(constants.QRVAULT_DATABASE_PATH)),
            wal_mode=data.get("wal_mode", True),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("QRVAULT_DATABASE_PATH") or os.environ.get("QRVAULT_DB_PATH"):
            self.path = v


@dataclass
class LoggingConfig:
    """[logging] section."""
    level: str = str(constants.LOG_LEVEL)
    file_output: bool = bool(constants.LOG_FILE_OUTPUT)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        return cls(
            level=str(data.get("level", constants.LOG_LEVEL)).upper(),
            file_output=data.get("file_output", bool(constants.LOG_FILE_OUTPUT)),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("QRVAULT_LOG_LEVEL"):
            self.level = v.upper()
        if v := os.environ.get("QRVAULT_LOG_FILE_OUTPUT"):
            self.file_output = _env_bool(v)


# -----------------------------------------------------------------------
# Top-level config
# -----------------------------------------------------------------------

@dataclass
class RegistryConfig:
    """
    Resolved runtime configuration: TOML values with environment overrides
    applied on top.
    """
    registry: RegistrySectionConfig = field(default_factory=RegistrySectionConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegistryConfig":
        """Create RegistryConfig from a parsed TOML dict."""
        return cls(
            registry=RegistrySectionConfig.from_dict(data.get("registry", {})),
            database=DatabaseConfig.from_dict(data.get("database", {})),
            logging=LoggingConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "RegistryConfig":
        """
        Load configuration from a TOML file. A missing file yields defaults
        (with env overrides).
        """
        path = Path(config_path)
        if not path.exists():
            logger.debug("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        if tomli is None:
            raise ImportError(
                "tomli is required for TOML config loading. "
                "Install it: pip install tomli"
            )

        try:
            with open(path, "rb") as f:
                raw = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.registry.apply_env()
        self.database.apply_env()
        self.logging.apply_env()

    def validate(self) -> bool:
        """
        Raises:
            ConfigurationError: on invalid config
        """
        if not self.registry.admin:
            raise ConfigurationError("registry.admin must not be empty")
        if self.registry.crypto_backend not in CRYPTO_BACKENDS:
            raise ConfigurationError(f"Invalid crypto_backend: {self.registry.crypto_backend}")
        if not self.database.path:
            raise ConfigurationError("database.path must not be empty")
        if self.logging.level not in LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.logging.level}")
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "registry": {
                "admin": self.registry.admin,
                "crypto_backend": self.registry.crypto_backend,
            },
            "database": {
                "path": self.database.path,
                "wal_mode": self.database.wal_mode,
            },
            "logging": {
                "level": self.logging.level,
                "file_output": self.logging.file_output,
            },
        }


def load_config(path: Optional[str] = None) -> RegistryConfig:
    """
    Load registry configuration.

    Resolution order:
        1. Explicit *path* argument
        2. QRVAULT_CONFIG env var
        3. ./qrvault.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("QRVAULT_CONFIG", DEFAULT_CONFIG_FILE)

    cfg = RegistryConfig.from_file(path)
    cfg.validate()
    return cfg

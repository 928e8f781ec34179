"""
Configuration Loader Test Suite

Coverage:
  - defaults
  - TOML sections
  - QRVAULT_* environment overrides
  - validation errors
  - load_config resolution order
"""

import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from qrvault.config import RegistryConfig, load_config
from qrvault.exceptions import ConfigurationError

ENV_VARS = (
    "QRVAULT_CONFIG",
    "QRVAULT_ADMIN",
    "QRVAULT_CRYPTO_BACKEND",
    "QRVAULT_DATABASE_PATH",
    "QRVAULT_DB_PATH",
    "QRVAULT_LOG_LEVEL",
    "QRVAULT_LOG_FILE_OUTPUT",
)

SAMPLE_TOML = """
[registry]
admin = "deployer"
crypto_backend = "structural"

[database]
path = "var/registry.db"
wal_mode = false

[logging]
level = "debug"
file_output = true
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "qrvault.toml"
    path.write_text(SAMPLE_TOML)
    return str(path)


class TestDefaults:

    def test_default_sections(self):
        cfg = RegistryConfig()
        assert cfg.registry.crypto_backend == "structural"
        assert cfg.database.path.endswith(".db")
        assert cfg.database.wal_mode is True
        assert cfg.validate() is True

    def test_missing_file_gives_defaults(self, tmp_path):
        cfg = RegistryConfig.from_file(str(tmp_path / "absent.toml"))
        assert cfg.to_dict() == RegistryConfig().to_dict()


class TestFromFile:

    def test_sections_loaded(self, config_file):
        cfg = RegistryConfig.from_file(config_file)
        assert cfg.registry.admin == "deployer"
        assert cfg.database.path == "var/registry.db"
        assert cfg.database.wal_mode is False
        assert cfg.logging.level == "DEBUG"
        assert cfg.logging.file_output is True

    def test_partial_file(self, tmp_path):
        path = tmp_path / "partial.toml"
        path.write_text('[registry]\nadmin = "ops"\n')
        cfg = RegistryConfig.from_file(str(path))
        assert cfg.registry.admin == "ops"
        assert cfg.registry.crypto_backend == "structural"

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[registry\nadmin = ")
        with pytest.raises(ConfigurationError, match="Invalid TOML"):
            RegistryConfig.from_file(str(path))

    def test_to_dict(self, config_file):
        data = RegistryConfig.from_file(config_file).to_dict()
        assert data["registry"] == {"admin": "deployer", "crypto_backend": "structural"}
        assert data["database"]["path"] == "var/registry.db"


class TestEnvOverrides:

    def test_env_beats_toml(self, config_file, monkeypatch):
        monkeypatch.setenv("QRVAULT_ADMIN", "root-admin")
        monkeypatch.setenv("QRVAULT_DATABASE_PATH", "/tmp/other.db")
        monkeypatch.setenv("QRVAULT_LOG_LEVEL", "warning")
        monkeypatch.setenv("QRVAULT_LOG_FILE_OUTPUT", "false")
        cfg = RegistryConfig.from_file(config_file)
        assert cfg.registry.admin == "root-admin"
        assert cfg.database.path == "/tmp/other.db"
        assert cfg.logging.level == "WARNING"
        assert cfg.logging.file_output is False

    def test_db_path_alias(self, monkeypatch):
        monkeypatch.setenv("QRVAULT_DB_PATH", "alias.db")
        cfg = RegistryConfig()
        cfg.apply_env()
        assert cfg.database.path == "alias.db"

    def test_backend_override(self, monkeypatch):
        monkeypatch.setenv("QRVAULT_CRYPTO_BACKEND", "liboqs")
        cfg = RegistryConfig()
        cfg.apply_env()
        assert cfg.registry.crypto_backend == "liboqs"


class TestValidation:

    def test_empty_admin(self):
        cfg = RegistryConfig()
        cfg.registry.admin = ""
        with pytest.raises(ConfigurationError, match="admin"):
            cfg.validate()

    def test_unknown_backend(self):
        cfg = RegistryConfig()
        cfg.registry.crypto_backend = "quantum-magic"
        with pytest.raises(ConfigurationError, match="crypto_backend"):
            cfg.validate()

    def test_bad_log_level(self):
        cfg = RegistryConfig()
        cfg.logging.level = "LOUD"
        with pytest.raises(ConfigurationError, match="log level"):
            cfg.validate()


class TestLoadConfig:

    def test_explicit_path(self, config_file):
        assert load_config(config_file).registry.admin == "deployer"

    def test_env_path(self, config_file, monkeypatch):
        monkeypatch.setenv("QRVAULT_CONFIG", config_file)
        assert load_config().registry.admin == "deployer"

    def test_cwd_default(self, config_file, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert load_config().database.path == "var/registry.db"

    def test_load_validates(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text('[registry]\ncrypto_backend = "nope"\n')
        with pytest.raises(ConfigurationError):
            load_config(str(path))

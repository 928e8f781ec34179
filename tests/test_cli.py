"""
QRVault CLI Test Suite

Drives the click commands against a temporary SQLite database.
"""

import json
import os
import sys

import pytest
from click.testing import CliRunner

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from qrvault.cli.main import cli

DEPLOYER = "deployer"
WALLET_1 = "wallet_1"
HASH_HEX = "0x" + "07" * 32

BATCH = [
    {
        "sender": WALLET_1,
        "function": "register-quantum-keys",
        "args": ["0x" + "01" * 1312, "0x" + "02" * 32, "0x" + "03" * 800],
    },
    {
        "sender": DEPLOYER,
        "function": "create-quantum-merkle-root",
        "args": [1, HASH_HEX, 4, 16],
    },
    {
        "sender": DEPLOYER,
        "function": "update-quantum-threat-level",
        "args": [5],
    },
    {
        "sender": WALLET_1,
        "function": "initialize-hash-chain",
        "args": [HASH_HEX, HASH_HEX],
    },
    {
        "sender": WALLET_1,
        "function": "update-quantum-threat-level",
        "args": [15],
    },
]


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    for name in ("QRVAULT_CONFIG", "QRVAULT_DATABASE_PATH", "QRVAULT_DB_PATH",
                 "QRVAULT_CRYPTO_BACKEND", "QRVAULT_LOG_LEVEL", "QRVAULT_LOG_FILE_OUTPUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("QRVAULT_ADMIN", DEPLOYER)
    batch = tmp_path / "batch.json"
    batch.write_text(json.dumps(BATCH))
    return {
        "base": ["--config", str(tmp_path / "absent.toml"), "--db", str(tmp_path / "qrvault.db")],
        "batch": str(batch),
        "tmp": tmp_path,
    }


def run(workspace, *args):
    result = CliRunner().invoke(cli, [*workspace["base"], *args])
    assert result.exit_code == 0, result.output
    return result.output


class TestApply:

    def test_apply_prints_receipts(self, workspace):
        output = run(workspace, "apply", workspace["batch"])
        assert "Block 2" in output
        assert "(ok true)" in output
        assert "(ok u1)" in output
        assert "(ok u5)" in output
        assert "(err u100)" in output

    def test_apply_persists_state(self, workspace):
        run(workspace, "apply", workspace["batch"])
        output = run(workspace, "stats")
        assert "Height:       2" in output
        assert "Admin:        deployer" in output
        assert "Total keys:   1" in output
        assert "Threat level: 5" in output

    def test_second_batch_mines_next_block(self, workspace):
        run(workspace, "apply", workspace["batch"])
        output = run(workspace, "apply", workspace["batch"])
        assert "Block 3" in output
        assert "(err u103)" in output

    def test_apply_json(self, workspace):
        result = CliRunner().invoke(cli, [*workspace["base"], "apply", "--json", workspace["batch"]])
        assert result.exit_code == 0
        assert '"height": 2' in result.output
        assert '"result": "(ok u5)"' in result.output

    def test_invalid_batch(self, workspace):
        bad = workspace["tmp"] / "bad.json"
        bad.write_text('{"sender": "x"}')
        result = CliRunner().invoke(cli, [*workspace["base"], "apply", str(bad)])
        assert result.exit_code != 0
        assert "JSON list" in result.output

    def test_unknown_function(self, workspace):
        bad = workspace["tmp"] / "unknown.json"
        bad.write_text(json.dumps([{"sender": WALLET_1, "function": "mint", "args": []}]))
        result = CliRunner().invoke(cli, [*workspace["base"], "apply", str(bad)])
        assert result.exit_code != 0
        assert "Unknown registry function" in result.output


class TestQueries:

    def test_keys(self, workspace):
        run(workspace, "apply", workspace["batch"])
        output = run(workspace, "keys", WALLET_1)
        assert "isActive" in output
        assert "registrationHeight" in output

    def test_keys_missing(self, workspace):
        output = run(workspace, "keys", "nobody")
        assert "none" in output

    def test_chain(self, workspace):
        run(workspace, "apply", workspace["batch"])
        output = run(workspace, "chain", HASH_HEX)
        assert "Length: 1" in output
        assert "Chain links verified" in output

    def test_chain_link(self, workspace):
        run(workspace, "apply", workspace["batch"])
        output = run(workspace, "chain", HASH_HEX, "0")
        assert "chainLength" in output

    def test_chain_missing(self, workspace):
        output = run(workspace, "chain", "0x" + "09" * 32)
        assert "Chain not found" in output

    def test_chain_bad_id(self, workspace):
        result = CliRunner().invoke(cli, [*workspace["base"], "chain", "zz"])
        assert result.exit_code != 0


class TestConfigCommand:

    def test_config_prints_resolved_values(self, workspace):
        output = run(workspace, "config")
        assert '"admin": "deployer"' in output
        assert "qrvault.db" in output

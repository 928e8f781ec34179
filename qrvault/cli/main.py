#!/usr/bin/env python3
"""
QRVault CLI

Command-line interface for a local quantum-resistant registry whose state
lives in an SQLite snapshot.

Usage:
    qrvault stats
    qrvault keys <principal>
    qrvault chain <chain_id> [position]
    qrvault apply <batch.json>
    qrvault config
"""

import asyncio
import json
from pathlib import Path
from typing import Any, List, Optional, Tuple

import click

from ..chain import LocalChain
from ..config import RegistryConfig, load_config
from ..crypto.schemes import get_scheme_suite
from ..database import ChainMeta, RegistryDatabase
from ..exceptions import QRVaultException
from ..logger import configure_logging
from ..registry import QuantumRegistry, Transaction


def _load_registry(cfg: RegistryConfig) -> Tuple[QuantumRegistry, LocalChain]:
    async def _load():
        db = await RegistryDatabase.create(cfg.database.path, wal_mode=cfg.database.wal_mode)
        try:
            return await db.load(), await db.load_meta()
        finally:
            await db.close()

    store, meta = asyncio.run(_load())
    # the administrator is fixed when the registry is first saved
    admin = meta.admin if meta is not None else cfg.registry.admin
    registry = QuantumRegistry(
        admin=admin,
        store=store,
        suite=get_scheme_suite(cfg.registry.crypto_backend),
    )
    if meta is None:
        chain = LocalChain(registry)
    else:
        chain = LocalChain(
            registry,
            genesis_time=meta.timestamp,
            height=meta.height,
            tip_hash=meta.tip_hash,
        )
    return registry, chain


def _save_registry(cfg: RegistryConfig, registry: QuantumRegistry, chain: LocalChain) -> None:
    meta = ChainMeta(
        admin=registry.admin,
        height=chain.height,
        timestamp=chain.timestamp,
        tip_hash=chain.tip_hash,
    )

    async def _save():
        db = await RegistryDatabase.create(cfg.database.path, wal_mode=cfg.database.wal_mode)
        try:
            await db.save(registry.store, meta=meta)
        finally:
            await db.close()

    asyncio.run(_save())


def _parse_chain_id(value: str) -> bytes:
    text = value[2:] if value.lower().startswith("0x") else value
    try:
        return bytes.fromhex(text)
    except ValueError:
        raise click.BadParameter(f"not a hex string: {value}")


def _echo_record(title: str, record: Optional[Any]) -> None:
    if record is None:
        click.echo(click.style(f"{title}: none", fg="yellow"))
        return
    click.echo(click.style(title, bold=True))
    for key, value in record.to_dict().items():
        click.echo(f"  {key:<20} {value}")


@click.group()
@click.version_option(version="1.0.0", prog_name="qrvault")
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(),
    default=None,
    help="Path to qrvault.toml (default: $QRVAULT_CONFIG or ./qrvault.toml)"
)
@click.option(
    "--db",
    "db_path",
    type=click.Path(),
    default=None,
    help="Override the SQLite database path"
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], db_path: Optional[str]):
    """QRVault Command Line Interface

    Inspect and update a local quantum-resistant key and data registry.
    """
    try:
        cfg = load_config(config_path)
    except QRVaultException as e:
        raise click.ClickException(str(e))
    if db_path:
        cfg.database.path = db_path

    configure_logging(log_level=cfg.logging.level, file_output=cfg.logging.file_output)
    ctx.obj = cfg


@cli.command("stats")
@click.pass_obj
def stats_cmd(cfg: RegistryConfig):
    """Show registry totals and the current threat level."""
    registry, chain = _load_registry(cfg)
    stats = registry.get_contract_stats()
    click.echo(f"Height:       {chain.height}")
    click.echo(f"Admin:        {registry.admin}")
    click.echo(f"Total keys:   {stats.total_keys}")
    click.echo(f"Threat level: {stats.threat_level}")


@cli.command("keys")
@click.argument("principal")
@click.pass_obj
def keys_cmd(cfg: RegistryConfig, principal: str):
    """Show the key record registered by PRINCIPAL."""
    registry, _ = _load_registry(cfg)
    _echo_record(f"Keys for {principal}", registry.get_keys(principal))


@cli.command("chain")
@click.argument("chain_id")
@click.argument("position", type=int, required=False)
@click.pass_obj
def chain_cmd(cfg: RegistryConfig, chain_id: str, position: Optional[int]):
    """Show a hash chain, or one link of it.

    Examples:

        qrvault chain 0x0707...07

        qrvault chain 0x0707...07 0
    """
    registry, _ = _load_registry(cfg)
    cid = _parse_chain_id(chain_id)

    if position is not None:
        _echo_record(f"Link {position}", registry.get_hash_chain_info(cid, position))
        return

    length = registry.get_hash_chain_length(cid)
    if length == 0:
        click.echo(click.style("Chain not found", fg="yellow"))
        return

    click.echo(f"Length: {length}")
    for pos in range(length):
        link = registry.get_hash_chain_info(cid, pos)
        click.echo(f"  [{pos}] 0x{link.hash_value.hex()}")
    if registry.verify_hash_chain(cid):
        click.echo(click.style("✓ Chain links verified", fg="green"))
    else:
        click.echo(click.style("✗ Chain links inconsistent", fg="red"))


@cli.command("apply")
@click.argument("batch_file", type=click.Path(exists=True))
@click.option("--json", "as_json", is_flag=True, help="Print the mined block as JSON")
@click.pass_obj
def apply_cmd(cfg: RegistryConfig, batch_file: str, as_json: bool):
    """Mine one block from a JSON list of transactions.

    Each entry is {"sender": ..., "function": ..., "args": [...]};
    arguments starting with 0x are decoded as bytes.
    """
    try:
        raw = json.loads(Path(batch_file).read_text())
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid batch file: {e}")
    if not isinstance(raw, list):
        raise click.ClickException("Batch file must contain a JSON list")

    try:
        transactions: List[Transaction] = [Transaction.from_dict(entry) for entry in raw]
    except (KeyError, TypeError, ValueError) as e:
        raise click.ClickException(f"Malformed transaction: {e}")

    registry, chain = _load_registry(cfg)
    try:
        block = chain.mine_block(transactions)
    except (QRVaultException, TypeError) as e:
        raise click.ClickException(str(e))
    _save_registry(cfg, registry, chain)

    if as_json:
        click.echo(json.dumps(block.to_dict(), indent=2))
        return

    click.echo(f"Block {block.height} (0x{block.block_hash.hex()[:16]}…)")
    for tx, receipt in zip(transactions, block.receipts):
        colour = "green" if receipt.ok else "red"
        click.echo(f"  {tx.function:<30} " + click.style(receipt.result, fg=colour))


@cli.command("config")
@click.pass_obj
def config_cmd(cfg: RegistryConfig):
    """Print the resolved configuration."""
    click.echo(json.dumps(cfg.to_dict(), indent=2))


def main():
    cli()


if __name__ == "__main__":
    main()

"""
SQLite Persistence for QRVault

Saves and restores full registry snapshots so state survives process
restarts. The registry itself always runs on its in-memory tables; this
adapter writes every table in one SQLite transaction and rebuilds a
``RegistryStore`` from disk.

Usage:
    db = await RegistryDatabase.create("data/qrvault.db")
    await db.save(registry.store, meta=ChainMeta(...))
    store = await db.load()
    await db.close()
"""

import os
from dataclasses import dataclass
from typing import Optional

import aiosqlite

from .constants import GENESIS_HEIGHT, HASH_SIZE
from .exceptions import DatabaseError
from .logger import get_logger
from .registry.state import GlobalState
from .registry.store import RegistryStore
from .registry.types import EncryptedRecord, HashChainLink, KeyRecord, MerkleRoot, SignatureRecord

logger = get_logger(__name__)


_SCHEMA = """
CREATE TABLE IF NOT EXISTS quantum_keys (
    principal           TEXT PRIMARY KEY,
    dilithium_key       BLOB NOT NULL,
    sphincs_key         BLOB NOT NULL,
    kyber_key           BLOB NOT NULL,
    registration_height INTEGER NOT NULL,
    is_active           BOOLEAN NOT NULL
);

CREATE TABLE IF NOT EXISTS quantum_signatures (
    signer              TEXT NOT NULL,
    message_hash        BLOB NOT NULL,
    dilithium_signature BLOB NOT NULL,
    sphincs_signature   BLOB NOT NULL,
    created_at          INTEGER NOT NULL,
    height              INTEGER NOT NULL,
    verified            BOOLEAN NOT NULL,
    PRIMARY KEY (signer, message_hash)
);

CREATE TABLE IF NOT EXISTS encrypted_data (
    owner               TEXT NOT NULL,
    data_id             BLOB NOT NULL,
    ciphertext          BLOB NOT NULL,
    metadata_hash       BLOB NOT NULL,
    height              INTEGER NOT NULL,
    access_count        INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (owner, data_id)
);

CREATE TABLE IF NOT EXISTS merkle_roots (
    root_id             INTEGER PRIMARY KEY,
    root_hash           BLOB NOT NULL,
    tree_height         INTEGER NOT NULL,
    leaf_count          INTEGER NOT NULL,
    creation_height     INTEGER NOT NULL,
    quantum_safe        BOOLEAN NOT NULL
);

CREATE TABLE IF NOT EXISTS hash_chain_links (
    chain_id            BLOB NOT NULL,
    position            INTEGER NOT NULL,
    hash_value          BLOB NOT NULL,
    previous_hash       BLOB NOT NULL,
    chain_length        INTEGER NOT NULL,
    verification_count  INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (chain_id, position)
);

CREATE TABLE IF NOT EXISTS hash_chain_lengths (
    chain_id            BLOB PRIMARY KEY,
    length              INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS global_state (
    id                  INTEGER PRIMARY KEY DEFAULT 1 CHECK (id = 1),
    threat_level        INTEGER NOT NULL DEFAULT 0,
    total_keys          INTEGER NOT NULL DEFAULT 0,
    nonce_counter       TEXT    NOT NULL DEFAULT '0'
);

CREATE TABLE IF NOT EXISTS chain_meta (
    id                  INTEGER PRIMARY KEY DEFAULT 1 CHECK (id = 1),
    admin               TEXT    NOT NULL,
    height              INTEGER NOT NULL,
    timestamp           INTEGER NOT NULL,
    tip_hash            BLOB    NOT NULL
);
"""

_DATA_TABLES = (
    "quantum_keys",
    "quantum_signatures",
    "encrypted_data",
    "merkle_roots",
    "hash_chain_links",
    "hash_chain_lengths",
    "global_state",
    "chain_meta",
)


@dataclass
class ChainMeta:
    """Administrator and chain tip saved alongside the registry tables."""
    admin: str
    height: int = GENESIS_HEIGHT
    timestamp: int = 0
    tip_hash: bytes = bytes(HASH_SIZE)


class RegistryDatabase:
    """aiosqlite-backed snapshot store for a registry."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.connection: Optional[aiosqlite.Connection] = None

    @staticmethod
    async def create(db_path: str, wal_mode: bool = True) -> "RegistryDatabase":
        """Open (creating if needed) the database file and its schema."""
        self = RegistryDatabase(db_path)

        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        self.connection = await aiosqlite.connect(db_path)
        self.connection.row_factory = aiosqlite.Row
        if wal_mode:
            await self.connection.execute("PRAGMA journal_mode=WAL")
            await self.connection.execute("PRAGMA synchronous=NORMAL")

        await self.connection.executescript(_SCHEMA)
        await self.connection.commit()
        logger.info(f"Registry database opened: {db_path}")
        return self

    def _conn(self) -> aiosqlite.Connection:
        if self.connection is None:
            raise DatabaseError("Database is not open")
        return self.connection

    async def close(self) -> None:
        if self.connection is not None:
            await self.connection.close()
            self.connection = None

    # ── Save ──────────────────────────────────────────────────────────

    async def save(self, store: RegistryStore, meta: Optional[ChainMeta] = None) -> None:
        """
        Replace the stored snapshot with ``store`` in one transaction.
        """
        conn = self._conn()
        try:
            for table in _DATA_TABLES:
                if table == "chain_meta" and meta is None:
                    continue
                await conn.execute(f"DELETE FROM {table}")

            await conn.executemany(
                "INSERT INTO quantum_keys VALUES (?, ?, ?, ?, ?, ?)",
                [
                    (p, r.dilithium_key, r.sphincs_key, r.kyber_key, r.registration_height, r.is_active)
                    for p, r in store.keys.items()
                ],
            )
            await conn.executemany(
                "INSERT INTO quantum_signatures VALUES (?, ?, ?, ?, ?, ?, ?)",
                [
                    (signer, h, r.dilithium_signature, r.sphincs_signature, r.created_at, r.height, r.verified)
                    for (signer, h), r in store.signatures.items()
                ],
            )
            await conn.executemany(
                "INSERT INTO encrypted_data VALUES (?, ?, ?, ?, ?, ?)",
                [
                    (owner, d, r.ciphertext, r.metadata_hash, r.height, r.access_count)
                    for (owner, d), r in store.encrypted.items()
                ],
            )
            await conn.executemany(
                "INSERT INTO merkle_roots VALUES (?, ?, ?, ?, ?, ?)",
                [
                    (rid, r.root_hash, r.tree_height, r.leaf_count, r.creation_height, r.quantum_safe)
                    for rid, r in store.merkle_roots.items()
                ],
            )
            await conn.executemany(
                "INSERT INTO hash_chain_links VALUES (?, ?, ?, ?, ?, ?)",
                [
                    (cid, pos, r.hash_value, r.previous_hash, r.chain_length, r.verification_count)
                    for (cid, pos), r in store.chain_links.items()
                ],
            )
            await conn.executemany(
                "INSERT INTO hash_chain_lengths VALUES (?, ?)",
                list(store.chain_lengths.items()),
            )
            # nonce counter is uint128, stored as text to avoid SQLite's int64 limit
            await conn.execute(
                "INSERT INTO global_state (id, threat_level, total_keys, nonce_counter) VALUES (1, ?, ?, ?)",
                (store.state.threat_level, store.state.total_keys, str(store.state.nonce_counter)),
            )
            if meta is not None:
                await conn.execute(
                    "INSERT INTO chain_meta (id, admin, height, timestamp, tip_hash) VALUES (1, ?, ?, ?, ?)",
                    (meta.admin, meta.height, meta.timestamp, meta.tip_hash),
                )
            await conn.commit()
        except Exception:
            await conn.rollback()
            logger.error(f"Snapshot save failed: {self.db_path}", exc_info=True)
            raise

        logger.debug(f"Snapshot saved: {store!r}")

    # ── Load ──────────────────────────────────────────────────────────

    async def load(self) -> RegistryStore:
        """Rebuild a store from the saved snapshot (empty if none)."""
        conn = self._conn()

        async with conn.execute("SELECT * FROM global_state WHERE id = 1") as cursor:
            row = await cursor.fetchone()
        state = GlobalState()
        if row is not None:
            state = GlobalState(
                threat_level=row["threat_level"],
                total_keys=row["total_keys"],
                nonce_counter=int(row["nonce_counter"]),
            )
        store = RegistryStore(state=state)

        async with conn.execute("SELECT * FROM quantum_keys") as cursor:
            async for row in cursor:
                store.keys.insert(row["principal"], KeyRecord(
                    dilithium_key=bytes(row["dilithium_key"]),
                    sphincs_key=bytes(row["sphincs_key"]),
                    kyber_key=bytes(row["kyber_key"]),
                    registration_height=row["registration_height"],
                    is_active=bool(row["is_active"]),
                ))

        async with conn.execute("SELECT * FROM quantum_signatures") as cursor:
            async for row in cursor:
                store.signatures.insert((row["signer"], bytes(row["message_hash"])), SignatureRecord(
                    dilithium_signature=bytes(row["dilithium_signature"]),
                    sphincs_signature=bytes(row["sphincs_signature"]),
                    created_at=row["created_at"],
                    height=row["height"],
                    verified=bool(row["verified"]),
                ))

        async with conn.execute("SELECT * FROM encrypted_data") as cursor:
            async for row in cursor:
                store.encrypted.insert((row["owner"], bytes(row["data_id"])), EncryptedRecord(
                    ciphertext=bytes(row["ciphertext"]),
                    metadata_hash=bytes(row["metadata_hash"]),
                    height=row["height"],
                    access_count=row["access_count"],
                ))

        async with conn.execute("SELECT * FROM merkle_roots") as cursor:
            async for row in cursor:
                store.merkle_roots.insert(row["root_id"], MerkleRoot(
                    root_hash=bytes(row["root_hash"]),
                    tree_height=row["tree_height"],
                    leaf_count=row["leaf_count"],
                    creation_height=row["creation_height"],
                    quantum_safe=bool(row["quantum_safe"]),
                ))

        async with conn.execute("SELECT * FROM hash_chain_links") as cursor:
            async for row in cursor:
                store.chain_links.insert((bytes(row["chain_id"]), row["position"]), HashChainLink(
                    hash_value=bytes(row["hash_value"]),
                    previous_hash=bytes(row["previous_hash"]),
                    chain_length=row["chain_length"],
                    verification_count=row["verification_count"],
                ))

        async with conn.execute("SELECT * FROM hash_chain_lengths") as cursor:
            async for row in cursor:
                store.chain_lengths.insert(bytes(row["chain_id"]), row["length"])

        logger.debug(f"Snapshot loaded: {store!r}")
        return store

    async def load_meta(self) -> Optional[ChainMeta]:
        conn = self._conn()
        async with conn.execute("SELECT * FROM chain_meta WHERE id = 1") as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return ChainMeta(
            admin=row["admin"],
            height=row["height"],
            timestamp=row["timestamp"],
            tip_hash=bytes(row["tip_hash"]),
        )

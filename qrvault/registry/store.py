"""
Registry Persistence Store

Keyed tables with get / exists / insert / update semantics, grouped into a
``RegistryStore`` that provides snapshot, revert and an atomic
``transaction()`` scope. The store only talks to its tables through the
``Table`` interface; ``MemoryTable`` is the default engine and
``qrvault.database`` persists its snapshots. Another engine plugs in through
the store's ``table_factory``.
"""

from contextlib import contextmanager
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Hashable,
    Iterator,
    List,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
)

from .state import GlobalState
from .types import (
    ChainLinkKey,
    EncryptedKey,
    EncryptedRecord,
    HashChainLink,
    KeyRecord,
    MerkleRoot,
    SignatureKey,
    SignatureRecord,
)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class Table(Protocol[K, V]):
    """Keyed table interface the registry depends on."""

    name: str

    def get(self, key: K) -> Optional[V]:
        ...

    def exists(self, key: K) -> bool:
        ...

    def insert(self, key: K, value: V) -> None:
        """Add a new row. Raises KeyError if the key is present."""
        ...

    def update(self, key: K, value: V) -> None:
        """Replace an existing row. Raises KeyError if the key is absent."""
        ...

    def items(self) -> Iterator[Tuple[K, V]]:
        ...

    def __len__(self) -> int:
        ...

    def snapshot(self) -> Any:
        """Opaque token capturing every row."""
        ...

    def restore(self, token: Any) -> None:
        """Return to the rows captured by ``snapshot``."""
        ...


TableFactory = Callable[[str], Table]


class MemoryTable(Generic[K, V]):
    """Dict-backed table."""

    def __init__(self, name: str, rows: Optional[Dict[K, V]] = None):
        self.name = name
        self._rows: Dict[K, V] = dict(rows or {})

    def get(self, key: K) -> Optional[V]:
        return self._rows.get(key)

    def exists(self, key: K) -> bool:
        return key in self._rows

    def insert(self, key: K, value: V) -> None:
        if key in self._rows:
            raise KeyError(f"{self.name}: key already present: {key!r}")
        self._rows[key] = value

    def update(self, key: K, value: V) -> None:
        if key not in self._rows:
            raise KeyError(f"{self.name}: key not present: {key!r}")
        self._rows[key] = value

    def items(self) -> Iterator[Tuple[K, V]]:
        return iter(list(self._rows.items()))

    def __len__(self) -> int:
        return len(self._rows)

    def snapshot(self) -> Dict[K, V]:
        # Rows are immutable records, a shallow copy is a full snapshot
        return dict(self._rows)

    def restore(self, token: Dict[K, V]) -> None:
        self._rows = dict(token)


class RegistryStore:
    """
    The registry's tables plus its global state.

    Tables:
        keys           principal -> KeyRecord
        signatures     (signer, message_hash) -> SignatureRecord
        encrypted      (owner, data_id) -> EncryptedRecord
        merkle_roots   root_id -> MerkleRoot
        chain_links    (chain_id, position) -> HashChainLink
        chain_lengths  chain_id -> current chain length
    """

    TABLE_NAMES = ("keys", "signatures", "encrypted", "merkle_roots", "chain_links", "chain_lengths")

    def __init__(
        self,
        state: Optional[GlobalState] = None,
        table_factory: TableFactory = MemoryTable,
    ):
        self.keys: Table[str, KeyRecord] = table_factory("keys")
        self.signatures: Table[SignatureKey, SignatureRecord] = table_factory("signatures")
        self.encrypted: Table[EncryptedKey, EncryptedRecord] = table_factory("encrypted")
        self.merkle_roots: Table[int, MerkleRoot] = table_factory("merkle_roots")
        self.chain_links: Table[ChainLinkKey, HashChainLink] = table_factory("chain_links")
        self.chain_lengths: Table[bytes, int] = table_factory("chain_lengths")
        self.state = state or GlobalState()
        self._snapshots: List[Dict[str, Any]] = []

    def tables(self) -> Dict[str, Table]:
        return {name: getattr(self, name) for name in self.TABLE_NAMES}

    # ── Snapshots ─────────────────────────────────────────────────────

    def snapshot(self) -> int:
        """
        Create state snapshot for revert.

        Returns:
            Snapshot ID
        """
        snapshot = {name: table.snapshot() for name, table in self.tables().items()}
        snapshot["state"] = self.state.copy()
        self._snapshots.append(snapshot)
        return len(self._snapshots) - 1

    def revert(self, snapshot_id: int) -> None:
        """
        Revert state to snapshot and discard it and every newer one.
        """
        if snapshot_id < 0 or snapshot_id >= len(self._snapshots):
            raise ValueError(f"Invalid snapshot ID: {snapshot_id}")

        snapshot = self._snapshots[snapshot_id]
        for name, table in self.tables().items():
            table.restore(snapshot[name])
        self.state = snapshot["state"].copy()

        self._snapshots = self._snapshots[:snapshot_id]

    def release(self, snapshot_id: int) -> None:
        """Drop a snapshot (and newer ones) without reverting."""
        if snapshot_id < 0 or snapshot_id >= len(self._snapshots):
            raise ValueError(f"Invalid snapshot ID: {snapshot_id}")
        self._snapshots = self._snapshots[:snapshot_id]

    @contextmanager
    def transaction(self) -> Iterator["RegistryStore"]:
        """
        Atomic scope: every write inside the block lands, or none does.

        The snapshot is restored when the block raises, and the exception
        propagates.
        """
        snapshot_id = self.snapshot()
        try:
            yield self
        except BaseException:
            self.revert(snapshot_id)
            raise
        else:
            self.release(snapshot_id)

    def __repr__(self) -> str:
        sizes = " ".join(f"{name}={len(table)}" for name, table in self.tables().items())
        return f"<RegistryStore {sizes}>"

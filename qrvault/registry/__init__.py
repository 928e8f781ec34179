"""
QRVault Registry

The registry state machine, its record types, the table store it runs on,
and the transaction boundary that turns failures into tagged receipts.
"""

from .context import BlockInfo, ExecutionContext
from .registry import QuantumRegistry
from .state import GlobalState
from .store import MemoryTable, RegistryStore, Table
from .transactions import (
    MUTATING_FUNCTIONS,
    READ_ONLY_FUNCTIONS,
    Receipt,
    Transaction,
    apply_batch,
    apply_transaction,
    call_read_only,
)
from .types import (
    ContractStats,
    EncryptedRecord,
    HashChainLink,
    KeyRecord,
    MerkleRoot,
    SignatureRecord,
)

__all__ = [
    "BlockInfo",
    "ExecutionContext",
    "QuantumRegistry",
    "GlobalState",
    "MemoryTable",
    "RegistryStore",
    "Table",
    "MUTATING_FUNCTIONS",
    "READ_ONLY_FUNCTIONS",
    "Receipt",
    "Transaction",
    "apply_batch",
    "apply_transaction",
    "call_read_only",
    "ContractStats",
    "EncryptedRecord",
    "HashChainLink",
    "KeyRecord",
    "MerkleRoot",
    "SignatureRecord",
]

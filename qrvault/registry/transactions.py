"""
Transaction boundary.

Registry operations raise; callers outside the core receive receipts. A
``Receipt`` is either ``ok`` with the operation's value or ``err`` with the
tagged ``ErrorCode`` of the first failed precondition. Receipts print the
way contract results are conventionally shown::

    (ok true)   (ok u5)   (ok 0x3f…)   (err u104)
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..constants import (
    FN_CREATE_MERKLE_ROOT,
    FN_CREATE_SIGNATURE,
    FN_DEACTIVATE_KEYS,
    FN_EXTEND_HASH_CHAIN,
    FN_INITIALIZE_HASH_CHAIN,
    FN_REGISTER_KEYS,
    FN_STORE_ENCRYPTED_DATA,
    FN_UPDATE_THREAT_LEVEL,
)
from ..exceptions import ErrorCode, RegistryError, UnknownFunctionError
from ..logger import get_logger
from .context import ExecutionContext
from .registry import QuantumRegistry

logger = get_logger(__name__)


MUTATING_FUNCTIONS: Dict[str, Callable[..., Any]] = {
    FN_REGISTER_KEYS: QuantumRegistry.register_keys,
    FN_CREATE_SIGNATURE: QuantumRegistry.create_signature,
    FN_STORE_ENCRYPTED_DATA: QuantumRegistry.store_encrypted_data,
    FN_CREATE_MERKLE_ROOT: QuantumRegistry.create_merkle_root,
    FN_INITIALIZE_HASH_CHAIN: QuantumRegistry.initialize_hash_chain,
    FN_EXTEND_HASH_CHAIN: QuantumRegistry.extend_hash_chain,
    FN_UPDATE_THREAT_LEVEL: QuantumRegistry.update_threat_level,
    FN_DEACTIVATE_KEYS: QuantumRegistry.deactivate_keys,
}

READ_ONLY_FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "get-quantum-keys": QuantumRegistry.get_keys,
    "get-signature-status": QuantumRegistry.get_signature_status,
    "get-encrypted-info": QuantumRegistry.get_encrypted_info,
    "get-merkle-root": QuantumRegistry.get_merkle_root,
    "get-hash-chain-info": QuantumRegistry.get_hash_chain_info,
    "get-hash-chain-length": QuantumRegistry.get_hash_chain_length,
    "get-contract-stats": QuantumRegistry.get_contract_stats,
    "get-quantum-threat-level": QuantumRegistry.get_quantum_threat_level,
    "is-quantum-resistant-signature": QuantumRegistry.is_quantum_resistant_signature,
    "verify-hash-chain": QuantumRegistry.verify_hash_chain,
}


def _decode_arg(value: Any) -> Any:
    """Hex strings become bytes; everything else passes through."""
    if isinstance(value, str) and (value.startswith('0x') or value.startswith('0X')):
        return bytes.fromhex(value[2:])
    return value


def format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"u{value}"
    if isinstance(value, (bytes, bytearray)):
        return '0x' + bytes(value).hex()
    return str(value)


@dataclass(frozen=True)
class Transaction:
    """A call to one mutating registry function on behalf of ``sender``."""
    sender: str
    function: str
    args: Tuple[Any, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        return cls(
            sender=data["sender"],
            function=data["function"],
            args=tuple(_decode_arg(a) for a in data.get("args", [])),
        )


@dataclass(frozen=True)
class Receipt:
    """Tagged result of one transaction."""
    function: str
    ok: bool
    value: Any = None
    error: Optional[ErrorCode] = None
    message: str = ""

    @property
    def result(self) -> str:
        if self.ok:
            return f"(ok {format_value(self.value)})"
        return f"(err u{int(self.error)})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "function": self.function,
            "ok": self.ok,
            "result": self.result,
            "error": self.error.name if self.error is not None else None,
            "message": self.message,
        }

    def __str__(self) -> str:
        return self.result


def apply_transaction(
    registry: QuantumRegistry,
    ctx: ExecutionContext,
    tx: Transaction,
) -> Receipt:
    """
    Execute one transaction and convert its outcome into a receipt.

    Registry errors become ``err`` receipts. Unknown functions and malformed
    arguments are programming errors and propagate.
    """
    handler = MUTATING_FUNCTIONS.get(tx.function)
    if handler is None:
        raise UnknownFunctionError(f"Unknown registry function: {tx.function}")

    try:
        value = handler(registry, ctx, *tx.args)
    except RegistryError as exc:
        logger.warning(f"{tx.function} by {ctx.sender} rejected: err u{int(exc.code)} {exc}")
        return Receipt(function=tx.function, ok=False, error=exc.code, message=str(exc))

    return Receipt(function=tx.function, ok=True, value=value)


def apply_batch(
    registry: QuantumRegistry,
    contexts_and_txs: List[Tuple[ExecutionContext, Transaction]],
) -> List[Receipt]:
    """
    Apply transactions in the given order. Each transaction is atomic on
    its own; a rejected one leaves earlier ones applied.
    """
    return [apply_transaction(registry, ctx, tx) for ctx, tx in contexts_and_txs]


def call_read_only(registry: QuantumRegistry, function: str, *args: Any) -> Any:
    handler = READ_ONLY_FUNCTIONS.get(function)
    if handler is None:
        raise UnknownFunctionError(f"Unknown read-only function: {function}")
    return handler(registry, *(_decode_arg(a) for a in args))

"""
Local Chain Simulator

Supplies the execution context the registry expects from its host: a
monotonically increasing height, a timestamp, and the previous block hash
used as freshness source. Transactions mined together share one block and
are applied in order; each one is atomic on its own.

Usage:
    chain = LocalChain(QuantumRegistry(admin="deployer"))
    block = chain.mine_block([
        Transaction("wallet_1", "register-quantum-keys", (dil, sph, kyb)),
    ])
    block.receipts[0].result   # '(ok true)'
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .constants import DEFAULT_BLOCK_TIME, GENESIS_HEIGHT, HASH_SIZE
from .crypto.hashing import sha256
from .logger import get_logger
from .registry.context import BlockInfo, ExecutionContext
from .registry.registry import QuantumRegistry
from .registry.transactions import Receipt, Transaction, apply_transaction, call_read_only

logger = get_logger(__name__)


@dataclass
class Block:
    """A mined block and the receipts of its transactions."""
    height: int
    timestamp: int
    previous_hash: bytes
    block_hash: bytes
    receipts: List[Receipt] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "height": self.height,
            "timestamp": self.timestamp,
            "previousHash": '0x' + self.previous_hash.hex(),
            "blockHash": '0x' + self.block_hash.hex(),
            "receipts": [r.to_dict() for r in self.receipts],
        }


class LocalChain:
    """
    Drives a registry block by block.

    Height starts at ``GENESIS_HEIGHT``; the first mined block gets the next
    height. Block hashes chain by SHA-256 over the previous hash, height and
    timestamp.
    """

    def __init__(
        self,
        registry: QuantumRegistry,
        genesis_time: Optional[int] = None,
        block_time: int = DEFAULT_BLOCK_TIME,
        height: int = GENESIS_HEIGHT,
        tip_hash: Optional[bytes] = None,
    ):
        self.registry = registry
        self.block_time = block_time
        self.height = height
        self.timestamp = int(time.time()) if genesis_time is None else genesis_time
        self.tip_hash = tip_hash if tip_hash is not None else bytes(HASH_SIZE)
        self.blocks: List[Block] = []

    def _next_block_info(self) -> BlockInfo:
        return BlockInfo(
            height=self.height + 1,
            timestamp=self.timestamp + self.block_time,
            previous_hash=self.tip_hash,
        )

    def mine_block(self, transactions: Sequence[Transaction]) -> Block:
        """
        Apply ``transactions`` in order at the next height.

        Rejected transactions become ``err`` receipts. Anything else raised
        aborts the whole block: the registry is restored and the chain does
        not advance.
        """
        info = self._next_block_info()
        with self.registry.store.transaction():
            receipts = [
                apply_transaction(self.registry, ExecutionContext(sender=tx.sender, block=info), tx)
                for tx in transactions
            ]

        block_hash = sha256(
            info.previous_hash
            + info.height.to_bytes(8, 'big')
            + info.timestamp.to_bytes(8, 'big')
        )
        block = Block(
            height=info.height,
            timestamp=info.timestamp,
            previous_hash=info.previous_hash,
            block_hash=block_hash,
            receipts=receipts,
        )
        self.blocks.append(block)
        self.height = info.height
        self.timestamp = info.timestamp
        self.tip_hash = block_hash

        accepted = sum(1 for r in receipts if r.ok)
        logger.info(
            f"Block {block.height} mined: {accepted}/{len(receipts)} transactions accepted"
        )
        return block

    def context_for(self, sender: str) -> ExecutionContext:
        """Context for a direct registry call in the next block."""
        return ExecutionContext(sender=sender, block=self._next_block_info())

    def call_read_only(self, function: str, *args: Any) -> Any:
        return call_read_only(self.registry, function, *args)

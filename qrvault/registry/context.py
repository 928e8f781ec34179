"""
Execution context supplied by the embedding system.

The registry never reads ambient globals; caller identity, height, time and
the freshness source all arrive through an ``ExecutionContext``.
"""

from dataclasses import dataclass, field

from ..constants import HASH_SIZE


@dataclass(frozen=True)
class BlockInfo:
    """Height, timestamp and previous block hash of the block being executed."""
    height: int
    timestamp: int
    previous_hash: bytes = field(default=bytes(HASH_SIZE))

    def __post_init__(self):
        if self.height < 0:
            raise ValueError(f"Block height cannot be negative, got {self.height}")
        if not isinstance(self.previous_hash, bytes):
            raise TypeError("previous_hash must be bytes")


@dataclass(frozen=True)
class ExecutionContext:
    """Per-call context: authenticated sender plus the current block."""
    sender: str
    block: BlockInfo

    @property
    def height(self) -> int:
        return self.block.height

    @property
    def timestamp(self) -> int:
        return self.block.timestamp

"""
QRVault Crypto Hashing Module

Provides hash functions used throughout the registry:
- sha256: base 256-bit hash, also the reference digest for signature checks
- post_quantum_hash: four-round chained SHA-256 used for hash chains and nonces
- generate_freshness_nonce: per-call unique value for chain initialization
"""

import hashlib
from typing import TYPE_CHECKING, Union

from ..constants import HASH_ROUNDS, NONCE_COUNTER_SIZE

if TYPE_CHECKING:
    from ..registry.context import ExecutionContext
    from ..registry.state import GlobalState


def sha256(data: Union[bytes, str]) -> bytes:
    """
    Compute SHA-256 hash.

    Args:
        data: Input bytes or hex string (``0x`` prefix optional)

    Returns:
        32-byte hash
    """
    if isinstance(data, str):
        if data.startswith('0x') or data.startswith('0X'):
            data = data[2:]
        data = bytes.fromhex(data)

    return hashlib.sha256(data).digest()


def post_quantum_hash(data: bytes) -> bytes:
    """
    Chained multi-round hash.

    Round 1 hashes the input; every later round hashes the previous round's
    output followed by the output of the round before it, the raw input
    standing in as round 0::

        r1 = H(data)
        r2 = H(r1 || data)
        r3 = H(r2 || r1)
        r4 = H(r3 || r2)

    This is a chaining construction over SHA-256, not a post-quantum
    primitive. It is deterministic and inherits SHA-256's avalanche behaviour.

    Args:
        data: Arbitrary input bytes

    Returns:
        32-byte digest
    """
    previous = bytes(data)
    current = hashlib.sha256(previous).digest()
    for _ in range(HASH_ROUNDS - 1):
        previous, current = current, hashlib.sha256(current + previous).digest()
    return current


def generate_freshness_nonce(ctx: "ExecutionContext", state: "GlobalState") -> bytes:
    """
    Derive a nonce that never repeats within one registry.

    Combines the previous block hash, the current height (decimal text) and
    the registry's nonce counter, then advances the counter.

    Args:
        ctx: Execution context supplying the block information
        state: Global state owning the nonce counter (mutated)

    Returns:
        32-byte nonce
    """
    counter = state.nonce_counter
    payload = (
        ctx.block.previous_hash
        + str(ctx.block.height).encode('ascii')
        + counter.to_bytes(NONCE_COUNTER_SIZE, 'big')
    )
    state.nonce_counter = counter + 1
    return post_quantum_hash(payload)

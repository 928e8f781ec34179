"""
Structural validators for post-quantum key material.

These are byte-length and sanity checks only. They do not prove any
lattice or hash-based property of the material; a production deployment
swaps in real verifiers through ``qrvault.crypto.schemes``.

Every validator is total: anything that is not a bytes-like buffer of the
right shape returns False.
"""

from ..constants import (
    DILITHIUM_PUBLIC_KEY_SIZE,
    HASH_SIZE,
    KEY_PREFIX_CHECK_SIZE,
    KYBER_CIPHERTEXT_SIZE,
    KYBER_PUBLIC_KEY_SIZE,
    SPHINCS_PUBLIC_KEY_SIZE,
)


def is_byte_buffer(buf) -> bool:
    return isinstance(buf, (bytes, bytearray, memoryview))


def _prefix_nonzero(buf) -> bool:
    return int.from_bytes(bytes(buf[:KEY_PREFIX_CHECK_SIZE]), 'big') != 0


def validate_dilithium_key(buf) -> bool:
    """1312 bytes with a nonzero 8-byte big-endian prefix."""
    return is_byte_buffer(buf) and len(buf) == DILITHIUM_PUBLIC_KEY_SIZE and _prefix_nonzero(buf)


def validate_sphincs_key(buf) -> bool:
    """32 bytes, not all zero."""
    return (
        is_byte_buffer(buf)
        and len(buf) == SPHINCS_PUBLIC_KEY_SIZE
        and bytes(buf) != bytes(SPHINCS_PUBLIC_KEY_SIZE)
    )


def validate_kyber_key(buf) -> bool:
    """800 bytes with a nonzero 8-byte big-endian prefix."""
    return is_byte_buffer(buf) and len(buf) == KYBER_PUBLIC_KEY_SIZE and _prefix_nonzero(buf)


def validate_kyber_ciphertext(buf) -> bool:
    return is_byte_buffer(buf) and len(buf) == KYBER_CIPHERTEXT_SIZE


def validate_hash32(buf) -> bool:
    return is_byte_buffer(buf) and len(buf) == HASH_SIZE

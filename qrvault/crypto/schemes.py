"""
Signature and KEM scheme capabilities.

The registry never calls a validator or verifier directly; it goes through
a ``SchemeSuite`` holding one capability per algorithm family. The default
suite is structural (size and format checks plus chained hashing). A suite
backed by liboqs lives in ``qrvault.crypto.pq`` and is loaded on demand so
the registry itself does not require liboqs.
"""

from dataclasses import dataclass
from typing import Protocol

from ..constants import (
    DILITHIUM_SIGNATURE_SIZE,
    SIGNATURE_CHECK_PREFIX_SIZE,
    SPHINCS_SIGNATURE_SIZE,
)
from ..exceptions import ConfigurationError
from .hashing import post_quantum_hash, sha256
from .validators import (
    is_byte_buffer,
    validate_dilithium_key,
    validate_kyber_ciphertext,
    validate_kyber_key,
    validate_sphincs_key,
)


class KeyScheme(Protocol):
    """Validates public keys of one algorithm family."""

    name: str

    def validate_key(self, key: bytes) -> bool:
        ...


class SignatureScheme(KeyScheme, Protocol):
    """Validates keys and signatures, and verifies signatures."""

    signature_size: int

    def validate_signature(self, signature: bytes) -> bool:
        ...

    def verify(self, public_key: bytes, signature: bytes, message: bytes) -> bool:
        ...


class KEMScheme(KeyScheme, Protocol):
    """Validates public keys and ciphertexts of a key encapsulation mechanism."""

    def validate_ciphertext(self, ciphertext: bytes) -> bool:
        ...


# ══════════════════════════════════════════════════════════════════════
#  STRUCTURAL (SIMULATED) SCHEMES
# ══════════════════════════════════════════════════════════════════════

class StructuralDilithium:
    """
    Dilithium stand-in.

    ``verify`` accepts iff the first 16 bytes of
    ``post_quantum_hash(public_key || signature || message)`` equal the first
    16 bytes of ``sha256(public_key)``. It is not a signature check.
    """

    name = "dilithium-structural"
    signature_size = DILITHIUM_SIGNATURE_SIZE

    def validate_key(self, key: bytes) -> bool:
        return validate_dilithium_key(key)

    def validate_signature(self, signature: bytes) -> bool:
        return is_byte_buffer(signature) and len(signature) == self.signature_size

    def verify(self, public_key: bytes, signature: bytes, message: bytes) -> bool:
        digest = post_quantum_hash(bytes(public_key) + bytes(signature) + bytes(message))
        reference = sha256(bytes(public_key))
        return digest[:SIGNATURE_CHECK_PREFIX_SIZE] == reference[:SIGNATURE_CHECK_PREFIX_SIZE]


class StructuralSphincs:
    """
    SPHINCS+ stand-in.

    ``verify`` checks key and signature format only, so a hybrid signature
    is accepted or rejected on the Dilithium half alone.
    """

    name = "sphincs-structural"
    signature_size = SPHINCS_SIGNATURE_SIZE

    def validate_key(self, key: bytes) -> bool:
        return validate_sphincs_key(key)

    def validate_signature(self, signature: bytes) -> bool:
        return is_byte_buffer(signature) and len(signature) == self.signature_size

    def verify(self, public_key: bytes, signature: bytes, message: bytes) -> bool:
        return self.validate_key(public_key) and self.validate_signature(signature)


class StructuralKyber:
    """Kyber stand-in."""

    name = "kyber-structural"

    def validate_key(self, key: bytes) -> bool:
        return validate_kyber_key(key)

    def validate_ciphertext(self, ciphertext: bytes) -> bool:
        return validate_kyber_ciphertext(ciphertext)


@dataclass(frozen=True)
class SchemeSuite:
    """One capability per algorithm family used by the registry."""
    name: str
    dilithium: SignatureScheme
    sphincs: SignatureScheme
    kyber: KEMScheme


def structural_suite() -> SchemeSuite:
    return SchemeSuite(
        name="structural",
        dilithium=StructuralDilithium(),
        sphincs=StructuralSphincs(),
        kyber=StructuralKyber(),
    )


def get_scheme_suite(backend: str = "structural") -> SchemeSuite:
    """
    Resolve a scheme suite by backend name.

    Args:
        backend: ``"structural"`` or ``"liboqs"``

    Raises:
        ConfigurationError: unknown backend name
    """
    if backend == "structural":
        return structural_suite()
    if backend == "liboqs":
        # liboqs fails hard at import if the native library is missing
        from .pq import liboqs_suite
        return liboqs_suite()
    raise ConfigurationError(f"Unknown crypto backend: {backend!r}")

"""
QRVault liboqs-backed Scheme Suite

Real post-quantum verification behind the same capability interface as the
structural suite. Parameter sets are chosen so their sizes match the
registry's fixed byte contracts:

    ML-DSA-44 (Dilithium2)          pk 1312  sig 2420
    SPHINCS+-SHA2-128f-simple       pk 32    sig 17088
    ML-KEM-512 (Kyber512)           pk 800   ct 768

SECURITY: This module REQUIRES liboqs-python. There is NO fallback mode.

    pip install liboqs-python
"""

from typing import Tuple

try:
    import oqs
except ImportError as e:
    raise ImportError(
        "FATAL: liboqs-python is required for the 'liboqs' crypto backend. "
        "Install it with: pip install liboqs-python\n"
        "liboqs system library must also be installed. "
        "See https://github.com/open-quantum-safe/liboqs\n"
        f"Original error: {e}"
    ) from e

from ..constants import (
    DILITHIUM_PUBLIC_KEY_SIZE,
    DILITHIUM_SIGNATURE_SIZE,
    KYBER_CIPHERTEXT_SIZE,
    SPHINCS_PUBLIC_KEY_SIZE,
    SPHINCS_SIGNATURE_SIZE,
)
from ..logger import get_logger
from .schemes import SchemeSuite
from .validators import is_byte_buffer, validate_dilithium_key, validate_kyber_key, validate_sphincs_key

logger = get_logger(__name__)

# Preferred name first, then the names older liboqs releases use
DILITHIUM_ALGORITHMS: Tuple[str, ...] = ("ML-DSA-44", "Dilithium2")
SPHINCS_ALGORITHMS: Tuple[str, ...] = ("SPHINCS+-SHA2-128f-simple", "SLH_DSA_PURE_SHA2_128F")
KYBER_ALGORITHMS: Tuple[str, ...] = ("ML-KEM-512", "Kyber512")


class PQBackendError(Exception):
    """No supported algorithm name is available in the installed liboqs."""
    pass


def _first_supported(candidates: Tuple[str, ...], enabled) -> str:
    available = set(enabled())
    for name in candidates:
        if name in available:
            return name
    raise PQBackendError(
        f"None of {', '.join(candidates)} is enabled in the installed liboqs"
    )


class OQSSignatureScheme:
    """Signature capability verified by liboqs."""

    def __init__(self, candidates: Tuple[str, ...], public_key_size: int,
                 signature_size: int, key_validator):
        self.name = _first_supported(candidates, oqs.get_enabled_sig_mechanisms)
        self.public_key_size = public_key_size
        self.signature_size = signature_size
        self._key_validator = key_validator

    def validate_key(self, key: bytes) -> bool:
        return self._key_validator(key)

    def validate_signature(self, signature: bytes) -> bool:
        return is_byte_buffer(signature) and len(signature) == self.signature_size

    def verify(self, public_key: bytes, signature: bytes, message: bytes) -> bool:
        """
        Verify with liboqs. Any liboqs failure is reported as an invalid
        signature, never as acceptance.
        """
        if not (self.validate_key(public_key) and self.validate_signature(signature)):
            return False
        try:
            with oqs.Signature(self.name) as verifier:
                return bool(verifier.verify(bytes(message), bytes(signature), bytes(public_key)))
        except Exception as exc:
            logger.warning(f"{self.name} verification error: {exc}")
            return False


class OQSKEMScheme:
    """KEM capability; format checks sized to the liboqs parameter set."""

    def __init__(self, candidates: Tuple[str, ...]):
        self.name = _first_supported(candidates, oqs.get_enabled_kem_mechanisms)

    def validate_key(self, key: bytes) -> bool:
        return validate_kyber_key(key)

    def validate_ciphertext(self, ciphertext: bytes) -> bool:
        return is_byte_buffer(ciphertext) and len(ciphertext) == KYBER_CIPHERTEXT_SIZE


def liboqs_suite() -> SchemeSuite:
    suite = SchemeSuite(
        name="liboqs",
        dilithium=OQSSignatureScheme(
            DILITHIUM_ALGORITHMS, DILITHIUM_PUBLIC_KEY_SIZE,
            DILITHIUM_SIGNATURE_SIZE, validate_dilithium_key,
        ),
        sphincs=OQSSignatureScheme(
            SPHINCS_ALGORITHMS, SPHINCS_PUBLIC_KEY_SIZE,
            SPHINCS_SIGNATURE_SIZE, validate_sphincs_key,
        ),
        kyber=OQSKEMScheme(KYBER_ALGORITHMS),
    )
    logger.info(
        f"liboqs suite loaded: {suite.dilithium.name}, {suite.sphincs.name}, {suite.kyber.name}"
    )
    return suite

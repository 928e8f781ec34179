"""
QRVault Crypto Module

This module provides the cryptographic building blocks of the registry:
- Hash functions (sha256, post_quantum_hash) and freshness nonces
- Structural validators for Dilithium / SPHINCS+ / Kyber material
- Scheme capabilities bundling validation and verification per family

The liboqs-backed suite is lazy loaded through ``get_scheme_suite("liboqs")``
so importing this package never requires liboqs.
"""

from .hashing import sha256, post_quantum_hash, generate_freshness_nonce
from .validators import (
    is_byte_buffer,
    validate_dilithium_key,
    validate_sphincs_key,
    validate_kyber_key,
    validate_kyber_ciphertext,
    validate_hash32,
)
from .schemes import (
    KeyScheme,
    SignatureScheme,
    KEMScheme,
    StructuralDilithium,
    StructuralSphincs,
    StructuralKyber,
    SchemeSuite,
    structural_suite,
    get_scheme_suite,
)

__all__ = [
    'sha256',
    'post_quantum_hash',
    'generate_freshness_nonce',
    'is_byte_buffer',
    'validate_dilithium_key',
    'validate_sphincs_key',
    'validate_kyber_key',
    'validate_kyber_ciphertext',
    'validate_hash32',
    'KeyScheme',
    'SignatureScheme',
    'KEMScheme',
    'StructuralDilithium',
    'StructuralSphincs',
    'StructuralKyber',
    'SchemeSuite',
    'structural_suite',
    'get_scheme_suite',
]

"""
QRVault Cryptography Test Suite

Covers:
- Structural validators for Dilithium / SPHINCS+ / Kyber material
- sha256 and the chained post_quantum_hash
- Freshness nonce derivation
- Scheme suites (structural, and liboqs when it is installed)
- Package exports and the error-code table

Run with:
    pytest tests/test_crypto.py -v
"""

import hashlib
import importlib
import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from qrvault.crypto import (
    generate_freshness_nonce,
    get_scheme_suite,
    post_quantum_hash,
    sha256,
    structural_suite,
    validate_dilithium_key,
    validate_hash32,
    validate_kyber_ciphertext,
    validate_kyber_key,
    validate_sphincs_key,
)
from qrvault import exceptions
from qrvault.exceptions import ConfigurationError
from qrvault.registry import BlockInfo, ExecutionContext, GlobalState


def _h(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def make_ctx(height: int = 2, previous_hash: bytes = b"\xaa" * 32) -> ExecutionContext:
    return ExecutionContext(
        sender="wallet_1",
        block=BlockInfo(height=height, timestamp=1_700_000_000, previous_hash=previous_hash),
    )


# ============================================================================
# Validators
# ============================================================================


class TestDilithiumKeyValidator:

    def test_valid_key(self):
        assert validate_dilithium_key(b"\x01" * 1312)

    def test_wrong_length(self):
        assert not validate_dilithium_key(b"\x01" * 1311)
        assert not validate_dilithium_key(b"\x01" * 1313)

    def test_zero_prefix_rejected(self):
        """Only the first 8 bytes are inspected."""
        assert not validate_dilithium_key(bytes(8) + b"\x01" * 1304)
        assert validate_dilithium_key(bytes(7) + b"\x01" + bytes(1304))

    def test_short_zero_buffer(self):
        assert not validate_dilithium_key(bytes(1302))

    def test_accepts_bytes_like(self):
        assert validate_dilithium_key(bytearray(b"\x01" * 1312))
        assert validate_dilithium_key(memoryview(b"\x01" * 1312))

    @pytest.mark.parametrize("value", [None, 42, "01" * 1312, [1] * 1312])
    def test_non_buffer_is_false(self, value):
        assert validate_dilithium_key(value) is False


class TestSphincsKeyValidator:

    def test_valid_key(self):
        assert validate_sphincs_key(b"\x02" * 32)

    def test_all_zero_rejected(self):
        assert not validate_sphincs_key(bytes(32))

    def test_single_nonzero_byte_is_enough(self):
        assert validate_sphincs_key(bytes(31) + b"\x01")

    def test_wrong_length(self):
        assert not validate_sphincs_key(b"\x02" * 33)


class TestKyberValidators:

    def test_valid_key(self):
        assert validate_kyber_key(b"\x03" * 800)

    def test_zero_prefix_rejected(self):
        assert not validate_kyber_key(bytes(800))

    def test_wrong_length(self):
        assert not validate_kyber_key(b"\x03" * 768)

    def test_ciphertext_length_only(self):
        assert validate_kyber_ciphertext(bytes(768))
        assert not validate_kyber_ciphertext(bytes(767))
        assert not validate_kyber_ciphertext(None)


class TestHashValidator:

    def test_exact_length(self):
        assert validate_hash32(bytes(32))
        assert not validate_hash32(bytes(31))
        assert not validate_hash32(bytes(33))
        assert not validate_hash32("00" * 32)


# ============================================================================
# Hashing
# ============================================================================


class TestSha256:

    def test_bytes(self):
        assert sha256(b"abc") == _h(b"abc")

    def test_hex_string(self):
        assert sha256("0x616263") == _h(b"abc")
        assert sha256("616263") == _h(b"abc")


class TestPostQuantumHash:

    def test_matches_round_definition(self):
        data = b"quantum"
        r1 = _h(data)
        r2 = _h(r1 + data)
        r3 = _h(r2 + r1)
        r4 = _h(r3 + r2)
        assert post_quantum_hash(data) == r4

    def test_empty_input(self):
        r1 = _h(b"")
        r2 = _h(r1)
        r3 = _h(r2 + r1)
        r4 = _h(r3 + r2)
        assert post_quantum_hash(b"") == r4

    def test_deterministic(self):
        assert post_quantum_hash(b"x" * 100) == post_quantum_hash(b"x" * 100)

    def test_output_size(self):
        assert len(post_quantum_hash(b"\x07" * 32)) == 32

    def test_single_bit_flip_changes_output(self):
        data = bytearray(b"\x07" * 32)
        original = post_quantum_hash(bytes(data))
        data[0] ^= 0x01
        assert post_quantum_hash(bytes(data)) != original

    def test_differs_from_single_sha256(self):
        assert post_quantum_hash(b"abc") != _h(b"abc")


class TestFreshnessNonce:

    def test_matches_derivation(self):
        state = GlobalState()
        ctx = make_ctx(height=12)
        expected = post_quantum_hash(b"\xaa" * 32 + b"12" + (0).to_bytes(16, "big"))
        assert generate_freshness_nonce(ctx, state) == expected

    def test_counter_advances(self):
        state = GlobalState(nonce_counter=7)
        generate_freshness_nonce(make_ctx(), state)
        assert state.nonce_counter == 8

    def test_never_repeats_in_same_block(self):
        state = GlobalState()
        ctx = make_ctx()
        nonces = {generate_freshness_nonce(ctx, state) for _ in range(50)}
        assert len(nonces) == 50

    def test_depends_on_previous_block_hash(self):
        a = generate_freshness_nonce(make_ctx(previous_hash=b"\x01" * 32), GlobalState())
        b = generate_freshness_nonce(make_ctx(previous_hash=b"\x02" * 32), GlobalState())
        assert a != b


# ============================================================================
# Scheme suites
# ============================================================================


class TestStructuralSuite:

    def setup_method(self):
        self.suite = structural_suite()

    def test_names(self):
        assert self.suite.name == "structural"
        assert self.suite.dilithium.name == "dilithium-structural"

    def test_signature_formats(self):
        assert self.suite.dilithium.validate_signature(b"\x04" * 2420)
        assert not self.suite.dilithium.validate_signature(b"\x04" * 2419)
        assert self.suite.sphincs.validate_signature(b"\x05" * 17088)
        assert not self.suite.sphincs.validate_signature(b"\x05" * 17087)

    def test_signature_formats_accept_bytes_like(self):
        """Signatures follow the same buffer rule as key material."""
        assert self.suite.dilithium.validate_signature(bytearray(b"\x04" * 2420))
        assert self.suite.dilithium.validate_signature(memoryview(b"\x04" * 2420))
        assert self.suite.sphincs.validate_signature(bytearray(b"\x05" * 17088))
        assert validate_dilithium_key(bytearray(b"\x01" * 1312))

    @pytest.mark.parametrize("value", ["\x04" * 2420, [4] * 2420, None])
    def test_signature_formats_reject_non_buffers(self, value):
        assert not self.suite.dilithium.validate_signature(value)
        assert not self.suite.sphincs.validate_signature(value)

    def test_dilithium_verify_accepts_bytes_like(self):
        pk, sig, msg = b"\x01" * 1312, b"\x04" * 2420, b"\x07" * 32
        assert self.suite.dilithium.verify(bytearray(pk), memoryview(sig), bytearray(msg)) is \
            self.suite.dilithium.verify(pk, sig, msg)

    def test_dilithium_verify_rule(self):
        """Accepts iff pqh(pk || sig || msg)[:16] == sha256(pk)[:16]."""
        pk, sig, msg = b"\x01" * 1312, b"\x04" * 2420, b"\x07" * 32
        expected = post_quantum_hash(pk + sig + msg)[:16] == _h(pk)[:16]
        assert self.suite.dilithium.verify(pk, sig, msg) is expected
        assert expected is False

    def test_sphincs_verify_checks_format(self):
        assert self.suite.sphincs.verify(b"\x02" * 32, b"\x05" * 17088, b"\x07" * 32)
        assert not self.suite.sphincs.verify(bytes(32), b"\x05" * 17088, b"\x07" * 32)

    def test_kyber_ciphertext(self):
        assert self.suite.kyber.validate_ciphertext(b"\x06" * 768)


class TestSchemeSuiteResolution:

    def test_structural_by_name(self):
        assert get_scheme_suite("structural").name == "structural"

    def test_unknown_backend(self):
        with pytest.raises(ConfigurationError, match="Unknown crypto backend"):
            get_scheme_suite("rot13")


class TestLiboqsSuite:
    """Only runs where liboqs-python and the native library are installed."""

    @pytest.fixture(autouse=True)
    def _require_oqs(self):
        self.oqs = pytest.importorskip("oqs")

    def test_parameter_sizes_match_registry(self):
        suite = get_scheme_suite("liboqs")
        with self.oqs.Signature(suite.dilithium.name) as signer:
            assert signer.details["length_public_key"] == 1312
            assert signer.details["length_signature"] == 2420
        with self.oqs.KeyEncapsulation(suite.kyber.name) as kem:
            assert kem.details["length_public_key"] == 800
            assert kem.details["length_ciphertext"] == 768

    def test_real_dilithium_signature_verifies(self):
        suite = get_scheme_suite("liboqs")
        message = b"\x07" * 32
        with self.oqs.Signature(suite.dilithium.name) as signer:
            public_key = signer.generate_keypair()
            signature = signer.sign(message)
        assert suite.dilithium.verify(public_key, signature, message)
        assert not suite.dilithium.verify(public_key, signature, b"\x08" * 32)


class TestPublicSurface:

    @pytest.mark.parametrize("module_name", ["qrvault.crypto", "qrvault.registry", "qrvault.config"])
    def test_exported_names_resolve(self, module_name):
        module = importlib.import_module(module_name)
        missing = [name for name in module.__all__ if not hasattr(module, name)]
        assert missing == []

    def test_every_error_code_has_one_error_class(self):
        classes = [cls for cls in vars(exceptions).values()
                   if isinstance(cls, type) and issubclass(cls, exceptions.RegistryError)
                   and cls is not exceptions.RegistryError]
        assert sorted(cls.code for cls in classes) == sorted(exceptions.ErrorCode)

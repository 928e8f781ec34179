"""
Quantum-Resistant Registry

State machine holding principals' post-quantum keys, hybrid signatures,
encrypted data references, Merkle roots and hash chains under an
administrator-controlled threat level.

Every mutating operation:
    1. checks argument shapes (fixed buffer sizes),
    2. checks authorization and uniqueness preconditions in a fixed order,
    3. writes inside one ``RegistryStore.transaction()``.

The first failing check raises a ``RegistryError`` carrying its
``ErrorCode``; nothing has been written at that point, and the transaction
scope restores the snapshot if anything raises later.
"""

from dataclasses import replace
from typing import Optional

from ..constants import HASH_SIZE, KYBER_CIPHERTEXT_SIZE, MAX_THREAT_LEVEL
from ..crypto.hashing import generate_freshness_nonce, post_quantum_hash
from ..crypto.schemes import SchemeSuite, structural_suite
from ..crypto.validators import is_byte_buffer, validate_hash32
from ..exceptions import (
    AlreadyExistsError,
    InvalidHashError,
    InvalidKeyMaterialError,
    InvalidSignatureError,
    NotFoundError,
    ThresholdExceededError,
    UnauthorizedError,
)
from ..logger import get_logger
from .context import ExecutionContext
from .store import RegistryStore
from .types import (
    ContractStats,
    EncryptedRecord,
    HashChainLink,
    KeyRecord,
    MerkleRoot,
    SignatureRecord,
)

logger = get_logger(__name__)


def _short(data: bytes) -> str:
    return '0x' + data[:8].hex() + '…'


class QuantumRegistry:
    """
    Permissioned post-quantum key and integrity registry.

    The administrator is fixed at construction. Cryptographic checks go
    through the injected ``SchemeSuite`` (structural by default).
    """

    def __init__(
        self,
        admin: str,
        store: Optional[RegistryStore] = None,
        suite: Optional[SchemeSuite] = None,
    ):
        """
        Args:
            admin: Principal allowed to create Merkle roots and set the threat level
            store: Backing tables (a fresh in-memory store if omitted)
            suite: Validation / verification capabilities
        """
        if not admin:
            raise ValueError("Administrator principal cannot be empty")
        self.admin = admin
        self.store = store if store is not None else RegistryStore()
        self.suite = suite or structural_suite()
        logger.info(f"Registry initialized: admin={admin}, suite={self.suite.name}")

    # ── Guards ────────────────────────────────────────────────────────

    def _require_admin(self, ctx: ExecutionContext) -> None:
        if ctx.sender != self.admin:
            raise UnauthorizedError(f"{ctx.sender} is not the registry administrator")

    def _require_active_keys(self, principal: str) -> KeyRecord:
        record = self.store.keys.get(principal)
        if record is None:
            raise NotFoundError(f"No keys registered for {principal}")
        if not record.is_active:
            raise UnauthorizedError(f"Keys of {principal} are deactivated")
        return record

    @staticmethod
    def _require_hash(value: bytes, label: str) -> None:
        if not validate_hash32(value):
            raise InvalidHashError(f"{label} must be {HASH_SIZE} bytes")

    # ── Key lifecycle ─────────────────────────────────────────────────

    def register_keys(
        self,
        ctx: ExecutionContext,
        dilithium_key: bytes,
        sphincs_key: bytes,
        kyber_key: bytes,
    ) -> bool:
        """
        Register the caller's Dilithium, SPHINCS+ and Kyber public keys.

        Raises:
            InvalidKeyMaterialError: any key fails its validator
            AlreadyExistsError: caller already has a key record
        """
        if not self.suite.dilithium.validate_key(dilithium_key):
            raise InvalidKeyMaterialError("Invalid Dilithium public key")
        if not self.suite.sphincs.validate_key(sphincs_key):
            raise InvalidKeyMaterialError("Invalid SPHINCS+ public key")
        if not self.suite.kyber.validate_key(kyber_key):
            raise InvalidKeyMaterialError("Invalid Kyber public key")
        if self.store.keys.exists(ctx.sender):
            raise AlreadyExistsError(f"Keys already registered for {ctx.sender}")

        record = KeyRecord(
            dilithium_key=bytes(dilithium_key),
            sphincs_key=bytes(sphincs_key),
            kyber_key=bytes(kyber_key),
            registration_height=ctx.height,
            is_active=True,
        )
        with self.store.transaction() as store:
            store.keys.insert(ctx.sender, record)
            store.state.total_keys += 1

        logger.info(f"Keys registered: {ctx.sender} at height {ctx.height}")
        return True

    def deactivate_keys(self, ctx: ExecutionContext) -> bool:
        """
        Deactivate the caller's keys. There is no way back.

        Raises:
            NotFoundError: caller has no key record
        """
        record = self.store.keys.get(ctx.sender)
        if record is None:
            raise NotFoundError(f"No keys registered for {ctx.sender}")

        with self.store.transaction() as store:
            store.keys.update(ctx.sender, replace(record, is_active=False))

        logger.warning(f"Keys deactivated: {ctx.sender}")
        return True

    # ── Signatures ────────────────────────────────────────────────────

    def create_signature(
        self,
        ctx: ExecutionContext,
        message_hash: bytes,
        dilithium_signature: bytes,
        sphincs_signature: bytes,
    ) -> bool:
        """
        Attach a verified hybrid signature to a message hash.

        Raises:
            NotFoundError: caller has no key record
            UnauthorizedError: caller's keys are deactivated
            InvalidHashError: message hash is not 32 bytes
            InvalidSignatureError: malformed signature or verification failure
            AlreadyExistsError: caller already signed this hash
        """
        keys = self._require_active_keys(ctx.sender)
        self._require_hash(message_hash, "Message hash")
        if not self.suite.dilithium.validate_signature(dilithium_signature):
            raise InvalidSignatureError("Malformed Dilithium signature")
        if not self.suite.sphincs.validate_signature(sphincs_signature):
            raise InvalidSignatureError("Malformed SPHINCS+ signature")

        message_hash = bytes(message_hash)
        sig_key = (ctx.sender, message_hash)
        if self.store.signatures.exists(sig_key):
            raise AlreadyExistsError(f"{ctx.sender} already signed {_short(message_hash)}")

        if not self.suite.dilithium.verify(keys.dilithium_key, bytes(dilithium_signature), message_hash):
            raise InvalidSignatureError("Dilithium signature verification failed")
        if not self.suite.sphincs.verify(keys.sphincs_key, bytes(sphincs_signature), message_hash):
            raise InvalidSignatureError("SPHINCS+ signature verification failed")

        record = SignatureRecord(
            dilithium_signature=bytes(dilithium_signature),
            sphincs_signature=bytes(sphincs_signature),
            created_at=ctx.timestamp,
            height=ctx.height,
            verified=True,
        )
        with self.store.transaction() as store:
            store.signatures.insert(sig_key, record)

        logger.info(f"Signature created: {ctx.sender} over {_short(message_hash)}")
        return True

    # ── Encrypted data ────────────────────────────────────────────────

    def store_encrypted_data(
        self,
        ctx: ExecutionContext,
        data_id: bytes,
        ciphertext: bytes,
        metadata_hash: bytes,
    ) -> bool:
        """
        Store a reference to a Kyber ciphertext under the caller.

        Raises:
            NotFoundError: caller has no key record
            UnauthorizedError: caller's keys are deactivated
            InvalidHashError: data id or metadata hash is not 32 bytes
            AlreadyExistsError: data id already used by the caller
            InvalidKeyMaterialError: ciphertext is not 768 bytes
        """
        self._require_active_keys(ctx.sender)
        self._require_hash(data_id, "Data id")
        self._require_hash(metadata_hash, "Metadata hash")

        data_key = (ctx.sender, bytes(data_id))
        if self.store.encrypted.exists(data_key):
            raise AlreadyExistsError(f"{ctx.sender} already stored {_short(data_id)}")
        if not self.suite.kyber.validate_ciphertext(ciphertext):
            raise InvalidKeyMaterialError(f"Ciphertext must be {KYBER_CIPHERTEXT_SIZE} bytes")

        record = EncryptedRecord(
            ciphertext=bytes(ciphertext),
            metadata_hash=bytes(metadata_hash),
            height=ctx.height,
            access_count=0,
        )
        with self.store.transaction() as store:
            store.encrypted.insert(data_key, record)

        logger.info(f"Encrypted data stored: {ctx.sender} id={_short(data_id)}")
        return True

    # ── Merkle roots ──────────────────────────────────────────────────

    def create_merkle_root(
        self,
        ctx: ExecutionContext,
        root_id: int,
        root_hash: bytes,
        tree_height: int,
        leaf_count: int,
    ) -> int:
        """
        Record a Merkle root. Administrator only.

        Raises:
            UnauthorizedError: caller is not the administrator
            AlreadyExistsError: root id is taken
            InvalidHashError: zero tree height / leaf count, or bad root hash
        """
        self._require_admin(ctx)
        if self.store.merkle_roots.exists(root_id):
            raise AlreadyExistsError(f"Merkle root {root_id} already exists")
        if tree_height <= 0 or leaf_count <= 0:
            raise InvalidHashError(
                f"Tree height and leaf count must be positive, got {tree_height}/{leaf_count}"
            )
        self._require_hash(root_hash, "Root hash")

        record = MerkleRoot(
            root_hash=bytes(root_hash),
            tree_height=tree_height,
            leaf_count=leaf_count,
            creation_height=ctx.height,
            quantum_safe=True,
        )
        with self.store.transaction() as store:
            store.merkle_roots.insert(root_id, record)

        logger.info(f"Merkle root {root_id} created: height={tree_height} leaves={leaf_count}")
        return root_id

    # ── Hash chains ───────────────────────────────────────────────────

    def initialize_hash_chain(
        self,
        ctx: ExecutionContext,
        chain_id: bytes,
        initial_hash: bytes,
    ) -> bytes:
        """
        Start a hash chain. Position 0 mixes the initial hash with a
        freshness nonce so re-initializing elsewhere cannot replay it.

        Returns:
            Hash value of position 0

        Raises:
            InvalidHashError: chain id or initial hash is not 32 bytes
            AlreadyExistsError: chain already initialized
        """
        self._require_hash(chain_id, "Chain id")
        self._require_hash(initial_hash, "Initial hash")
        chain_id = bytes(chain_id)
        if self.store.chain_links.exists((chain_id, 0)):
            raise AlreadyExistsError(f"Hash chain {_short(chain_id)} already initialized")

        with self.store.transaction() as store:
            nonce = generate_freshness_nonce(ctx, store.state)
            chain_hash = post_quantum_hash(bytes(initial_hash) + nonce)
            store.chain_links.insert((chain_id, 0), HashChainLink(
                hash_value=chain_hash,
                previous_hash=bytes(initial_hash),
                chain_length=1,
                verification_count=0,
            ))
            store.chain_lengths.insert(chain_id, 1)

        logger.info(f"Hash chain {_short(chain_id)} initialized: {_short(chain_hash)}")
        return chain_hash

    def extend_hash_chain(
        self,
        ctx: ExecutionContext,
        chain_id: bytes,
        new_data: bytes,
    ) -> bytes:
        """
        Append a link whose hash commits to the current tail and ``new_data``.

        Returns:
            Hash value of the new link

        Raises:
            NotFoundError: chain has no tail link
            InvalidHashError: new_data is not a byte buffer
        """
        chain_id = bytes(chain_id)
        length = self.store.chain_lengths.get(chain_id) or 0
        tail = self.store.chain_links.get((chain_id, length - 1)) if length else None
        if tail is None:
            raise NotFoundError(f"Hash chain {_short(chain_id)} not found")

        if not is_byte_buffer(new_data):
            raise InvalidHashError(f"Chain data must be bytes, got {type(new_data).__name__}")

        new_hash = post_quantum_hash(tail.hash_value + bytes(new_data))
        with self.store.transaction() as store:
            store.chain_links.insert((chain_id, length), HashChainLink(
                hash_value=new_hash,
                previous_hash=tail.hash_value,
                chain_length=length + 1,
                verification_count=0,
            ))
            store.chain_lengths.update(chain_id, length + 1)

        logger.debug(f"Hash chain {_short(chain_id)} extended to length {length + 1}")
        return new_hash

    # ── Threat level ──────────────────────────────────────────────────

    def update_threat_level(self, ctx: ExecutionContext, level: int) -> int:
        """
        Set the global threat level. Administrator only.

        Raises:
            UnauthorizedError: caller is not the administrator
            ThresholdExceededError: level outside 0..MAX_THREAT_LEVEL or not an integer
        """
        self._require_admin(ctx)
        if isinstance(level, bool) or not isinstance(level, int):
            raise ThresholdExceededError(f"Threat level must be an integer, got {level!r}")
        if level < 0 or level > MAX_THREAT_LEVEL:
            raise ThresholdExceededError(
                f"Threat level must be within 0..{MAX_THREAT_LEVEL}, got {level}"
            )

        with self.store.transaction() as store:
            store.state.threat_level = level

        logger.warning(f"Quantum threat level set to {level}")
        return level

    # ── Read-only queries ─────────────────────────────────────────────

    def get_keys(self, principal: str) -> Optional[KeyRecord]:
        return self.store.keys.get(principal)

    def get_signature_status(self, signer: str, message_hash: bytes) -> Optional[SignatureRecord]:
        return self.store.signatures.get((signer, bytes(message_hash)))

    def get_encrypted_info(self, owner: str, data_id: bytes) -> Optional[EncryptedRecord]:
        return self.store.encrypted.get((owner, bytes(data_id)))

    def get_merkle_root(self, root_id: int) -> Optional[MerkleRoot]:
        return self.store.merkle_roots.get(root_id)

    def get_hash_chain_info(self, chain_id: bytes, position: int) -> Optional[HashChainLink]:
        return self.store.chain_links.get((bytes(chain_id), position))

    def get_hash_chain_length(self, chain_id: bytes) -> int:
        return self.store.chain_lengths.get(bytes(chain_id)) or 0

    def get_contract_stats(self) -> ContractStats:
        return ContractStats(
            total_keys=self.store.state.total_keys,
            threat_level=self.store.state.threat_level,
        )

    def get_quantum_threat_level(self) -> int:
        return self.store.state.threat_level

    def is_quantum_resistant_signature(self, principal: str, message_hash: bytes) -> bool:
        """True iff a verified signature by ``principal`` over ``message_hash`` exists."""
        record = self.get_signature_status(principal, message_hash)
        return record is not None and record.verified

    def verify_hash_chain(self, chain_id: bytes) -> bool:
        """
        Check the link structure of a whole chain.

        Every link k >= 1 must name link k-1's hash as its previous hash and
        carry ``chain_length == k + 1``. Absent chains are not valid.
        """
        length = self.get_hash_chain_length(chain_id)
        if length == 0:
            return False

        previous = None
        for position in range(length):
            link = self.get_hash_chain_info(chain_id, position)
            if link is None or link.chain_length != position + 1:
                return False
            if previous is not None and link.previous_hash != previous.hash_value:
                return False
            previous = link
        return True

    def __repr__(self) -> str:
        return f"<QuantumRegistry admin={self.admin} {self.store!r}>"

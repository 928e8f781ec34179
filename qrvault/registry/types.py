"""
Registry record types.

All records are immutable; state changes replace a record with an updated
copy. ``to_dict`` renders bytes as 0x-prefixed hex, ``from_dict`` reverses it.
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple


def _hex(data: bytes) -> str:
    return '0x' + data.hex()


def _unhex(value: str) -> bytes:
    if value.startswith('0x') or value.startswith('0X'):
        value = value[2:]
    return bytes.fromhex(value)


SignatureKey = Tuple[str, bytes]     # (signer, message_hash)
EncryptedKey = Tuple[str, bytes]     # (owner, data_id)
ChainLinkKey = Tuple[bytes, int]     # (chain_id, position)


@dataclass(frozen=True)
class KeyRecord:
    """Post-quantum public keys registered by one principal."""
    dilithium_key: bytes
    sphincs_key: bytes
    kyber_key: bytes
    registration_height: int
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dilithiumKey": _hex(self.dilithium_key),
            "sphincsKey": _hex(self.sphincs_key),
            "kyberKey": _hex(self.kyber_key),
            "registrationHeight": self.registration_height,
            "isActive": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KeyRecord":
        return cls(
            dilithium_key=_unhex(data["dilithiumKey"]),
            sphincs_key=_unhex(data["sphincsKey"]),
            kyber_key=_unhex(data["kyberKey"]),
            registration_height=int(data["registrationHeight"]),
            is_active=bool(data["isActive"]),
        )


@dataclass(frozen=True)
class SignatureRecord:
    """Hybrid signature over a 32-byte message hash."""
    dilithium_signature: bytes
    sphincs_signature: bytes
    created_at: int
    height: int
    verified: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dilithiumSignature": _hex(self.dilithium_signature),
            "sphincsSignature": _hex(self.sphincs_signature),
            "createdAt": self.created_at,
            "height": self.height,
            "verified": self.verified,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignatureRecord":
        return cls(
            dilithium_signature=_unhex(data["dilithiumSignature"]),
            sphincs_signature=_unhex(data["sphincsSignature"]),
            created_at=int(data["createdAt"]),
            height=int(data["height"]),
            verified=bool(data["verified"]),
        )


@dataclass(frozen=True)
class EncryptedRecord:
    """Reference to a Kyber-encapsulated payload."""
    ciphertext: bytes
    metadata_hash: bytes
    height: int
    access_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ciphertext": _hex(self.ciphertext),
            "metadataHash": _hex(self.metadata_hash),
            "height": self.height,
            "accessCount": self.access_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EncryptedRecord":
        return cls(
            ciphertext=_unhex(data["ciphertext"]),
            metadata_hash=_unhex(data["metadataHash"]),
            height=int(data["height"]),
            access_count=int(data.get("accessCount", 0)),
        )


@dataclass(frozen=True)
class MerkleRoot:
    """Opaque Merkle root with tree metadata."""
    root_hash: bytes
    tree_height: int
    leaf_count: int
    creation_height: int
    quantum_safe: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rootHash": _hex(self.root_hash),
            "treeHeight": self.tree_height,
            "leafCount": self.leaf_count,
            "creationHeight": self.creation_height,
            "isQuantumSafe": self.quantum_safe,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MerkleRoot":
        return cls(
            root_hash=_unhex(data["rootHash"]),
            tree_height=int(data["treeHeight"]),
            leaf_count=int(data["leafCount"]),
            creation_height=int(data["creationHeight"]),
            quantum_safe=bool(data.get("isQuantumSafe", True)),
        )


@dataclass(frozen=True)
class HashChainLink:
    """One link of an append-only hash chain."""
    hash_value: bytes
    previous_hash: bytes
    chain_length: int
    verification_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hashValue": _hex(self.hash_value),
            "previousHash": _hex(self.previous_hash),
            "chainLength": self.chain_length,
            "verificationCount": self.verification_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HashChainLink":
        return cls(
            hash_value=_unhex(data["hashValue"]),
            previous_hash=_unhex(data["previousHash"]),
            chain_length=int(data["chainLength"]),
            verification_count=int(data.get("verificationCount", 0)),
        )


@dataclass(frozen=True)
class ContractStats:
    total_keys: int
    threat_level: int

    def to_dict(self) -> Dict[str, Any]:
        return {"totalKeys": self.total_keys, "threatLevel": self.threat_level}

"""
Registry-wide scalar state.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class GlobalState:
    """
    Process-wide counters owned by one registry.

    Attributes:
        threat_level: Administrator-set threat level, 0..MAX_THREAT_LEVEL
        total_keys: Number of key registrations ever accepted
        nonce_counter: Freshness counter, advanced on every nonce generation
    """
    threat_level: int = 0
    total_keys: int = 0
    nonce_counter: int = 0

    def copy(self) -> "GlobalState":
        return GlobalState(
            threat_level=self.threat_level,
            total_keys=self.total_keys,
            nonce_counter=self.nonce_counter,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "threatLevel": self.threat_level,
            "totalKeys": self.total_keys,
            "nonceCounter": self.nonce_counter,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GlobalState":
        return cls(
            threat_level=int(data.get("threatLevel", 0)),
            total_keys=int(data.get("totalKeys", 0)),
            nonce_counter=int(data.get("nonceCounter", 0)),
        )

# starledger/core/types.py
from dataclasses import dataclass
from typing import Any, Dict, Optional

from starledger.core.encoding import decode_body, encode_body
from starledger.core.errors import GenesisDataError
from starledger.crypto.hashing import block_hash

GENESIS_PAYLOAD = {"data": "Genesis Block"}


@dataclass(frozen=True)
class Block:
    """
    Sealed unit of the chain. Only the chain fills in hash / height / time / previous_block_hash,
    so a Block built with from_payload() is unsealed until appended.
    """
    body: str                                   # hex of sorted compact JSON payload
    hash: Optional[str] = None                  # None until sealed
    height: int = 0
    time: int = 0                               # unix seconds
    previous_block_hash: Optional[str] = None   # None only for genesis

    @classmethod
    def from_payload(cls, payload: Any) -> "Block":
        return cls(body=encode_body(payload))

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Block":
        return cls(
            body=d["body"],
            hash=d.get("hash"),
            height=d["height"],
            time=d["time"],
            previous_block_hash=d.get("previousBlockHash"),
        )

    @property
    def is_sealed(self) -> bool:
        return self.hash is not None

    def to_dict(self) -> dict:
        """Persisted / wire shape. The digest is computed over exactly these five fields."""
        return {
            "hash": self.hash,
            "height": self.height,
            "body": self.body,
            "time": self.time,
            "previousBlockHash": self.previous_block_hash,
        }

    def compute_hash(self) -> str:
        return block_hash(self)

    async def validate(self) -> bool:
        """True when the stored hash matches the recomputed digest. Never raises."""
        try:
            return self.hash == self.compute_hash()
        except (TypeError, ValueError):
            return False

    async def get_data(self) -> Any:
        """Decode the body back to the original payload."""
        if self.height == 0:
            raise GenesisDataError()
        return decode_body(self.body)

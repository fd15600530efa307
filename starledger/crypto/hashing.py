# starledger/crypto/hashing.py
import hashlib
from typing import Any, Dict

from starledger.core.canon import canonical_json


def digest(data: bytes) -> str:
    """SHA-256 hex digest (64 lowercase hex characters)."""
    return hashlib.sha256(data).hexdigest()


def block_hash(block: Any) -> str:
    """
    Digest of a block's own content with the `hash` field treated as null.
    Accepts a Block or its dict form.
    """
    d: Dict[str, Any] = dict(block if isinstance(block, dict) else block.to_dict())
    d["hash"] = None
    return digest(canonical_json(d))

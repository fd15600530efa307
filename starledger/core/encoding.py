# starledger/core/encoding.py
import base64
import binascii
import json
from typing import Any

from starledger.core.errors import DecodeError


def encode_body(payload: Any) -> str:
    """
    Encode a JSON-serializable payload as lowercase hex of sorted, compact JSON.

    Numbers are written as Python writes them, so large ints and floats like 1.0
    decode to exactly what went in. Payloads that would not decode back to an
    equal object (tuples, non-string keys, NaN) are rejected.
    """
    try:
        text = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Payload is not JSON-serializable: {e}") from e
    if json.loads(text) != payload:
        raise ValueError("Payload does not survive a JSON round-trip")
    return text.encode("utf-8").hex()


def decode_body(body: str) -> Any:
    """Reverse of encode_body. Any malformed input raises DecodeError."""
    if not isinstance(body, str):
        raise DecodeError(f"Block body must be a hex string, got {type(body).__name__}")
    try:
        raw = bytes.fromhex(body)
        return json.loads(raw.decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as e:
        # json.JSONDecodeError is a ValueError subclass
        raise DecodeError(f"Block body is not validly encoded: {e}") from e


def b64url_encode(data: bytes) -> str:
    """Encode bytes to base64url (no padding, URL-safe)."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(s: str) -> bytes:
    """Decode base64url string back to bytes. Raises ValueError on bad input."""
    # Restore padding
    padding = len(s) % 4
    if padding:
        s += "=" * (4 - padding)
    try:
        return base64.urlsafe_b64decode(s)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64url data: {e}") from e

# starledger/core/errors.py
"""
Error taxonomy for the ledger.

Validation-style operations never raise these; they report booleans or error lists.
Write-path operations raise exactly one of them per rejected request.
"""

from typing import List, Optional


class LedgerError(Exception):
    """Base class for every error raised by starledger."""


# ── block payload

class BlockDataError(LedgerError):
    """A block's payload cannot be handed back to the caller."""


class GenesisDataError(BlockDataError):
    def __init__(self, message: str = "Genesis block doesn't contain data."):
        super().__init__(message)


class DecodeError(BlockDataError):
    pass


# ── integrity

class TamperedBlockError(LedgerError):
    """Stored hash disagrees with the recomputed digest of a block."""

    def __init__(self, height: int, message: Optional[str] = None):
        self.height = height
        super().__init__(message or f"Block {height} is not valid.")


class ChainIntegrityError(LedgerError):
    """Whole-chain validation reported errors after an append was staged."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        detail = "; ".join(self.errors) if self.errors else "unknown error"
        super().__init__(f"Chain validation failed: {detail}")


# ── ownership

class OwnershipError(LedgerError):
    """A submission failed the ownership challenge gate."""


class InvalidChallengeError(OwnershipError):
    pass


class ExpiredChallengeError(OwnershipError):
    def __init__(self, elapsed: int, window: int):
        self.elapsed = elapsed
        self.window = window
        super().__init__(f"Challenge expired: {elapsed}s elapsed, window is {window}s")


class ReplayedChallengeError(OwnershipError):
    pass


class InvalidSignatureError(OwnershipError):
    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"Signature does not verify for identity '{identity}'")


__all__ = [
    "LedgerError",
    "BlockDataError",
    "GenesisDataError",
    "DecodeError",
    "TamperedBlockError",
    "ChainIntegrityError",
    "OwnershipError",
    "InvalidChallengeError",
    "ExpiredChallengeError",
    "ReplayedChallengeError",
    "InvalidSignatureError",
]

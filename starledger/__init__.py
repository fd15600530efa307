# starledger/__init__.py
"""
StarLedger — a private, single-writer, hash-linked ledger of signed records.
Writers prove control of an Ed25519 identity by signing a short-lived challenge
before their payload is sealed into the chain.
"""

from starledger.chain.blockchain import Blockchain
from starledger.config import LedgerConfig
from starledger.core.types import Block
from starledger.crypto.keys import IdentityKeyPair
from starledger.registry import StarRegistry
from starledger.verify.verifier import ChainVerifier

__version__ = "0.1.0"

__all__ = [
    "Block",
    "Blockchain",
    "ChainVerifier",
    "IdentityKeyPair",
    "LedgerConfig",
    "StarRegistry",
]

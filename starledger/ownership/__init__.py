# starledger/ownership/__init__.py
"""
Ownership challenge protocol: prove control of an identity before a write is accepted.
"""

from .challenge import Challenge, DEFAULT_CHALLENGE_TAG, DEFAULT_VALIDITY_WINDOW
from .signatures import SignatureVerifier, Ed25519SignatureVerifier
from .protocol import OwnershipProtocol

__all__ = [
    "Challenge",
    "DEFAULT_CHALLENGE_TAG",
    "DEFAULT_VALIDITY_WINDOW",
    "SignatureVerifier",
    "Ed25519SignatureVerifier",
    "OwnershipProtocol",
]

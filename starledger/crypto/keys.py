# starledger/crypto/keys.py
from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from starledger.core.encoding import b64url_decode, b64url_encode


class IdentityKeyPair:
    """
    Ed25519 key pair for an identity. The identity string is the base64url raw public key.
    A verify-only pair (no private key) is produced by from_public_b64url().
    """

    def __init__(
        self,
        public_key: ed25519.Ed25519PublicKey,
        private_key: Optional[ed25519.Ed25519PrivateKey] = None,
    ):
        self._public_key = public_key
        self._private_key = private_key

    @classmethod
    def generate(cls) -> "IdentityKeyPair":
        private_key = ed25519.Ed25519PrivateKey.generate()
        return cls(private_key.public_key(), private_key)

    @classmethod
    def from_private_b64url(cls, data: str) -> "IdentityKeyPair":
        private_key = ed25519.Ed25519PrivateKey.from_private_bytes(b64url_decode(data))
        return cls(private_key.public_key(), private_key)

    @classmethod
    def from_public_b64url(cls, data: str) -> "IdentityKeyPair":
        return cls(ed25519.Ed25519PublicKey.from_public_bytes(b64url_decode(data)))

    @property
    def identity(self) -> str:
        return self.public_key_b64url()

    @property
    def can_sign(self) -> bool:
        return self._private_key is not None

    def public_key_b64url(self) -> str:
        raw = self._public_key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return b64url_encode(raw)

    def private_key_b64url(self) -> str:
        if self._private_key is None:
            raise ValueError("Key pair has no private key")
        raw = self._private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        return b64url_encode(raw)

    def sign_bytes(self, data: bytes) -> bytes:
        if self._private_key is None:
            raise ValueError("Cannot sign with a verify-only key pair")
        return self._private_key.sign(data)

    def sign_challenge(self, message: str) -> str:
        """Sign a challenge message; returns the base64url signature submitters send back."""
        return b64url_encode(self.sign_bytes(message.encode("utf-8")))

    def verify_bytes(self, signature: bytes, data: bytes) -> bool:
        try:
            self._public_key.verify(signature, data)
            return True
        except InvalidSignature:
            return False

# starledger/ownership/signatures.py
from typing import Awaitable, Protocol, Union, runtime_checkable

from starledger.core.encoding import b64url_decode
from starledger.crypto.keys import IdentityKeyPair


@runtime_checkable
class SignatureVerifier(Protocol):
    """verify(message, identity, signature) -> bool, or an awaitable of bool."""

    def verify(self, message: str, identity: str, signature: str) -> Union[bool, Awaitable[bool]]:
        ...


class Ed25519SignatureVerifier:
    """
    Default verifier: identity is a base64url Ed25519 public key,
    signature is a base64url signature over the UTF-8 challenge message.
    Malformed keys or signatures verify as False.
    """

    def verify(self, message: str, identity: str, signature: str) -> bool:
        try:
            public = IdentityKeyPair.from_public_b64url(identity)
            sig_bytes = b64url_decode(signature)
        except (ValueError, TypeError):
            return False
        return public.verify_bytes(sig_bytes, message.encode("utf-8"))

# starledger/ownership/protocol.py
import inspect
import logging
from typing import Any, Callable, Dict, Optional

from starledger.chain.blockchain import Blockchain, unix_now
from starledger.config import LedgerConfig
from starledger.core.errors import (
    ExpiredChallengeError,
    InvalidChallengeError,
    InvalidSignatureError,
    OwnershipError,
    ReplayedChallengeError,
)
from starledger.core.types import Block
from .challenge import Challenge
from .signatures import Ed25519SignatureVerifier, SignatureVerifier

logger = logging.getLogger(__name__)


class OwnershipProtocol:
    """
    Gate in front of Blockchain.append: a write is accepted only with a fresh challenge
    for the submitting identity, signed by that identity.

    Checks run in a fixed order and the first failure is raised:
    challenge shape/binding → expiry → signature → replay (if enabled) → append.
    """

    def __init__(
        self,
        chain: Blockchain,
        verifier: Optional[SignatureVerifier] = None,
        config: Optional[LedgerConfig] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.chain = chain
        self.verifier = verifier or Ed25519SignatureVerifier()
        self.config = config or LedgerConfig()
        self._clock = clock or unix_now
        # challenge message → expiry time; only populated when replay rejection is on
        self._consumed: Dict[str, int] = {}

    @property
    def window(self) -> int:
        return self.config.challenge_window

    def request_challenge(self, identity: str) -> Challenge:
        return Challenge(identity=identity, issued_at=self._clock(), tag=self.config.challenge_tag)

    def check_challenge(self, identity: str, message: str, now: int) -> Challenge:
        challenge = Challenge.parse(message, expected_tag=self.config.challenge_tag)
        if challenge.identity != identity:
            raise InvalidChallengeError("Challenge was issued for a different identity")

        elapsed = challenge.elapsed(now)
        if elapsed > self.window:
            raise ExpiredChallengeError(elapsed, self.window)

        return challenge

    def _reserve(self, message: str, challenge: Challenge, now: int) -> None:
        self._prune(now)
        if message in self._consumed:
            logger.warning("Rejected replayed challenge from %s", challenge.identity)
            raise ReplayedChallengeError("Challenge has already been used")
        self._consumed[message] = challenge.expires_at(self.window)

    async def verify_signature(self, message: str, identity: str, signature: str) -> bool:
        result = self.verifier.verify(message, identity, signature)
        if inspect.isawaitable(result):
            result = await result
        return bool(result)

    async def submit(self, identity: str, message: str, signature: str, payload: Any) -> Block:
        """
        Validate the signed challenge and append a block holding
        {address, message, signature, star}. Returns the sealed block.
        """
        now = self._clock()
        try:
            challenge = self.check_challenge(identity, message, now)
            if not await self.verify_signature(message, identity, signature):
                raise InvalidSignatureError(identity)
        except OwnershipError as e:
            logger.warning("Rejected submission from %s: %s", identity, e)
            raise

        block = Block.from_payload({
            "address": identity,
            "message": message,
            "signature": signature,
            "star": payload,
        })
        # a record must never be sealed as genesis
        await self.chain.initialize()

        if not self.config.reject_replayed_challenges:
            return await self.chain.append(block)

        self._reserve(message, challenge, now)
        try:
            return await self.chain.append(block)
        except Exception:
            self._consumed.pop(message, None)
            raise

    def _prune(self, now: int) -> None:
        expired = [m for m, expires_at in self._consumed.items() if expires_at < now]
        for m in expired:
            del self._consumed[m]

# starledger/ownership/challenge.py
from dataclasses import dataclass

from starledger.config import DEFAULT_CHALLENGE_TAG, DEFAULT_VALIDITY_WINDOW
from starledger.core.errors import InvalidChallengeError

_SEPARATOR = ":"


@dataclass(frozen=True)
class Challenge:
    """
    Time-bound challenge an identity must sign. Nothing is stored server-side;
    freshness is re-derived from issued_at at verification time.

    Wire form is "<identity>:<issued_at>:<tag>". Parsing splits from the right,
    so identities that contain ":" survive the round trip.
    """
    identity: str
    issued_at: int
    tag: str = DEFAULT_CHALLENGE_TAG

    def __post_init__(self):
        if not self.identity:
            raise InvalidChallengeError("Challenge identity must not be empty")
        if not self.tag or _SEPARATOR in self.tag:
            raise InvalidChallengeError(f"Invalid challenge tag: {self.tag!r}")
        if isinstance(self.issued_at, bool) or not isinstance(self.issued_at, int) or self.issued_at < 0:
            raise InvalidChallengeError(f"Invalid issuance time: {self.issued_at!r}")

    @property
    def message(self) -> str:
        return f"{self.identity}{_SEPARATOR}{self.issued_at}{_SEPARATOR}{self.tag}"

    def __str__(self) -> str:
        return self.message

    @classmethod
    def parse(cls, message: str, expected_tag: str = DEFAULT_CHALLENGE_TAG) -> "Challenge":
        if not isinstance(message, str):
            raise InvalidChallengeError("Challenge message must be a string")
        parts = message.rsplit(_SEPARATOR, 2)
        if len(parts) != 3:
            raise InvalidChallengeError(f"Malformed challenge message: {message!r}")
        identity, raw_time, tag = parts
        if not (raw_time.isascii() and raw_time.isdigit()):
            raise InvalidChallengeError(f"Malformed issuance time in challenge: {raw_time!r}")
        if tag != expected_tag:
            raise InvalidChallengeError(f"Unexpected challenge tag: {tag!r}")
        return cls(identity=identity, issued_at=int(raw_time), tag=tag)

    def elapsed(self, now: int) -> int:
        return now - self.issued_at

    def is_fresh(self, now: int, window: int = DEFAULT_VALIDITY_WINDOW) -> bool:
        return self.elapsed(now) <= window

    def expires_at(self, window: int = DEFAULT_VALIDITY_WINDOW) -> int:
        return self.issued_at + window

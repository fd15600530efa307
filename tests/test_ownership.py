# tests/test_ownership.py
from dataclasses import replace

import pytest
import pytest_asyncio

from starledger.chain.blockchain import Blockchain
from starledger.config import LedgerConfig
from starledger.core.errors import (
    ChainIntegrityError,
    ExpiredChallengeError,
    InvalidChallengeError,
    InvalidSignatureError,
    ReplayedChallengeError,
)
from starledger.crypto.keys import IdentityKeyPair
from starledger.ownership.challenge import Challenge
from starledger.ownership.protocol import OwnershipProtocol
from starledger.ownership.signatures import Ed25519SignatureVerifier, SignatureVerifier

T0 = 1_700_000_000


class FakeClock:
    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now


class StubVerifier:
    def __init__(self, answer: bool = True):
        self.answer = answer
        self.calls = []

    def verify(self, message, identity, signature):
        self.calls.append((message, identity, signature))
        return self.answer


class AsyncStubVerifier(StubVerifier):
    async def verify(self, message, identity, signature):
        return super().verify(message, identity, signature)


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def chain(clock):
    chain = Blockchain(clock=clock)
    await chain.initialize()
    return chain


@pytest.fixture
def keys():
    return IdentityKeyPair.generate()


# ── challenge record

def test_challenge_wire_format():
    c = Challenge("addr1", 1234)
    assert c.message == "addr1:1234:starRegistry"
    assert str(c) == c.message


def test_challenge_parse_roundtrip_with_colons_in_identity():
    c = Challenge("did:key:z6Mk", T0)
    parsed = Challenge.parse(c.message)
    assert parsed == c
    assert parsed.identity == "did:key:z6Mk"


@pytest.mark.parametrize("message", [
    "",
    "addr1",
    "addr1:1234",
    "addr1:12a4:starRegistry",
    "addr1:-5:starRegistry",
    "addr1:1234:otherTag",
    ":1234:starRegistry",
])
def test_challenge_parse_rejects_malformed(message):
    with pytest.raises(InvalidChallengeError):
        Challenge.parse(message)


def test_challenge_parse_custom_tag():
    assert Challenge.parse("a:1:myTag", expected_tag="myTag").tag == "myTag"


def test_challenge_freshness_boundary():
    c = Challenge("addr1", T0)
    assert c.is_fresh(T0 + 300)
    assert not c.is_fresh(T0 + 301)
    assert c.expires_at() == T0 + 300


# ── signatures

def test_ed25519_verifier_accepts_valid_signature(keys):
    message = Challenge(keys.identity, T0).message
    signature = keys.sign_challenge(message)
    verifier = Ed25519SignatureVerifier()
    assert isinstance(verifier, SignatureVerifier)
    assert verifier.verify(message, keys.identity, signature) is True


def test_ed25519_verifier_rejects_other_key(keys):
    other = IdentityKeyPair.generate()
    message = Challenge(keys.identity, T0).message
    signature = other.sign_challenge(message)
    assert Ed25519SignatureVerifier().verify(message, keys.identity, signature) is False


@pytest.mark.parametrize("identity,signature", [
    ("not a key", "AAAA"),
    ("AAAA", "AAAA"),
])
def test_ed25519_verifier_malformed_inputs_are_false(identity, signature):
    assert Ed25519SignatureVerifier().verify("x:1:starRegistry", identity, signature) is False


def test_keypair_private_roundtrip(keys):
    restored = IdentityKeyPair.from_private_b64url(keys.private_key_b64url())
    assert restored.identity == keys.identity
    public_only = IdentityKeyPair.from_public_b64url(keys.identity)
    assert public_only.can_sign is False
    with pytest.raises(ValueError):
        public_only.sign_challenge("x")


# ── submit gate

@pytest.mark.asyncio
async def test_request_challenge_uses_clock(chain, clock):
    protocol = OwnershipProtocol(chain, verifier=StubVerifier(), clock=clock)
    assert protocol.request_challenge("addr1").message == f"addr1:{T0}:starRegistry"


@pytest.mark.asyncio
async def test_submit_with_real_signature(chain, clock, keys):
    protocol = OwnershipProtocol(chain, clock=clock)
    message = protocol.request_challenge(keys.identity).message
    signature = keys.sign_challenge(message)

    clock.now += 299
    block = await protocol.submit(keys.identity, message, signature, {"star": "Polaris"})

    assert block.height == 1
    assert await block.get_data() == {
        "address": keys.identity,
        "message": message,
        "signature": signature,
        "star": {"star": "Polaris"},
    }


@pytest.mark.asyncio
async def test_submit_expired_challenge(chain, clock):
    verifier = StubVerifier(True)
    protocol = OwnershipProtocol(chain, verifier=verifier, clock=clock)
    message = protocol.request_challenge("addr1").message

    clock.now += 301
    with pytest.raises(ExpiredChallengeError) as excinfo:
        await protocol.submit("addr1", message, "sig", {"star": "x"})

    assert excinfo.value.elapsed == 301
    assert verifier.calls == []  # expiry is checked before the signature
    assert chain.height == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("delay", [0, 299, 300])
async def test_submit_within_window_is_accepted(chain, clock, keys, delay):
    protocol = OwnershipProtocol(chain, clock=clock)
    message = protocol.request_challenge(keys.identity).message
    signature = keys.sign_challenge(message)
    clock.now += delay
    block = await protocol.submit(keys.identity, message, signature, {"star": "x"})
    assert block.height == 1


@pytest.mark.asyncio
async def test_submit_seeds_genesis_on_empty_chain(clock):
    chain = Blockchain(clock=clock)
    protocol = OwnershipProtocol(chain, verifier=StubVerifier(True), clock=clock)
    message = protocol.request_challenge("addr1").message

    block = await protocol.submit("addr1", message, "sig", {"star": "Polaris"})

    assert block.height == 1
    assert block.previous_block_hash == chain.blocks[0].hash
    records = await chain.get_records_by_identity("addr1")
    assert len(records) == 1
    assert records[0]["star"] == {"star": "Polaris"}


@pytest.mark.asyncio
async def test_rejected_submit_leaves_empty_chain_untouched(clock):
    chain = Blockchain(clock=clock)
    protocol = OwnershipProtocol(chain, verifier=StubVerifier(False), clock=clock)
    message = protocol.request_challenge("addr1").message

    with pytest.raises(InvalidSignatureError):
        await protocol.submit("addr1", message, "sig", {"star": "x"})
    assert chain.height == -1


@pytest.mark.asyncio
async def test_submit_invalid_signature(chain, clock):
    verifier = StubVerifier(False)
    protocol = OwnershipProtocol(chain, verifier=verifier, clock=clock)
    message = protocol.request_challenge("addr1").message

    with pytest.raises(InvalidSignatureError):
        await protocol.submit("addr1", message, "bad-sig", {"star": "x"})

    assert verifier.calls == [(message, "addr1", "bad-sig")]
    assert chain.height == 0


@pytest.mark.asyncio
async def test_submit_supports_async_verifier(chain, clock):
    protocol = OwnershipProtocol(chain, verifier=AsyncStubVerifier(True), clock=clock)
    message = protocol.request_challenge("addr1").message
    assert (await protocol.submit("addr1", message, "sig", 1)).height == 1

    protocol.verifier = AsyncStubVerifier(False)
    with pytest.raises(InvalidSignatureError):
        await protocol.submit("addr1", message, "sig", 1)


@pytest.mark.asyncio
async def test_submit_challenge_for_other_identity(chain, clock):
    protocol = OwnershipProtocol(chain, verifier=StubVerifier(True), clock=clock)
    message = protocol.request_challenge("addr1").message
    with pytest.raises(InvalidChallengeError):
        await protocol.submit("addr2", message, "sig", {"star": "x"})


@pytest.mark.asyncio
async def test_replay_allowed_by_default(chain, clock):
    protocol = OwnershipProtocol(chain, verifier=StubVerifier(True), clock=clock)
    message = protocol.request_challenge("addr1").message
    await protocol.submit("addr1", message, "sig", {"star": "x"})
    await protocol.submit("addr1", message, "sig", {"star": "x"})
    assert chain.height == 2


@pytest.mark.asyncio
async def test_replay_rejected_when_enabled(chain, clock):
    config = LedgerConfig(reject_replayed_challenges=True)
    protocol = OwnershipProtocol(chain, verifier=StubVerifier(True), config=config, clock=clock)
    message = protocol.request_challenge("addr1").message

    await protocol.submit("addr1", message, "sig", {"star": "x"})
    with pytest.raises(ReplayedChallengeError):
        await protocol.submit("addr1", message, "sig", {"star": "x"})
    assert chain.height == 1

    # a fresh challenge is fine
    clock.now += 1
    fresh = protocol.request_challenge("addr1").message
    assert (await protocol.submit("addr1", fresh, "sig", {"star": "y"})).height == 2


@pytest.mark.asyncio
async def test_replay_reservation_released_on_failed_append(chain, clock):
    config = LedgerConfig(reject_replayed_challenges=True)
    protocol = OwnershipProtocol(chain, verifier=StubVerifier(True), config=config, clock=clock)
    message = protocol.request_challenge("addr1").message

    good = chain.blocks
    chain._blocks = (replace(good[0], hash="00" * 32),)
    with pytest.raises(ChainIntegrityError):
        await protocol.submit("addr1", message, "sig", {"star": "x"})

    chain._blocks = good
    assert (await protocol.submit("addr1", message, "sig", {"star": "x"})).height == 1

# starledger/registry.py
"""
Operations exposed to front-ends (CLI, HTTP). Every call is async and returns a
value or raises one of the typed errors in starledger.core.errors.
"""

from typing import Any, Callable, List, Optional

from starledger.chain.blockchain import Blockchain
from starledger.config import LedgerConfig
from starledger.core.types import Block
from starledger.ownership.protocol import OwnershipProtocol
from starledger.ownership.signatures import SignatureVerifier


class StarRegistry:
    """
    Owns one chain and the ownership gate in front of it.
    Chains are injected, so independent registries can coexist (e.g. in tests).
    The genesis block is seeded lazily on the first operation other than get_chain_height().
    """

    def __init__(
        self,
        chain: Optional[Blockchain] = None,
        verifier: Optional[SignatureVerifier] = None,
        config: Optional[LedgerConfig] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.config = config or LedgerConfig()
        self.chain = chain if chain is not None else Blockchain(clock=clock)
        self.ownership = OwnershipProtocol(self.chain, verifier=verifier, config=self.config, clock=clock)

    async def _ready(self) -> Blockchain:
        if self.chain.height == -1:
            await self.chain.initialize()
        return self.chain

    async def get_chain_height(self) -> int:
        """Current height, -1 while the chain is still empty."""
        return await self.chain.get_chain_height()

    async def request_ownership_challenge(self, identity: str) -> str:
        await self._ready()
        return self.ownership.request_challenge(identity).message

    async def submit_record(self, identity: str, challenge: str, signature: str, payload: Any) -> Block:
        await self._ready()
        return await self.ownership.submit(identity, challenge, signature, payload)

    async def get_block_by_hash(self, block_hash: str) -> Optional[Block]:
        chain = await self._ready()
        return await chain.get_block_by_hash(block_hash)

    async def get_block_by_height(self, height: int) -> Optional[Block]:
        chain = await self._ready()
        return await chain.get_block_by_height(height)

    async def get_records_by_identity(self, identity: str) -> List[Any]:
        chain = await self._ready()
        return await chain.get_records_by_identity(identity)

    async def validate_chain(self) -> List[str]:
        chain = await self._ready()
        return await chain.validate_chain()

    def close(self) -> None:
        self.chain.close()

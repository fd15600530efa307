# starledger/chain/blockchain.py
import asyncio
import logging
import time
from dataclasses import replace
from typing import Any, Callable, List, Optional, Tuple, Union

from starledger.core.errors import BlockDataError, ChainIntegrityError, TamperedBlockError
from starledger.core.types import GENESIS_PAYLOAD, Block
from starledger.storage import StorageBackend, create_storage

logger = logging.getLogger(__name__)


def unix_now() -> int:
    return int(time.time())


class Blockchain:
    """
    Single-writer, append-only chain of sealed blocks held in memory.

    Blocks live in an immutable tuple. An append stages `blocks + (sealed,)`,
    validates the staged tuple and only then swaps the reference, so readers
    always see a whole chain and a failed validation leaves nothing behind.
    Mutations are serialized by one asyncio.Lock.

    An optional storage backend mirrors committed blocks and is replayed on construction.
    """

    def __init__(
        self,
        storage: Optional[Union[StorageBackend, str]] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self._blocks: Tuple[Block, ...] = ()
        self._lock = asyncio.Lock()
        self._clock = clock or unix_now

        # Plain path or URI → backend; empty string → in-memory only
        if isinstance(storage, str):
            storage = create_storage(storage) if storage.strip() else None
        self.storage: Optional[StorageBackend] = storage

        if self.storage is not None:
            self._load_from_storage()

    def _load_from_storage(self) -> None:
        loaded = self.storage.load_blocks()
        for index, block in enumerate(loaded):
            if block.height != index or block.hash != block.compute_hash():
                raise TamperedBlockError(block.height, f"Persisted block {block.height} is not valid.")
        self._blocks = tuple(loaded)
        if loaded:
            logger.info("Loaded %d blocks from storage (height %d)", len(loaded), self.height)

    # ── state

    @property
    def blocks(self) -> Tuple[Block, ...]:
        """Consistent snapshot of the chain."""
        return self._blocks

    @property
    def height(self) -> int:
        return len(self._blocks) - 1

    @property
    def last_hash(self) -> Optional[str]:
        blocks = self._blocks
        return blocks[-1].hash if blocks else None

    def __len__(self) -> int:
        return len(self._blocks)

    async def get_chain_height(self) -> int:
        return self.height

    # ── writes

    async def initialize(self) -> Optional[Block]:
        """Seed the genesis block if the chain is empty. Returns it, or None when already seeded."""
        async with self._lock:
            if self._blocks:
                return None
            return await self._append_locked(Block.from_payload(GENESIS_PAYLOAD))

    async def append(self, block: Block) -> Block:
        """
        Seal `block` onto the tip and return the sealed copy.
        On an empty chain the block becomes genesis.
        Raises ChainIntegrityError (chain unchanged) if post-append validation fails.
        """
        if block.is_sealed:
            raise ValueError("Cannot append an already sealed block")
        async with self._lock:
            return await self._append_locked(block)

    async def _append_locked(self, block: Block) -> Block:
        current = self._blocks

        if not current:
            staged_block = replace(block, height=0, time=self._clock(), previous_block_hash=None)
        else:
            prev = current[-1]
            staged_block = replace(
                block,
                height=prev.height + 1,
                time=self._clock(),
                previous_block_hash=prev.hash,
            )
        sealed = replace(staged_block, hash=staged_block.compute_hash())
        staged = current + (sealed,)

        if sealed.height > 0:
            errors = await self._validate_blocks(staged)
            if errors:
                logger.warning("Rejected block %d: chain validation failed: %s", sealed.height, errors)
                raise ChainIntegrityError(errors)

        self._blocks = staged
        if sealed.height == 0:
            logger.info("Genesis block created: %s", sealed.hash)
        else:
            logger.info("Block %d committed: %s", sealed.height, sealed.hash)

        if self.storage is not None:
            try:
                self.storage.append(sealed)
            except Exception as e:
                logger.warning("Failed to persist block %d: %s", sealed.height, e)

        return sealed

    # ── validation

    async def validate_chain(self) -> List[str]:
        """
        Validate every block in height order. Returns one "Block <height> is not valid."
        per failing block; an empty list means the chain is intact. Never raises.
        """
        return await self._validate_blocks(self._blocks)

    @staticmethod
    async def _validate_blocks(blocks: Tuple[Block, ...]) -> List[str]:
        errors = []
        for block in blocks:
            if not await block.validate():
                errors.append(f"Block {block.height} is not valid.")
        return errors

    # ── queries

    async def get_block_by_hash(self, block_hash: str) -> Optional[Block]:
        for block in self._blocks:
            if block.hash == block_hash:
                return block
        return None

    async def get_block_by_height(self, height: int) -> Optional[Block]:
        blocks = self._blocks
        if isinstance(height, bool) or not isinstance(height, int):
            return None
        if 0 <= height < len(blocks) and blocks[height].height == height:
            return blocks[height]
        # Fall back to a scan in case the tuple was tampered with
        for block in blocks:
            if block.height == height:
                return block
        return None

    async def get_records_by_identity(self, identity: str) -> List[Any]:
        """
        Decoded payloads whose `address` equals `identity`, in chain order.
        Blocks that cannot be decoded (genesis included) are skipped.
        """
        blocks = self._blocks
        results = await asyncio.gather(
            *(block.get_data() for block in blocks),
            return_exceptions=True,
        )
        records = []
        for result in results:
            if isinstance(result, BlockDataError):
                continue
            if isinstance(result, BaseException):
                raise result
            if isinstance(result, dict) and result.get("address") == identity:
                records.append(result)
        return records

    def close(self) -> None:
        """Release the storage backend, if any."""
        if self.storage is not None:
            self.storage.close()
            self.storage = None

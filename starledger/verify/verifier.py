# starledger/verify/verifier.py
from typing import List, Optional, Sequence
from dataclasses import dataclass, field

from starledger.core.encoding import decode_body
from starledger.core.errors import ChainIntegrityError, DecodeError, TamperedBlockError
from starledger.core.types import GENESIS_PAYLOAD, Block
from starledger.storage import StorageBackend


@dataclass
class VerificationFailure:
    index: int
    message: str
    category: str = "general"  # "tampered", "sequence", "genesis", "hash_chain", "storage"


@dataclass
class VerificationResult:
    is_valid: bool
    message: str = ""
    failures: List[VerificationFailure] = field(default_factory=list)

    @property
    def first_failure(self) -> Optional[VerificationFailure]:
        return self.failures[0] if self.failures else None

    def raise_for_failures(self) -> None:
        """Raise TamperedBlockError for a digest mismatch, ChainIntegrityError for anything else."""
        if self.is_valid:
            return
        for f in self.failures:
            if f.category == "tampered":
                raise TamperedBlockError(f.index)
        raise ChainIntegrityError([f"[{f.index}] {f.category}: {f.message}" for f in self.failures])

    def __bool__(self):
        return self.is_valid

    def __str__(self):
        if self.is_valid:
            return "Chain is valid ✓"
        lines = [f"Verification FAILED ({len(self.failures)} issues):"]
        for f in self.failures:
            lines.append(f"  • [{f.index}] {f.category}: {f.message}")
        return "\n".join(lines)


class ChainVerifier:
    """
    Offline auditor for a chain snapshot or a persisted chain.

    Goes further than Blockchain.validate_chain(): besides each block's digest it checks
    heights, the genesis shape and previousBlockHash links, and categorizes every failure.
    """

    def verify(self, chain: Sequence[Block]) -> VerificationResult:
        if not chain:
            return VerificationResult(True, "Empty chain is valid")

        result = VerificationResult(True)

        def fail(index: int, message: str, category: str) -> None:
            result.failures.append(VerificationFailure(index, message, category))
            result.is_valid = False

        # 1. Genesis shape
        genesis = chain[0]
        if genesis.previous_block_hash is not None:
            fail(0, "Genesis block must not reference a previous block", "genesis")
        try:
            if decode_body(genesis.body) != GENESIS_PAYLOAD:
                fail(0, "Genesis block does not hold the sentinel payload", "genesis")
        except DecodeError as e:
            fail(0, str(e), "genesis")

        for i, block in enumerate(chain):
            # 2. Height sequence
            if block.height != i:
                fail(i, f"Height mismatch: expected {i}, got {block.height}", "sequence")

            # 3. Per-block digest
            try:
                recomputed = block.compute_hash()
            except (TypeError, ValueError) as e:
                fail(i, f"Block content cannot be hashed: {e}", "tampered")
                continue
            if block.hash != recomputed:
                fail(i, "Stored hash does not match recomputed hash", "tampered")

            # 4. Links
            if i > 0 and block.previous_block_hash != chain[i - 1].hash:
                fail(i, "previousBlockHash does not match previous block hash", "hash_chain")

        result.message = "Valid chain" if result.is_valid else f"Failed with {len(result.failures)} issues"
        return result

    def verify_from_storage(self, storage: StorageBackend) -> VerificationResult:
        """
        Load blocks from persistent storage and verify the chain.
        Load failures are reported as a single "storage" failure.
        """
        try:
            chain = storage.load_blocks()
        except Exception as e:
            return VerificationResult(
                False,
                f"Failed to load chain from storage: {str(e)}",
                [VerificationFailure(-1, str(e), "storage")]
            )

        return self.verify(chain)

"""Batch aggregator for anonymity-set bookkeeping.

Consecutive depositor identities are grouped into a bounded batch. When the
batch reaches ``batch_size`` it is committed: its digest is recorded, the
batch is cleared and a decoy notification may be requested.

Decoy policy:
    The decoy fires when ``timestamp_entropy(now) % decoy_modulus == 0``.
    The entropy source is the public block time, so any observer can predict
    it. It is a placeholder and provides no unlinkability.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Set

from mpool.exceptions import DuplicateBatchError, EmptyBatchError
from mpool.utils.hash import compute_batch_digest

logger = logging.getLogger(__name__)


def timestamp_entropy(timestamp: int) -> int:
    """
    Weak pseudo-entropy derived from the public block time.

    Predictable by anyone; do not rely on it for unlinkability.
    """
    return timestamp


@dataclass(frozen=True)
class BatchCommit:
    """Outcome of a successful batch commit."""

    digest: bytes
    size: int
    timestamp: int
    decoy: bool


class BatchAggregator:
    """Collects depositor identities and commits them in fixed-size groups."""

    def __init__(self, batch_size: int, decoy_modulus: int = 3):
        if batch_size < 1:
            raise ValueError("Batch size must be at least 1")
        if decoy_modulus < 1:
            raise ValueError("Decoy modulus must be at least 1")

        self.batch_size = batch_size
        self.decoy_modulus = decoy_modulus
        self.pending: List[bytes] = []
        self.processed: Set[bytes] = set()

    @property
    def size(self) -> int:
        """Number of identities waiting in the current batch."""
        return len(self.pending)

    def append(self, identity: bytes, now: int) -> Optional[BatchCommit]:
        """
        Add an identity to the current batch.

        Returns:
            BatchCommit if the batch reached its threshold, otherwise None
        """
        self.pending.append(identity)
        if len(self.pending) >= self.batch_size:
            return self.commit(now)
        return None

    def commit(self, now: int) -> BatchCommit:
        """
        Commit the current batch and clear it.

        Raises:
            EmptyBatchError: If no identities are pending
            DuplicateBatchError: If this exact digest was committed before
        """
        if not self.pending:
            raise EmptyBatchError()

        digest = compute_batch_digest(self.pending)
        if digest in self.processed:
            raise DuplicateBatchError(f"Batch {digest.hex()[:16]}... already processed")

        self.processed.add(digest)
        size = len(self.pending)
        self.pending = []

        decoy = timestamp_entropy(now) % self.decoy_modulus == 0
        logger.info(f"Committed batch {digest.hex()[:16]}... of {size} deposits (decoy={decoy})")

        return BatchCommit(digest=digest, size=size, timestamp=now, decoy=decoy)

    def is_processed(self, digest: bytes) -> bool:
        """Check whether a batch digest was already committed."""
        return digest in self.processed

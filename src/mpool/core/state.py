"""Mutable state owned by a single pool instance."""

from dataclasses import dataclass

from mpool.core.batch import BatchAggregator
from mpool.core.deposits import DepositRecordStore
from mpool.core.memo import MemoStore
from mpool.core.nullifier import NullifierRegistry
from mpool.core.relayer import RelayerRegistry


@dataclass
class PoolState:
    """All registries and stores of one pool."""

    nullifiers: NullifierRegistry
    deposits: DepositRecordStore
    batch: BatchAggregator
    relayers: RelayerRegistry
    memos: MemoStore

    @classmethod
    def create(cls, withdrawal_delay: int, batch_size: int, decoy_modulus: int) -> "PoolState":
        """Create empty state for a new pool."""
        return cls(
            nullifiers=NullifierRegistry(),
            deposits=DepositRecordStore(withdrawal_delay),
            batch=BatchAggregator(batch_size, decoy_modulus),
            relayers=RelayerRegistry(),
            memos=MemoStore(),
        )

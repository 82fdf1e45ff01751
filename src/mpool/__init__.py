"""Main package initialization."""

__version__ = "0.1.0"
__author__ = "Merkle Pool Team"
__description__ = "Fixed-denomination Merkle privacy pool with relayers and batching"

from .core.merkle_tree import MerkleTree, verify_proof
from .core.pool import MerklePool, DepositReceipt, WithdrawalReceipt
from .core.substrate import Substrate
from .core.asset import AssetTransfer, InMemoryAsset
from .config import PoolSettings

__all__ = [
    "MerkleTree",
    "verify_proof",
    "MerklePool",
    "DepositReceipt",
    "WithdrawalReceipt",
    "Substrate",
    "AssetTransfer",
    "InMemoryAsset",
    "PoolSettings",
]

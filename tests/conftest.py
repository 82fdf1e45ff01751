"""Pytest configuration and fixtures."""

import pytest
import sys
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from mpool.config import PoolSettings
from mpool.core.asset import InMemoryAsset
from mpool.core.merkle_tree import MerkleTree
from mpool.core.pool import MerklePool
from mpool.core.substrate import Substrate
from mpool.utils.hash import compute_leaf, keccak256

ETHER = 10**18
DEPOSIT_AMOUNT = ETHER
RELAYER_FEE = ETHER // 1000
DAY = 24 * 60 * 60
START_TIME = 1_700_000_000
NUM_USERS = 8


def make_address(label: str) -> bytes:
    """Deterministic 20-byte address for a test actor."""
    return keccak256(b"account:", label)[12:]


def make_nullifier(i: int) -> bytes:
    """Nullifier laid out like encodeBytes32String('nullifier<i>')."""
    return f"nullifier{i}".encode().ljust(32, b"\x00")


@pytest.fixture
def settings():
    """Pool constants used across the suite."""
    return PoolSettings(
        _env_file=None,
        deposit_amount=DEPOSIT_AMOUNT,
        relayer_fee=RELAYER_FEE,
        withdrawal_delay=DAY,
        batch_size=5,
        decoy_modulus=3,
    )


@pytest.fixture
def users():
    return [make_address(f"user{i}") for i in range(NUM_USERS)]


@pytest.fixture
def relayer():
    return make_address("relayer")


@pytest.fixture
def credentials(users):
    """(nullifier, recipient) pairs committed in the tree, one per user."""
    return [(make_nullifier(i), user) for i, user in enumerate(users)]


@pytest.fixture
def merkle_tree(credentials):
    """Off-chain tree over all credentials."""
    return MerkleTree([compute_leaf(n, r) for n, r in credentials])


@pytest.fixture
def substrate(users, relayer):
    """Substrate with a pinned clock and funded accounts."""
    chain = Substrate(timestamp=START_TIME)
    for user in users:
        chain.mint(user, 10 * ETHER)
    chain.mint(relayer, ETHER)
    return chain


@pytest.fixture
def asset(users):
    return InMemoryAsset("JoCoin Token", "JO")


@pytest.fixture
def pool(merkle_tree, asset, substrate, settings, users):
    """Pool over the credential tree with every user funded and approved."""
    merkle_pool = MerklePool(merkle_tree.root, asset, substrate, settings)
    for user in users:
        asset.mint(user, 10 * DEPOSIT_AMOUNT)
        asset.approve(user, merkle_pool.address, 10 * DEPOSIT_AMOUNT)
    return merkle_pool


@pytest.fixture
def proof_for(merkle_tree):
    """Return the Merkle proof for a (nullifier, recipient) pair."""

    def _proof(nullifier: bytes, recipient: bytes):
        return merkle_tree.get_proof(compute_leaf(nullifier, recipient))

    return _proof

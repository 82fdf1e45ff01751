#!/usr/bin/env python3
"""
Quick start guide for the Merkle pool.

Run this to see a complete deposit and relayer withdrawal.
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from mpool import InMemoryAsset, MerklePool, MerkleTree, PoolSettings, Substrate
from mpool.crypto import MemoCipher
from mpool.utils.encoding import bytes_to_hex
from mpool.utils.hash import compute_leaf, keccak256

ETHER = 10**18


def account(label: str) -> bytes:
    return keccak256(b"account:", label)[12:]


def main():
    """Run a simple example of the Merkle pool."""

    print("=" * 70)
    print("MERKLE POOL QUICK START EXAMPLE")
    print("=" * 70)
    print()

    alice, bob, relayer = account("alice"), account("bob"), account("relayer")

    # Step 1: Commit credentials off-chain
    print("Step 1: Build the credential tree")
    print("-" * 70)
    credentials = [
        (b"alice-secret".ljust(32, b"\x00"), alice),
        (b"bob-secret".ljust(32, b"\x00"), bob),
    ]
    tree = MerkleTree([compute_leaf(n, r) for n, r in credentials])
    print(f"✓ Root: {bytes_to_hex(tree.root)}")
    print()

    # Step 2: Create the pool
    print("Step 2: Create the pool")
    print("-" * 70)
    substrate = Substrate(timestamp=1_700_000_000)
    for address in (alice, bob, relayer):
        substrate.mint(address, 10 * ETHER)
    settings = PoolSettings(_env_file=None)
    pool = MerklePool(tree.root, InMemoryAsset("Pool Token", "POOL"), substrate, settings)
    print(f"✓ {pool}")
    print()

    # Step 3: Deposits
    print("Step 3: Alice deposits with a sealed memo, Bob deposits plainly")
    print("-" * 70)
    bob_private, bob_public = MemoCipher.generate_keypair()
    memo = MemoCipher.seal(bob_public, b"the second leaf is yours")
    receipt = pool.deposit_with_memo(alice, memo, pool.DEPOSIT_AMOUNT)
    pool.deposit(bob, pool.DEPOSIT_AMOUNT)
    print(f"✓ Memo key: {bytes_to_hex(receipt.memo_key)}")
    print(f"✓ Pending batch: {pool.batch_size()}")
    print(f"✓ Bob reads: {MemoCipher.open(bob_private, pool.get_memo(receipt.memo_key)).decode()}")
    print()

    # Step 4: Wait and withdraw
    print("Step 4: Bob withdraws through a relayer after the delay")
    print("-" * 70)
    pool.register_relayer(relayer)
    substrate.advance(pool.WITHDRAWAL_DELAY)

    nullifier, recipient = credentials[1]
    proof = tree.get_proof(compute_leaf(nullifier, recipient))
    withdrawal = pool.withdraw_via_relayer(bob, nullifier, proof, recipient, relayer)
    print(f"✓ Recipient received {withdrawal.amount / ETHER} ETH")
    print(f"✓ Relayer earned {withdrawal.fee / ETHER} ETH")
    print()

    # Step 5: State
    print("Step 5: Pool state")
    print("-" * 70)
    for key, value in pool.get_state().to_dict().items():
        print(f"  {key}: {value}")
    print()

    print("=" * 70)
    print("Done")
    print("=" * 70)


if __name__ == "__main__":
    main()

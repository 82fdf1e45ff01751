"""Merkle proof verification against the pool's commitment root.

The pool only ever verifies proofs. ``MerkleTree`` is the matching off-chain
builder used by depositors (and by tests) to produce the root handed to the
pool at construction and the per-leaf proofs submitted at withdrawal.

Tree Structure:
    - Leaves: keccak256(nullifier || recipient)
    - Hashing: keccak256(min(a, b) || max(a, b)) (sorted pairs)
    - Odd node at a level: promoted to the next level unchanged
"""

from typing import Dict, List, Sequence

from mpool.utils.hash import hash_pair
from mpool.utils.encoding import BYTES32_SIZE
from mpool.exceptions import InvalidLeafError, MerkleTreeError


def verify_proof(proof: Sequence[bytes], root: bytes, leaf: bytes) -> bool:
    """
    Recompute the root from a leaf and its sibling path.

    Pure function. An empty proof reduces to ``leaf == root``; callers that
    must reject empty proofs do so before calling.

    Args:
        proof: Sibling hashes ordered from the leaf upwards
        root: Expected root
        leaf: Leaf being proved

    Returns:
        bool: True if the path leads to ``root``
    """
    try:
        current = leaf
        for sibling in proof:
            current = hash_pair(current, sibling)
        return current == root
    except (ValueError, TypeError):
        return False


class MerkleTree:
    """
    Sorted-pair Merkle tree built from a fixed list of leaves.

    Compatible with merkletreejs ``{ sortPairs: true }`` over keccak256.
    """

    def __init__(self, leaves: Sequence[bytes]):
        """
        Build all levels of the tree.

        Args:
            leaves: 32-byte leaf digests, in insertion order

        Raises:
            MerkleTreeError: If there are no leaves
            ValueError: If a leaf is not 32 bytes
        """
        if not leaves:
            raise MerkleTreeError("Cannot build a tree without leaves")

        for leaf in leaves:
            if not isinstance(leaf, bytes) or len(leaf) != BYTES32_SIZE:
                raise ValueError("Leaves must be 32 bytes")

        self.leaves: List[bytes] = list(leaves)
        self.layers: List[List[bytes]] = self._build_layers(self.leaves)

        # First occurrence wins for duplicate leaves
        self._index: Dict[bytes, int] = {}
        for i, leaf in enumerate(self.leaves):
            self._index.setdefault(leaf, i)

    @staticmethod
    def _build_layers(leaves: List[bytes]) -> List[List[bytes]]:
        layers = [leaves]
        while len(layers[-1]) > 1:
            current = layers[-1]
            parents = []
            for i in range(0, len(current), 2):
                if i + 1 < len(current):
                    parents.append(hash_pair(current[i], current[i + 1]))
                else:
                    parents.append(current[i])
            layers.append(parents)
        return layers

    @property
    def root(self) -> bytes:
        """Get the Merkle root."""
        return self.layers[-1][0]

    def get_proof_by_index(self, index: int) -> List[bytes]:
        """
        Return the sibling path for the leaf at ``index``.

        Levels where the node has no sibling contribute nothing, so a proof
        may be shorter than the tree depth.

        Raises:
            InvalidLeafError: If the index is out of range
        """
        if index < 0 or index >= len(self.leaves):
            raise InvalidLeafError(f"Invalid leaf index: {index}")

        proof = []
        position = index
        for layer in self.layers[:-1]:
            sibling = position ^ 1
            if sibling < len(layer):
                proof.append(layer[sibling])
            position >>= 1
        return proof

    def get_proof(self, leaf: bytes) -> List[bytes]:
        """
        Return the sibling path for a leaf value.

        Raises:
            InvalidLeafError: If the leaf is not in the tree
        """
        if leaf not in self._index:
            raise InvalidLeafError(f"Leaf not in tree: {leaf.hex()[:16]}...")
        return self.get_proof_by_index(self._index[leaf])

    def verify(self, leaf: bytes, proof: Sequence[bytes]) -> bool:
        """Verify a proof against this tree's root."""
        return verify_proof(proof, self.root, leaf)

    def __len__(self) -> int:
        """Return the number of leaves in the tree."""
        return len(self.leaves)

    def __repr__(self) -> str:
        return (
            f"MerkleTree(leaves={len(self.leaves)}, "
            f"depth={len(self.layers) - 1}, "
            f"root={self.root.hex()[:16]}...)"
        )

"""Cryptographic hash utilities.

All digests are keccak-256 over Solidity ``abi.encodePacked`` layouts so that
leaves, memo keys and batch digests match what off-chain tooling computes.
"""

from typing import Iterable, Union

from eth_utils import keccak

from mpool.utils.encoding import ADDRESS_SIZE, BYTES32_SIZE


def keccak256(*data: Union[bytes, str]) -> bytes:
    """
    Hash concatenated data with keccak-256.

    Args:
        *data: Multiple bytes or strings to concatenate and hash

    Returns:
        bytes: 32-byte digest
    """
    concatenated = b""
    for item in data:
        if isinstance(item, str):
            concatenated += item.encode("utf-8")
        else:
            concatenated += item
    return keccak(concatenated)


def hash_pair(a: bytes, b: bytes) -> bytes:
    """
    Compute the parent of two sibling nodes.

    The pair is sorted before concatenation, so the result does not depend
    on which side each node sits (OpenZeppelin / merkletreejs ``sortPairs``).
    """
    if not isinstance(a, bytes) or len(a) != BYTES32_SIZE:
        raise ValueError("Left hash must be 32 bytes")
    if not isinstance(b, bytes) or len(b) != BYTES32_SIZE:
        raise ValueError("Right hash must be 32 bytes")

    return keccak(a + b) if a <= b else keccak(b + a)


def compute_leaf(nullifier: bytes, recipient: bytes) -> bytes:
    """
    Compute leaf = keccak256(nullifier || recipient).

    Packed layout: 32-byte nullifier followed by the 20-byte address.
    """
    if len(nullifier) != BYTES32_SIZE:
        raise ValueError("Nullifier must be 32 bytes")
    if len(recipient) != ADDRESS_SIZE:
        raise ValueError("Recipient must be 20 bytes")
    return keccak(nullifier + recipient)


def compute_memo_key(identity: bytes, timestamp: int) -> bytes:
    """
    Compute memo key = keccak256(identity || uint256(timestamp)).
    """
    if len(identity) != ADDRESS_SIZE:
        raise ValueError("Identity must be 20 bytes")
    if timestamp < 0:
        raise ValueError("Timestamp must be non-negative")
    return keccak(identity + timestamp.to_bytes(32, "big"))


def compute_batch_digest(identities: Iterable[bytes]) -> bytes:
    """
    Compute the digest of an ordered batch of depositor identities.

    Packed ``address[]`` encoding pads every element to a full 32-byte word.
    """
    encoded = b"".join(identity.rjust(32, b"\x00") for identity in identities)
    return keccak(encoded)

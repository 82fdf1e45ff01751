"""Tests for hashing and encoding helpers."""

import pytest

from mpool.utils.encoding import (
    ZERO_ADDRESS,
    bytes_to_hex,
    hex_to_bytes,
    to_address,
    to_bytes32,
    to_checksum,
)
from mpool.utils.hash import (
    compute_batch_digest,
    compute_leaf,
    compute_memo_key,
    keccak256,
)


class TestKeccak:
    def test_empty_input_vector(self):
        assert keccak256(b"").hex() == (
            "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
        )

    def test_concatenates_parts(self):
        assert keccak256(b"ab", "cd") == keccak256(b"abcd")


class TestPackedLayouts:
    def test_leaf_is_nullifier_then_address(self):
        nullifier = b"\x11" * 32
        recipient = b"\x22" * 20
        assert compute_leaf(nullifier, recipient) == keccak256(nullifier + recipient)

    def test_leaf_rejects_bad_sizes(self):
        with pytest.raises(ValueError):
            compute_leaf(b"\x11" * 31, b"\x22" * 20)
        with pytest.raises(ValueError):
            compute_leaf(b"\x11" * 32, b"\x22" * 32)

    def test_memo_key_uses_uint256_timestamp(self):
        identity = b"\x33" * 20
        expected = keccak256(identity + (1234).to_bytes(32, "big"))
        assert compute_memo_key(identity, 1234) == expected

    def test_memo_key_differs_by_timestamp(self):
        identity = b"\x33" * 20
        assert compute_memo_key(identity, 1) != compute_memo_key(identity, 2)

    def test_batch_digest_pads_addresses(self):
        a, b = b"\x01" * 20, b"\x02" * 20
        expected = keccak256(b"\x00" * 12 + a + b"\x00" * 12 + b)
        assert compute_batch_digest([a, b]) == expected

    def test_batch_digest_is_order_sensitive(self):
        a, b = b"\x01" * 20, b"\x02" * 20
        assert compute_batch_digest([a, b]) != compute_batch_digest([b, a])


class TestEncoding:
    def test_hex_round_trip(self):
        assert hex_to_bytes(bytes_to_hex(b"\xde\xad")) == b"\xde\xad"

    def test_odd_hex_rejected(self):
        with pytest.raises(ValueError):
            hex_to_bytes("0xabc")

    def test_address_from_checksum_string(self):
        raw = bytes.fromhex("5aaeb6053f3e94c9b9a09f33669435e7ef1beaed")
        assert to_address("0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed") == raw
        assert to_checksum(raw) == "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"

    def test_address_rejects_garbage(self):
        with pytest.raises(ValueError):
            to_address("not-an-address")
        with pytest.raises(ValueError):
            to_address(b"\x00" * 19)

    def test_zero_address(self):
        assert to_address("0x" + "00" * 20) == ZERO_ADDRESS

    def test_bytes32_from_hex(self):
        assert to_bytes32("0x" + "ab" * 32) == b"\xab" * 32
        with pytest.raises(ValueError):
            to_bytes32("0x" + "ab" * 31)

"""Encoding and decoding utilities."""

from typing import Union

from eth_utils import is_address, to_canonical_address, to_checksum_address

ADDRESS_SIZE = 20
BYTES32_SIZE = 32

ZERO_ADDRESS = b"\x00" * ADDRESS_SIZE
ZERO_BYTES32 = b"\x00" * BYTES32_SIZE


def bytes_to_hex(data: bytes) -> str:
    """
    Convert bytes to hexadecimal string.

    Args:
        data: Bytes to convert

    Returns:
        str: Hexadecimal string with '0x' prefix
    """
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """
    Convert hexadecimal string to bytes.

    Args:
        hex_str: Hexadecimal string (with or without '0x' prefix)

    Returns:
        bytes: Decoded bytes

    Raises:
        ValueError: If hex string is invalid
    """
    if hex_str.startswith("0x") or hex_str.startswith("0X"):
        hex_str = hex_str[2:]

    if len(hex_str) % 2 != 0:
        raise ValueError("Hex string must have even number of characters")

    return bytes.fromhex(hex_str)


def to_address(value: Union[bytes, str]) -> bytes:
    """
    Canonicalize an address to its 20 raw bytes.

    Accepts raw bytes or a '0x' hex string (any checksum casing).

    Raises:
        ValueError: If the value is not an address
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != ADDRESS_SIZE:
            raise ValueError(f"Address must be {ADDRESS_SIZE} bytes, got {len(value)}")
        return bytes(value)
    if isinstance(value, str):
        if not is_address(value):
            raise ValueError(f"Not an address: {value!r}")
        return to_canonical_address(value)
    raise TypeError(f"Expected bytes or str, got {type(value)}")


def to_bytes32(value: Union[bytes, str]) -> bytes:
    """
    Coerce a 32-byte value given as raw bytes or hex.

    Raises:
        ValueError: If the value is not exactly 32 bytes
    """
    if isinstance(value, str):
        value = hex_to_bytes(value)
    elif isinstance(value, bytearray):
        value = bytes(value)
    elif not isinstance(value, bytes):
        raise TypeError(f"Expected bytes or str, got {type(value)}")

    if len(value) != BYTES32_SIZE:
        raise ValueError(f"Value must be {BYTES32_SIZE} bytes, got {len(value)}")
    return value


def to_checksum(address: bytes) -> str:
    """Render a canonical address as an EIP-55 checksummed string."""
    return to_checksum_address(address)


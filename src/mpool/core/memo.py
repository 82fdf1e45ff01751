"""Memo store for encrypted depositor-to-recipient payloads."""

from typing import Dict


class MemoStore:
    """
    Key-value store of opaque memo payloads.

    Keys are ``compute_memo_key(identity, timestamp)``; a repeated key
    overwrites the earlier payload.
    """

    def __init__(self):
        self._memos: Dict[bytes, bytes] = {}

    def store(self, key: bytes, payload: bytes) -> None:
        self._memos[key] = bytes(payload)

    def fetch(self, key: bytes) -> bytes:
        """Return the payload stored under ``key``, or ``b""`` if absent."""
        return self._memos.get(key, b"")

    def __contains__(self, key: bytes) -> bool:
        return key in self._memos

    def __len__(self) -> int:
        return len(self._memos)

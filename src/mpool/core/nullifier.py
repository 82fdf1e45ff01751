"""Nullifier registry: the sole guard against double withdrawal.

A nullifier moves from unset to spent exactly once and never back. The
settlement engine must check it before moving any funds and mark it before
any external transfer.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Set

from mpool.exceptions import AlreadySpentError
from mpool.utils.encoding import bytes_to_hex


@dataclass
class NullifierRecord:
    """
    Record of a spent nullifier.

    Tracks when and to whom the credential was redeemed.
    """

    nullifier: bytes
    spent_at: int  # Substrate timestamp of the withdrawal
    recipient: Optional[bytes] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "nullifier": bytes_to_hex(self.nullifier),
            "spent_at": self.spent_at,
            "recipient": bytes_to_hex(self.recipient) if self.recipient else None,
        }


class NullifierRegistry:
    """
    Maintains the set of spent nullifiers.

    Key properties:
      - Publicly observable (everyone checks this set)
      - Set grows over time (never shrinks)
    """

    def __init__(self):
        """Initialize empty registry."""
        self.nullifiers: Set[bytes] = set()
        self.records: Dict[bytes, NullifierRecord] = {}

    def is_spent(self, nullifier: bytes) -> bool:
        """Check if a nullifier has been spent."""
        return nullifier in self.nullifiers

    def mark_spent(
        self,
        nullifier: bytes,
        recipient: Optional[bytes] = None,
        timestamp: int = 0,
    ) -> NullifierRecord:
        """
        Mark a nullifier as spent.

        Args:
            nullifier: The 32-byte nullifier
            recipient: Withdrawal recipient, kept for the record
            timestamp: Time of the withdrawal

        Returns:
            NullifierRecord: The new spending record

        Raises:
            AlreadySpentError: If the nullifier was spent before
        """
        if self.is_spent(nullifier):
            raise AlreadySpentError(f"Nullifier {bytes_to_hex(nullifier)} already spent")

        self.nullifiers.add(nullifier)
        record = NullifierRecord(nullifier=nullifier, spent_at=timestamp, recipient=recipient)
        self.records[nullifier] = record
        return record

    def get_record(self, nullifier: bytes) -> Optional[NullifierRecord]:
        """Get spending record for a nullifier."""
        return self.records.get(nullifier)

    @property
    def size(self) -> int:
        """Get number of spent nullifiers."""
        return len(self.nullifiers)

    def __len__(self) -> int:
        return self.size

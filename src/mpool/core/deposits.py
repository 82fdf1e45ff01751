"""Deposit record store and withdrawal time-lock."""

from typing import Dict


class DepositRecordStore:
    """
    Maps each depositor identity to the timestamp of its latest deposit.

    Only the most recent deposit gates eligibility, so a new deposit by the
    same identity restarts its lock.
    """

    def __init__(self, withdrawal_delay: int):
        if withdrawal_delay < 0:
            raise ValueError("Withdrawal delay must be non-negative")
        self.withdrawal_delay = withdrawal_delay
        self._timestamps: Dict[bytes, int] = {}

    def record_deposit(self, identity: bytes, timestamp: int) -> None:
        """Store ``timestamp`` for ``identity``, overwriting any earlier one."""
        self._timestamps[identity] = timestamp

    def get_timestamp(self, identity: bytes) -> int:
        """Return the stored timestamp, or 0 if the identity never deposited."""
        return self._timestamps.get(identity, 0)

    def unlock_time(self, identity: bytes) -> int:
        """Earliest time at which ``identity`` may withdraw."""
        return self.get_timestamp(identity) + self.withdrawal_delay

    def is_eligible(self, identity: bytes, now: int) -> bool:
        """
        Check whether ``identity`` may withdraw at ``now``.

        The boundary is inclusive: ``now == stored + delay`` is eligible.
        """
        return now >= self.unlock_time(identity)

    def __contains__(self, identity: bytes) -> bool:
        return identity in self._timestamps

    def __len__(self) -> int:
        return len(self._timestamps)

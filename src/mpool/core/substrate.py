"""Execution substrate: the clock and native balances the pool runs on.

The substrate stands in for the host chain. It owns native value, provides
the block timestamp and lets tests attach receive hooks to addresses to model
recipient contract code (which may call back into the pool).
"""

import logging
import time
from typing import Callable, Dict, Optional

from mpool.utils.encoding import bytes_to_hex

logger = logging.getLogger(__name__)

ReceiveHook = Callable[[bytes, int], None]


class Substrate:
    """
    Clock plus native-value ledger.

    When ``timestamp`` is None the clock follows wall time; ``advance`` and
    ``set_time`` shift it in either mode.
    """

    def __init__(self, timestamp: Optional[int] = None):
        self._fixed = timestamp
        self._offset = 0
        self.balances: Dict[bytes, int] = {}
        self._hooks: Dict[bytes, ReceiveHook] = {}

    # Clock

    def now(self) -> int:
        """Current block timestamp in seconds."""
        base = self._fixed if self._fixed is not None else int(time.time())
        return base + self._offset

    def advance(self, seconds: int) -> int:
        """Move the clock forward and return the new time."""
        if seconds < 0:
            raise ValueError("Cannot move the clock backwards")
        self._offset += seconds
        return self.now()

    def set_time(self, timestamp: int) -> None:
        """Pin the clock to an absolute timestamp."""
        self._fixed = timestamp
        self._offset = 0

    # Native value

    def balance_of(self, address: bytes) -> int:
        return self.balances.get(address, 0)

    def mint(self, address: bytes, amount: int) -> None:
        """Credit native value out of thin air (test and genesis funding)."""
        if amount < 0:
            raise ValueError("Amount must be non-negative")
        self.balances[address] = self.balance_of(address) + amount

    def on_receive(self, address: bytes, hook: Optional[ReceiveHook]) -> None:
        """Attach (or with None, remove) code run when ``address`` receives value."""
        if hook is None:
            self._hooks.pop(address, None)
        else:
            self._hooks[address] = hook

    def send(self, sender: bytes, recipient: bytes, amount: int) -> bool:
        """
        Move native value and run the recipient's receive hook.

        Returns False, leaving balances as they were, if the sender lacks
        funds or the hook raises.
        """
        if amount < 0 or self.balance_of(sender) < amount:
            return False

        checkpoint = self.snapshot()
        self.balances[sender] = self.balance_of(sender) - amount
        self.balances[recipient] = self.balance_of(recipient) + amount

        hook = self._hooks.get(recipient)
        if hook is not None:
            try:
                hook(sender, amount)
            except Exception as e:
                logger.warning(f"Receive hook of {bytes_to_hex(recipient)} rejected value: {e}")
                self.restore(checkpoint)
                return False
        return True

    # Checkpoints

    def snapshot(self) -> Dict[bytes, int]:
        return dict(self.balances)

    def restore(self, snapshot: Dict[bytes, int]) -> None:
        self.balances = dict(snapshot)

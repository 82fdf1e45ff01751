"""Relayer registry."""

from typing import Dict

from mpool.exceptions import AlreadyRegisteredError
from mpool.utils.encoding import bytes_to_hex


class RelayerRegistry:
    """
    Addresses approved to submit withdrawals and collect the relayer fee.

    Approval is permanent; there is no unregistration.
    """

    def __init__(self):
        self._approved: Dict[bytes, bool] = {}

    def register(self, address: bytes) -> None:
        """
        Approve ``address`` as a relayer.

        Raises:
            AlreadyRegisteredError: If the address is already approved
        """
        if self.is_relayer(address):
            raise AlreadyRegisteredError(f"Relayer {bytes_to_hex(address)} already registered")
        self._approved[address] = True

    def is_relayer(self, address: bytes) -> bool:
        return self._approved.get(address, False)

    def __len__(self) -> int:
        return len(self._approved)

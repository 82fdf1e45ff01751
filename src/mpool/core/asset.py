"""Fungible asset collaborator.

The pool only relies on the ``AssetTransfer`` protocol (standard
transfer / transferFrom semantics). ``InMemoryAsset`` is a reference
token used by tests, examples and the API.
"""

import logging
from typing import Any, Dict, Optional, Protocol, Tuple, runtime_checkable

from mpool.utils.hash import keccak256

logger = logging.getLogger(__name__)


@runtime_checkable
class AssetTransfer(Protocol):
    """Transfer capability the pool needs from a fungible token."""

    address: bytes

    def transfer(self, sender: bytes, recipient: bytes, amount: int) -> bool:
        ...

    def transfer_from(self, spender: bytes, owner: bytes, recipient: bytes, amount: int) -> bool:
        ...


@runtime_checkable
class Snapshottable(Protocol):
    """Collaborators whose state can be reverted with the pool."""

    def snapshot(self) -> Any:
        ...

    def restore(self, snapshot: Any) -> None:
        ...


class InMemoryAsset:
    """Minimal fungible token with balances and allowances."""

    def __init__(self, name: str, symbol: str, address: Optional[bytes] = None):
        self.name = name
        self.symbol = symbol
        self.address = address or keccak256(b"asset:", symbol)[12:]
        self.balances: Dict[bytes, int] = {}
        self.allowances: Dict[Tuple[bytes, bytes], int] = {}

    def balance_of(self, owner: bytes) -> int:
        return self.balances.get(owner, 0)

    def allowance(self, owner: bytes, spender: bytes) -> int:
        return self.allowances.get((owner, spender), 0)

    def mint(self, recipient: bytes, amount: int) -> None:
        if amount < 0:
            raise ValueError("Amount must be non-negative")
        self.balances[recipient] = self.balance_of(recipient) + amount

    def approve(self, owner: bytes, spender: bytes, amount: int) -> bool:
        if amount < 0:
            return False
        self.allowances[(owner, spender)] = amount
        return True

    def transfer(self, sender: bytes, recipient: bytes, amount: int) -> bool:
        if amount < 0 or self.balance_of(sender) < amount:
            logger.warning(f"{self.symbol}: transfer of {amount} rejected, insufficient balance")
            return False
        self.balances[sender] = self.balance_of(sender) - amount
        self.balances[recipient] = self.balance_of(recipient) + amount
        return True

    def transfer_from(self, spender: bytes, owner: bytes, recipient: bytes, amount: int) -> bool:
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            logger.warning(f"{self.symbol}: transferFrom of {amount} exceeds allowance {allowed}")
            return False
        if not self.transfer(owner, recipient, amount):
            return False
        self.allowances[(owner, spender)] = allowed - amount
        return True

    def snapshot(self) -> Tuple[Dict[bytes, int], Dict[Tuple[bytes, bytes], int]]:
        return dict(self.balances), dict(self.allowances)

    def restore(self, snapshot: Tuple[Dict[bytes, int], Dict[Tuple[bytes, bytes], int]]) -> None:
        balances, allowances = snapshot
        self.balances = dict(balances)
        self.allowances = dict(allowances)

    def __repr__(self) -> str:
        return f"InMemoryAsset({self.symbol}, holders={len(self.balances)})"

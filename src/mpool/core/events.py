"""Notifications emitted by the pool.

Events raised inside an operation are buffered and only published once the
outermost operation commits; a reverted operation leaves no trace.
"""

import logging
from typing import Callable, List, Literal, Optional, Type, Union

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class PoolEvent(BaseModel):
    """Base notification."""

    kind: str
    timestamp: int = Field(..., description="Block timestamp")


class DepositEvent(PoolEvent):
    kind: Literal["Deposit"] = "Deposit"
    depositor: str
    amount: int
    asset: Optional[str] = Field(default=None, description="Token address, None for native value")


class BatchProcessedEvent(PoolEvent):
    kind: Literal["BatchProcessed"] = "BatchProcessed"
    batch_hash: str
    size: int


class WithdrawalEvent(PoolEvent):
    kind: Literal["Withdrawal"] = "Withdrawal"
    nullifier: str
    recipient: str
    amount: int


class DummyTransactionEvent(PoolEvent):
    """Decoy notification; carries no information."""

    kind: Literal["DummyTransaction"] = "DummyTransaction"


class MemoStoredEvent(PoolEvent):
    kind: Literal["MemoStored"] = "MemoStored"
    memo_key: str


class RelayerRegisteredEvent(PoolEvent):
    kind: Literal["RelayerRegistered"] = "RelayerRegistered"
    relayer: str


Subscriber = Callable[[PoolEvent], None]

EVENT_TYPES = {
    cls.model_fields["kind"].default: cls
    for cls in (
        DepositEvent,
        BatchProcessedEvent,
        WithdrawalEvent,
        DummyTransactionEvent,
        MemoStoredEvent,
        RelayerRegisteredEvent,
    )
}


class EventLog:
    """Ordered history of published events plus the pending buffer."""

    def __init__(self):
        self.events: List[PoolEvent] = []
        self._pending: List[PoolEvent] = []
        self._subscribers: List[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def emit(self, event: PoolEvent) -> None:
        """Buffer an event until the surrounding operation commits."""
        self._pending.append(event)

    def mark(self) -> int:
        return len(self._pending)

    def rollback(self, mark: int) -> None:
        """Discard events buffered after ``mark``."""
        del self._pending[mark:]

    def publish(self) -> None:
        """Move buffered events to the history and notify subscribers."""
        pending, self._pending = self._pending, []
        for event in pending:
            self.events.append(event)
            for subscriber in self._subscribers:
                try:
                    subscriber(event)
                except Exception as e:
                    # Observers never undo a committed operation
                    logger.warning(f"Event subscriber failed on {event.kind}: {e}", exc_info=True)

    def filter(self, kind: Union[str, Type[PoolEvent]]) -> List[PoolEvent]:
        """Return published events of one kind, by name or class."""
        if isinstance(kind, type):
            kind = kind.model_fields["kind"].default
        return [event for event in self.events if event.kind == kind]

    def __len__(self) -> int:
        return len(self.events)

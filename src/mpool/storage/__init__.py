"""Storage layer for persistent data."""

from mpool.storage.database import (
    DatabaseManager,
    EventRecord,
    WithdrawalRecord,
    EventRecorder,
    Base,
    get_db_manager,
    reset_db_manager,
)

__all__ = [
    "DatabaseManager",
    "EventRecord",
    "WithdrawalRecord",
    "EventRecorder",
    "Base",
    "get_db_manager",
    "reset_db_manager",
]

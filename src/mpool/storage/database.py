"""SQLAlchemy ORM models for persisting pool notifications."""

import json
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import BigInteger, Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from mpool.core.events import PoolEvent, WithdrawalEvent
from mpool.exceptions import StorageError

logger = logging.getLogger(__name__)

Base = declarative_base()


class EventRecord(Base):
    """Published pool notification."""
    __tablename__ = "events"

    id = Column(Integer, primary_key=True)
    event_type = Column(String(64), nullable=False, index=True)
    payload = Column(Text, nullable=False)  # JSON of the event model
    block_timestamp = Column(BigInteger, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return json.loads(self.payload)

    def __repr__(self) -> str:
        return f"<EventRecord({self.event_type} @ {self.block_timestamp})>"


class WithdrawalRecord(Base):
    """Settled withdrawal, one row per spent nullifier."""
    __tablename__ = "withdrawals"

    id = Column(Integer, primary_key=True)
    nullifier = Column(String(66), unique=True, nullable=False, index=True)
    recipient = Column(String(42), nullable=False, index=True)
    amount = Column(String(78), nullable=False)  # uint256 as decimal string
    block_timestamp = Column(BigInteger, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<WithdrawalRecord({self.nullifier[:10]}... -> {self.recipient})>"


class DatabaseManager:
    """Manages SQLAlchemy database connections and sessions."""

    def __init__(self, database_url: str = "sqlite:///mpool.db"):
        """
        Initialize database manager.

        Args:
            database_url: SQLAlchemy database URL
                         Default: SQLite in current directory
        """
        self.database_url = database_url
        self.engine = create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False} if "sqlite" in database_url else {},
        )
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_tables(self):
        """Create all tables in database."""
        Base.metadata.create_all(self.engine)

    def drop_tables(self):
        """Drop all tables (for testing)."""
        Base.metadata.drop_all(self.engine)

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()

    # Event operations
    def add_event(self, session: Session, event: PoolEvent, commit: bool = True) -> EventRecord:
        """Persist a published event."""
        record = EventRecord(
            event_type=event.kind,
            payload=event.model_dump_json(),
            block_timestamp=event.timestamp,
        )
        session.add(record)
        if commit:
            session.commit()
        return record

    def get_events(
        self, session: Session, event_type: Optional[str] = None, limit: int = 100
    ) -> List[EventRecord]:
        """Get events in publication order, optionally of one type."""
        query = session.query(EventRecord)
        if event_type:
            query = query.filter_by(event_type=event_type)
        return query.order_by(EventRecord.id.asc()).limit(limit).all()

    def count_events(self, session: Session, event_type: Optional[str] = None) -> int:
        """Count events, optionally of one type."""
        query = session.query(EventRecord)
        if event_type:
            query = query.filter_by(event_type=event_type)
        return query.count()

    # Withdrawal operations
    def add_withdrawal(
        self, session: Session, event: WithdrawalEvent, commit: bool = True
    ) -> WithdrawalRecord:
        """Persist a settled withdrawal."""
        record = WithdrawalRecord(
            nullifier=event.nullifier,
            recipient=event.recipient,
            amount=str(event.amount),
            block_timestamp=event.timestamp,
        )
        session.add(record)
        if commit:
            session.commit()
        return record

    def get_withdrawal(self, session: Session, nullifier: str) -> Optional[WithdrawalRecord]:
        """Get withdrawal by nullifier hex."""
        return session.query(WithdrawalRecord).filter_by(nullifier=nullifier.lower()).first()


class EventRecorder:
    """
    Event log subscriber writing every published event to the database.

    Usage:
        pool.events.subscribe(EventRecorder(db))
    """

    def __init__(self, db: DatabaseManager):
        self.db = db

    def __call__(self, event: PoolEvent) -> None:
        session = self.db.get_session()
        try:
            self.db.add_event(session, event, commit=False)
            if isinstance(event, WithdrawalEvent):
                self.db.add_withdrawal(session, event, commit=False)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError(f"Failed to persist {event.kind}: {e}")
        finally:
            session.close()


# Default database manager instance
_db_manager: Optional[DatabaseManager] = None


def get_db_manager(database_url: Optional[str] = None) -> DatabaseManager:
    """Get or create default database manager."""
    global _db_manager
    if _db_manager is None:
        if database_url is None:
            from mpool.config import get_settings

            database_url = get_settings().database_url
        _db_manager = DatabaseManager(database_url)
        _db_manager.create_tables()
        logger.info(f"Database ready at {database_url}")
    return _db_manager


def reset_db_manager():
    """Reset database manager (for testing)."""
    global _db_manager
    _db_manager = None

#!/usr/bin/env python3
"""
Database Reset Script
Drops and recreates the pool notification tables
"""

import sys
from pathlib import Path
from typing import Optional

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from mpool.config import get_settings
from mpool.storage import DatabaseManager


def reset_database(database_url: Optional[str] = None):
    """Reset the event and withdrawal tables."""
    database_url = database_url or get_settings().database_url
    print(f"🔄 Resetting database at {database_url}...")

    db = DatabaseManager(database_url)

    print("  ⚠️  Dropping all tables...")
    db.drop_tables()

    print("  ✨ Creating tables...")
    db.create_tables()

    session = db.get_session()
    try:
        print(f"\n✅ Database reset complete! ({db.count_events(session)} events stored)")
    finally:
        session.close()
        db.engine.dispose()


if __name__ == "__main__":
    try:
        reset_database(sys.argv[1] if len(sys.argv) > 1 else None)
    except KeyboardInterrupt:
        print("\n\n⚠️  Operation cancelled by user")
        sys.exit(1)
    except Exception as e:
        print(f"\n❌ Fatal error: {e}")
        sys.exit(1)

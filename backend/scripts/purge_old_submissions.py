#!/usr/bin/env python3
"""
Retention Purge Script
Deletes survey responses older than the retention horizon, outside the web process.

Usage:
    python -m scripts.purge_old_submissions [days]

Example:
    python -m scripts.purge_old_submissions 730
"""
import sys
import os

# Add the parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import Session
from survey.config import get_settings
from survey.database import SessionLocal, engine, init_db
from survey.models.db_models import AuditEventType
from survey.services.retention import RetentionService


def purge(retention_days: int) -> bool:
    """Run one purge and print the outcome."""
    # Ensure tables exist
    init_db(bind=engine)

    db: Session = SessionLocal()
    try:
        result = RetentionService(db).purge_older_than(
            retention_days=retention_days,
            client_ip="cli",
            event_type=AuditEventType.MANUAL_CLEANUP,
        )
        if result.deleted_count == 0:
            print(f"Nothing to purge before {result.cutoff.isoformat()}.")
        else:
            print(f"Purged {result.deleted_count} response(s) created before {result.cutoff.isoformat()}.")
        return True

    except Exception as e:
        print(f"Error purging responses: {e}")
        db.rollback()
        return False
    finally:
        db.close()


def main():
    if len(sys.argv) > 2:
        print(__doc__)
        sys.exit(1)

    retention_days = get_settings().retention_days
    if len(sys.argv) == 2:
        try:
            retention_days = int(sys.argv[1])
        except ValueError:
            print("Error: days must be an integer.")
            sys.exit(1)

    # Basic validation
    if retention_days < 1:
        print("Error: days must be at least 1.")
        sys.exit(1)

    success = purge(retention_days)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()

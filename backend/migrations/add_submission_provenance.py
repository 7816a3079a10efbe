"""
Migration: Add provenance and integrity columns to responses.

Databases created before duplicate detection only had the survey fields.
This adds:
1. ip_address, user_agent - request provenance
2. submission_hash - duplicate-detection fingerprint (backfilled)
3. consent_timestamp - when contact consent was given
and creates the audit_log table if missing.

Core principle: consent_contact = 0 => email IS NULL. Rows violating it are fixed here.
"""
from sqlalchemy import create_engine, inspect, text
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from survey.config import DEFAULT_DATABASE_URL
from survey.services.fingerprint import generate_submission_fingerprint

# Use same DB URL pattern as main app
DATABASE_URL = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)

NEW_COLUMNS = {
    "ip_address": "VARCHAR(64)",
    "user_agent": "VARCHAR(512)",
    "submission_hash": "VARCHAR(64)",
    "consent_timestamp": "TIMESTAMP",
}


def column_exists(conn, table_name: str, column_name: str) -> bool:
    """Check if a column exists on a table."""
    return column_name in {c["name"] for c in inspect(conn).get_columns(table_name)}


def run_migration(database_url: str = DATABASE_URL):
    """Add missing columns, backfill fingerprints, create audit_log."""
    engine = create_engine(database_url)

    with engine.begin() as conn:
        if not inspect(conn).has_table("responses"):
            print("responses table does not exist - nothing to migrate")
            return

        for column, ddl in NEW_COLUMNS.items():
            if column_exists(conn, "responses", column):
                print(f"responses.{column} already exists")
            else:
                conn.execute(text(f"ALTER TABLE responses ADD COLUMN {column} {ddl}"))
                print(f"Added responses.{column}")

        # Enforce the consent invariant on legacy rows
        fixed = conn.execute(text("""
            UPDATE responses SET email = NULL
            WHERE (consent_contact = 0 OR consent_contact IS NULL) AND email IS NOT NULL
        """)).rowcount
        print(f"Cleared email on {fixed} row(s) without consent")

        rows = conn.execute(text("""
            SELECT id, building, apartment, email, status FROM responses
            WHERE submission_hash IS NULL
        """)).fetchall()
        for row in rows:
            conn.execute(
                text("UPDATE responses SET submission_hash = :hash WHERE id = :id"),
                {
                    "hash": generate_submission_fingerprint(row.building, row.apartment, row.email, row.status),
                    "id": row.id,
                },
            )
        print(f"Backfilled submission_hash on {len(rows)} row(s)")

        if inspect(conn).has_table("audit_log"):
            print("audit_log table already exists")
        else:
            conn.execute(text("""
                CREATE TABLE audit_log (
                    id INTEGER PRIMARY KEY,
                    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    event_type VARCHAR(50) NOT NULL,
                    ip_address VARCHAR(64),
                    details JSON NOT NULL
                )
            """))
            conn.execute(text("CREATE INDEX ix_audit_log_created_at ON audit_log (created_at)"))
            conn.execute(text("CREATE INDEX ix_audit_log_event_type ON audit_log (event_type)"))
            print("Created audit_log table")

    print("Migration complete")


if __name__ == "__main__":
    run_migration()

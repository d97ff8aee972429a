"""
Migration: Add erasure audit log table.

Creates 1 new table:
1. erasure_audit_logs - one record per principal erasure invocation

Key design principles:
- principal_id has no foreign key so the record outlives the erasure
- performed_by references admin_profiles with no ON DELETE action;
  the erasure plan nulls it when that admin is erased
- The contact address is never stored
"""
from sqlalchemy import create_engine, text
import os

# Use same DB URL pattern as main app
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql://{os.getenv('USER', 'postgres')}@localhost:5432/oakline_admin"
)


def table_exists(conn, table_name: str) -> bool:
    """Check if a table exists in the database."""
    result = conn.execute(text("""
        SELECT EXISTS (
            SELECT FROM information_schema.tables
            WHERE table_name = :table_name
        )
    """), {"table_name": table_name})
    return result.fetchone()[0]


def run_migration():
    """Create the erasure audit log table."""
    engine = create_engine(DATABASE_URL)

    with engine.connect() as conn:
        if table_exists(conn, "erasure_audit_logs"):
            print("erasure_audit_logs table already exists")
        else:
            conn.execute(text("""
                CREATE TABLE erasure_audit_logs (
                    id VARCHAR(36) PRIMARY KEY,
                    principal_id VARCHAR(36),
                    kind VARCHAR(20),
                    overall_status VARCHAR(20) NOT NULL,
                    identity_removed BOOLEAN DEFAULT FALSE,
                    failed_steps JSONB DEFAULT '[]'::jsonb,
                    rows_affected INTEGER DEFAULT 0,
                    performed_by VARCHAR(36) REFERENCES admin_profiles(id),
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """))
            conn.execute(text("""
                CREATE INDEX idx_erasure_audit_logs_principal ON erasure_audit_logs(principal_id)
            """))
            conn.execute(text("""
                CREATE INDEX idx_erasure_audit_logs_created ON erasure_audit_logs(created_at)
            """))
            print("Created erasure_audit_logs table")

        conn.commit()
        print("\nErasure audit log migration completed successfully!")


if __name__ == "__main__":
    run_migration()

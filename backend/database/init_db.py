"""
Apply schema.sql to the configured database.

Run once before starting the API (safe to re-run, every statement is
idempotent):

    python -m backend.database.init_db

Pass --check to only report which tables exist.
"""

import os
import sys

# Ensure the backend module can be found
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..')))

from backend.database.db_connection import get_db

SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schema.sql")
TABLES = ["users", "events", "businesses"]


def apply_schema(conn) -> None:
    """Execute the schema file inside a single transaction."""
    with open(SCHEMA_PATH, encoding="utf-8") as fh:
        sql = fh.read()
    with conn:
        with conn.cursor() as cur:
            cur.execute(sql)


def missing_tables(conn) -> list:
    """Return the names of the expected tables that do not exist yet."""
    missing = []
    with conn.cursor() as cur:
        for table in TABLES:
            cur.execute("SELECT to_regclass(%s) AS found;", (table,))
            if cur.fetchone()["found"] is None:
                missing.append(table)
    return missing


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    conn = get_db()
    try:
        if "--check" not in argv:
            print("Applying schema...")
            apply_schema(conn)

        missing = missing_tables(conn)
        for table in TABLES:
            print(f" - {table}: {'MISSING' if table in missing else 'Found'}")
        return 1 if missing else 0
    finally:
        conn.close()


if __name__ == "__main__":
    sys.exit(main())

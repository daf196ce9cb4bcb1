"""
Add the automatic scheduling columns to the service_areas table.

Adds manual_schedule, days_to_complete and proxima_previsao when missing.

Usage:
    python migrations/add_scheduling_columns_to_service_areas.py [--database-url URL]

The script is idempotent and safe to run multiple times. It inspects the current
schema before attempting to alter the table.
"""

import argparse
import os
import sys

from dotenv import load_dotenv

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import OperationalError, ProgrammingError

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DEFAULT_SQLITE_PATH = os.path.join(ROOT_DIR, "instance", "zeladoria.sqlite")

TABLE_NAME = "service_areas"

# column name -> DDL type (with default where the model has one)
COLUMNS = {
    "manual_schedule": "BOOLEAN NOT NULL DEFAULT FALSE",
    "days_to_complete": "INTEGER",
    "proxima_previsao": "VARCHAR(10)",
}

# Load environment variables from a .env file if present
load_dotenv()


def normalize_sqlite_path(path: str) -> str:
    """Return a SQLAlchemy-friendly SQLite URL for the given path."""
    if not os.path.isabs(path):
        path = os.path.join(ROOT_DIR, path)
    return f"sqlite:///{path}"


def infer_database_url(cli_url: str = None) -> str:
    """Figure out which database to hit, honoring CLI and environment defaults."""
    candidates = [
        cli_url,
        os.environ.get("DATABASE_URL"),
        os.environ.get("SQLALCHEMY_DATABASE_URI"),
        os.environ.get("LOCAL_DATABASE_URL"),
    ]

    for value in candidates:
        if not value:
            continue

        value = value.strip()
        if value.startswith("postgres://"):
            # SQLAlchemy expects postgresql://
            return value.replace("postgres://", "postgresql://", 1)

        if value.startswith(("postgresql://", "sqlite://")):
            return value

        # Treat anything else as a filesystem path to a SQLite DB
        return normalize_sqlite_path(value)

    return normalize_sqlite_path(DEFAULT_SQLITE_PATH)


def existing_columns(engine, table_name: str) -> set:
    """Names of the columns currently on the table."""
    inspector = inspect(engine)
    return {col["name"] for col in inspector.get_columns(table_name)}


def migrate(database_url: str = None) -> bool:
    """Perform the migration, adding every missing scheduling column."""
    db_url = infer_database_url(database_url)
    print(f"Connecting to database: {db_url}")

    engine = create_engine(db_url)

    try:
        if not inspect(engine).has_table(TABLE_NAME):
            print(f"✗ Table '{TABLE_NAME}' does not exist. Create the schema first.")
            return False

        present = existing_columns(engine, TABLE_NAME)
        missing = [name for name in COLUMNS if name not in present]

        if not missing:
            print(f"✓ All scheduling columns already exist on '{TABLE_NAME}'. Nothing to do.")
            return True

        with engine.begin() as conn:
            for name in missing:
                print(f"Adding column '{name}' to '{TABLE_NAME}' table...")
                conn.execute(text(f"ALTER TABLE {TABLE_NAME} ADD COLUMN {name} {COLUMNS[name]}"))

        still_missing = [name for name in COLUMNS if name not in existing_columns(engine, TABLE_NAME)]
        if still_missing:
            print(f"✗ Columns not added: {', '.join(still_missing)}. Please verify manually.")
            return False

        print(f"✓ Successfully added {', '.join(missing)} to '{TABLE_NAME}'.")
        return True

    except (OperationalError, ProgrammingError) as exc:
        print(f"✗ Database error while adding columns: {exc}")
        return False
    finally:
        engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Add scheduling columns to service_areas table.")
    parser.add_argument(
        "--database-url",
        help="Override database URL (otherwise inferred from env or defaults).",
    )
    args = parser.parse_args()

    success = migrate(args.database_url)
    sys.exit(0 if success else 1)

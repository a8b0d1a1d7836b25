"""
Local-development schema bootstrap.

Creates the users/submissions tables straight from the ORM metadata. Deployed
environments use Alembic instead (see scripts/release.py).

Usage:
  python scripts/init_db.py
"""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.classroom.db import Store
from app.classroom.models import Base


def resolve_database_url(database_url: str | None = None) -> str:
    return (database_url or os.environ.get("DATABASE_URL") or "sqlite:///classroom.db").strip()


def create_schema(*, database_url: str | None = None) -> list[str]:
    """Create any missing tables (idempotent). Returns the table names now present."""
    db_url = resolve_database_url(database_url)
    store = Store.from_url(db_url)
    try:
        Base.metadata.create_all(bind=store.engine)
    finally:
        store.dispose()
    return sorted(Base.metadata.tables)


def main() -> None:
    load_dotenv()
    tables = create_schema(database_url=None)
    print(f"Initialized database: {', '.join(tables)}")


if __name__ == "__main__":
    main()

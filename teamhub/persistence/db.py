"""
Database connection and initialization.
"""
from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .schema import all_schema_sql


def _run_fixture_migrations(conn: sqlite3.Connection) -> None:
    """Older databases predate home/away fixtures and friendly matches."""
    cur = conn.execute("PRAGMA table_info(events)")
    cols = [row[1] for row in cur.fetchall()]
    if "home_away" not in cols:
        conn.execute("ALTER TABLE events ADD COLUMN home_away TEXT")
    if "friendly" not in cols:
        conn.execute("ALTER TABLE events ADD COLUMN friendly INTEGER NOT NULL DEFAULT 0")
        # Legacy rows stored friendlies as their own type
        conn.execute("UPDATE events SET type = 'match', friendly = 1 WHERE type = 'friendly'")


# Default DB path (project root / data / teamhub.db), overridable by TEAMHUB_DB_PATH
def _default_db_path() -> Path:
    env_path = os.environ.get("TEAMHUB_DB_PATH", "").strip()
    if env_path:
        return Path(env_path)
    return Path(__file__).resolve().parent.parent.parent / "data" / "teamhub.db"


_db_path: Path | None = None


def set_db_path(path: str | Path) -> None:
    """Set the database path. Call before first get_connection if not using default."""
    global _db_path
    _db_path = Path(path)


def get_db_path() -> Path:
    """Return the current database path."""
    if _db_path is not None:
        return _db_path
    return _default_db_path()


def get_connection(db_path: str | Path | None = None) -> sqlite3.Connection:
    """
    Return a new SQLite connection.
    Use as context manager or ensure close() is called.
    """
    path = Path(db_path) if db_path else get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """
    Commit everything written inside the block, or roll all of it back on error.
    Repository calls inside must pass commit=False.
    """
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    else:
        conn.commit()


def init_db(db_path: str | Path | None = None) -> None:
    """Create or ensure all tables exist, then apply column migrations."""
    path = Path(db_path) if db_path else get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    try:
        conn.executescript(all_schema_sql())
        _run_fixture_migrations(conn)
        conn.commit()
    finally:
        conn.close()

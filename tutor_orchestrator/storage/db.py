"""
Database connection management.

Provides SQLite connections for the reference store implementations.
"""

import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = "tutor_orchestrator.db"


def get_connection(db_path: str = DEFAULT_DB_PATH, timeout: float = 5.0) -> sqlite3.Connection:
    """Open a SQLite connection with foreign keys enabled.

    Missing parent directories are created, so a fresh ``--db`` path works
    without a separate setup step.

    Args:
        db_path: Path to SQLite database file, or ":memory:"
        timeout: Seconds to wait on a locked database before failing

    Returns:
        SQLite connection with foreign key constraints enabled
    """
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, timeout=timeout)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn

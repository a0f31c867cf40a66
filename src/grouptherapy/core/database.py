"""
SQLite database operations for GroupTherapy Radio
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path

from loguru import logger

from .config import get_data_dir


# Database schema version for migrations
SCHEMA_VERSION = 3


def get_database_path() -> Path:
    """Get the path to the SQLite database file."""
    return get_data_dir() / "grouptherapy.db"


@contextmanager
def get_db_connection():
    """Get a database connection with proper cleanup and concurrency support."""
    db_path = get_database_path()
    conn = sqlite3.connect(db_path, timeout=30.0)
    conn.row_factory = sqlite3.Row  # Enable dict-like access

    # WAL mode allows reads during writes
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    try:
        yield conn
    finally:
        conn.close()


def migrate_database(conn, current_version: int) -> None:
    """Migrate database from current_version to latest schema."""
    if current_version < 1:
        # v1: radio content and schedule
        conn.execute("""
            CREATE TABLE IF NOT EXISTS radio_assets (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                artist TEXT NOT NULL,
                audio_url TEXT NOT NULL,
                duration_seconds INTEGER NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS radio_shows (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                host_name TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Asset/show references are not foreign keys: a dangling asset is
        # treated as "nothing scheduled" at read time.
        conn.execute("""
            CREATE TABLE IF NOT EXISTS radio_schedule (
                id TEXT PRIMARY KEY,
                asset_id TEXT NOT NULL,
                show_id TEXT,
                scheduled_start TEXT NOT NULL, -- UTC ISO-8601, fixed width
                scheduled_end TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        logger.info("Migrated database to v1 (radio tables)")

    if current_version < 2:
        # v2: admin authentication
        conn.execute("""
            CREATE TABLE IF NOT EXISTS admin_users (
                username TEXT PRIMARY KEY,
                password_hash TEXT NOT NULL,
                is_active BOOLEAN DEFAULT TRUE,
                last_login_at TIMESTAMP,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS login_attempts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                username TEXT NOT NULL,
                ip_address TEXT,
                successful BOOLEAN NOT NULL,
                attempted_at TEXT NOT NULL
            )
        """)
        logger.info("Migrated database to v2 (auth tables)")

    if current_version < 3:
        # v3: indexes for the "active at" lookup and rate limiting
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_radio_schedule_window "
            "ON radio_schedule (scheduled_start, scheduled_end)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_login_attempts_user "
            "ON login_attempts (username, attempted_at)"
        )
        logger.info("Migrated database to v3 (indexes)")


def init_database() -> None:
    """Initialize the database with required tables."""
    db_path = get_database_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection() as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            )
        """)

        cursor = conn.execute("SELECT MAX(version) as version FROM schema_version")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] else 0
        cursor.close()

        if current_version < SCHEMA_VERSION:
            migrate_database(conn, current_version)

        conn.execute("DELETE FROM schema_version")
        conn.execute(
            "INSERT INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )

        conn.commit()

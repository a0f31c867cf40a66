"""
Database adapter that supports both SQLite and PostgreSQL.

Uses DATABASE_URL environment variable to determine which backend to use:
- If DATABASE_URL starts with "postgres://", use PostgreSQL
- Otherwise, use SQLite (default behavior)
"""

import os
import sqlite3
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Union

from loguru import logger


def get_database_url() -> Optional[str]:
    """Get DATABASE_URL from environment."""
    return os.environ.get("DATABASE_URL")


def is_postgres() -> bool:
    """Check if using PostgreSQL."""
    url = get_database_url()
    return url is not None and url.startswith(("postgres://", "postgresql://"))


def _convert_query_placeholders(query: str) -> str:
    """Convert SQLite ? placeholders to PostgreSQL %s placeholders."""
    # Simple conversion - doesn't handle ? inside strings
    return query.replace("?", "%s")


class PostgresCursor:
    """Wrapper around psycopg2 cursor to provide dict-like row access."""

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor
        self._columns: Optional[list[str]] = None

    def execute(self, query: str, params: tuple = ()) -> "PostgresCursor":
        self._cursor.execute(_convert_query_placeholders(query), params)
        if self._cursor.description:
            self._columns = [desc[0] for desc in self._cursor.description]
        return self

    def fetchone(self) -> Optional[dict[str, Any]]:
        row = self._cursor.fetchone()
        if row is None or self._columns is None:
            return None
        return dict(zip(self._columns, row))

    def fetchall(self) -> list[dict[str, Any]]:
        rows = self._cursor.fetchall()
        if not self._columns:
            return []
        return [dict(zip(self._columns, row)) for row in rows]

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount

    def close(self) -> None:
        self._cursor.close()


class PostgresConnection:
    """Wrapper around psycopg2 connection."""

    def __init__(self, conn: Any) -> None:
        self._conn = conn

    def execute(self, query: str, params: tuple = ()) -> PostgresCursor:
        cursor = PostgresCursor(self._conn.cursor())
        cursor.execute(query, params)
        return cursor

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()


@contextmanager
def get_radio_db_connection() -> Iterator[Union[sqlite3.Connection, PostgresConnection]]:
    """
    Get a database connection for the radio module.

    Uses DATABASE_URL if set (PostgreSQL), otherwise falls back to SQLite.
    """
    if is_postgres():
        import psycopg2

        conn = psycopg2.connect(get_database_url())
        wrapped = PostgresConnection(conn)
        try:
            yield wrapped
        finally:
            wrapped.close()
    else:
        from .database import get_db_connection

        with get_db_connection() as conn:
            yield conn


def init_postgres_schema() -> None:
    """Initialize PostgreSQL schema for radio and auth tables."""
    import psycopg2

    logger.info("Initializing PostgreSQL schema...")

    conn = psycopg2.connect(get_database_url())
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS radio_assets (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            artist TEXT NOT NULL,
            audio_url TEXT NOT NULL,
            duration_seconds INTEGER NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS radio_shows (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            host_name TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS radio_schedule (
            id TEXT PRIMARY KEY,
            asset_id TEXT NOT NULL,
            show_id TEXT,
            scheduled_start TEXT NOT NULL,
            scheduled_end TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS admin_users (
            username TEXT PRIMARY KEY,
            password_hash TEXT NOT NULL,
            is_active BOOLEAN DEFAULT TRUE,
            last_login_at TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS login_attempts (
            id SERIAL PRIMARY KEY,
            username TEXT NOT NULL,
            ip_address TEXT,
            successful BOOLEAN NOT NULL,
            attempted_at TEXT NOT NULL
        )
    """)

    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_radio_schedule_window "
        "ON radio_schedule (scheduled_start, scheduled_end)"
    )
    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_login_attempts_user "
        "ON login_attempts (username, attempted_at)"
    )

    conn.commit()
    cursor.close()
    conn.close()

    logger.info("PostgreSQL schema initialized")


def init_schema() -> None:
    """Initialize whichever backend DATABASE_URL selects."""
    if is_postgres():
        init_postgres_schema()
    else:
        from .database import init_database

        init_database()

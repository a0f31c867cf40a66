"""Tests for database setup and backend selection."""

from grouptherapy.core.database import SCHEMA_VERSION, get_db_connection, init_database
from grouptherapy.core.db_adapter import _convert_query_placeholders, is_postgres


def test_init_creates_radio_and_auth_tables(radio_db):
    with get_db_connection() as conn:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    tables = {row["name"] for row in rows}

    assert {"radio_assets", "radio_shows", "radio_schedule", "admin_users", "login_attempts"} <= tables


def test_init_is_idempotent(radio_db):
    init_database()

    with get_db_connection() as conn:
        versions = conn.execute("SELECT version FROM schema_version").fetchall()
    assert [row["version"] for row in versions] == [SCHEMA_VERSION]


def test_sqlite_is_default(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    assert is_postgres() is False


def test_postgres_selected_by_url(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://radio@localhost/radio")
    assert is_postgres() is True


def test_placeholder_conversion():
    assert _convert_query_placeholders("SELECT * FROM t WHERE a = ? AND b = ?") == (
        "SELECT * FROM t WHERE a = %s AND b = %s"
    )

"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Database operations (SQLite, optional PostgreSQL)
- Logging (Loguru)
"""

from .config import (
    Config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    load_config,
)
from .database import get_database_path, get_db_connection, init_database
from .db_adapter import get_radio_db_connection, init_schema, is_postgres
from .output import setup_loguru

__all__ = [
    "Config",
    "load_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "get_database_path",
    "get_db_connection",
    "init_database",
    "get_radio_db_connection",
    "init_schema",
    "is_postgres",
    "setup_loguru",
]

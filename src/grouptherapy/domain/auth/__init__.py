"""
Admin authentication: bcrypt credential checks, login rate limiting, and
bearer-token sessions.
"""

from .credentials import (
    AdminUser,
    CredentialCheck,
    count_recent_failures,
    create_admin_user,
    get_admin_user,
    hash_password,
    record_login_attempt,
    validate_credentials,
    verify_password,
)
from .sessions import SessionStore

__all__ = [
    "AdminUser",
    "CredentialCheck",
    "SessionStore",
    "count_recent_failures",
    "create_admin_user",
    "get_admin_user",
    "hash_password",
    "record_login_attempt",
    "validate_credentials",
    "verify_password",
]

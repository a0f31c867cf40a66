"""
Admin credential checks with login rate limiting.

Every login attempt is recorded; too many failures inside the attempt window
lock the username out regardless of whether the password is correct.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, NamedTuple, Optional

import bcrypt
from loguru import logger

from grouptherapy.core.config import AuthConfig
from grouptherapy.core.db_adapter import get_radio_db_connection
from grouptherapy.domain.radio.models import utc_now
from grouptherapy.domain.radio.schedule import format_timestamp


@dataclass(frozen=True)
class AdminUser:
    username: str
    password_hash: str
    is_active: bool


class CredentialCheck(NamedTuple):
    """Outcome of a login attempt."""

    valid: bool
    message: Optional[str] = None
    rate_limited: bool = False


def hash_password(password: str, rounds: int = 10) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def _row_to_admin_user(row: dict[str, Any]) -> AdminUser:
    return AdminUser(
        username=row["username"],
        password_hash=row["password_hash"],
        is_active=bool(row["is_active"]),
    )


def get_admin_user(username: str) -> Optional[AdminUser]:
    with get_radio_db_connection() as conn:
        cursor = conn.execute(
            "SELECT * FROM admin_users WHERE username = ?",
            (username,),
        )
        row = cursor.fetchone()
        return _row_to_admin_user(dict(row)) if row else None


def create_admin_user(username: str, password: str, rounds: int = 10) -> AdminUser:
    """Create an admin user.

    Raises:
        ValueError: If username or password is empty, or the user exists
    """
    if not username.strip() or not password:
        raise ValueError("Username and password are required")
    if get_admin_user(username):
        raise ValueError(f"Admin user already exists: {username}")

    user = AdminUser(
        username=username,
        password_hash=hash_password(password, rounds),
        is_active=True,
    )
    with get_radio_db_connection() as conn:
        conn.execute(
            "INSERT INTO admin_users (username, password_hash, is_active) VALUES (?, ?, ?)",
            (user.username, user.password_hash, True),
        )
        conn.commit()
    logger.info(f"Created admin user {username}")
    return user


def record_login_attempt(
    username: str,
    successful: bool,
    ip_address: Optional[str] = None,
    attempted_at: Optional[datetime] = None,
) -> None:
    with get_radio_db_connection() as conn:
        conn.execute(
            """
            INSERT INTO login_attempts (username, ip_address, successful, attempted_at)
            VALUES (?, ?, ?, ?)
            """,
            (
                username,
                ip_address,
                successful,
                format_timestamp(attempted_at or utc_now()),
            ),
        )
        conn.commit()


def count_recent_failures(
    username: str, window_minutes: int, now: Optional[datetime] = None
) -> int:
    """Count failed attempts for username within the last window_minutes."""
    since = (now or utc_now()) - timedelta(minutes=window_minutes)
    with get_radio_db_connection() as conn:
        cursor = conn.execute(
            """
            SELECT COUNT(*) AS failures FROM login_attempts
            WHERE username = ? AND successful = ? AND attempted_at >= ?
            """,
            (username, False, format_timestamp(since)),
        )
        row = cursor.fetchone()
        return int(row["failures"]) if row else 0


def _update_last_login(username: str) -> None:
    with get_radio_db_connection() as conn:
        conn.execute(
            "UPDATE admin_users SET last_login_at = ? WHERE username = ?",
            (format_timestamp(utc_now()), username),
        )
        conn.commit()


def validate_credentials(
    username: str,
    password: str,
    ip_address: Optional[str] = None,
    config: Optional[AuthConfig] = None,
) -> CredentialCheck:
    """Check admin credentials, enforcing the failed-attempt limit.

    Args:
        username: Admin username
        password: Plain-text password
        ip_address: Caller address, recorded with the attempt
        config: Rate limit settings (defaults used when None)

    Returns:
        CredentialCheck describing the outcome
    """
    config = config or AuthConfig()

    if count_recent_failures(username, config.attempt_window_minutes) >= config.max_login_attempts:
        record_login_attempt(username, False, ip_address)
        logger.warning(f"Login rate limited for {username} from {ip_address}")
        return CredentialCheck(
            valid=False,
            message=(
                "Too many failed login attempts. "
                f"Please try again in {config.lockout_minutes} minutes."
            ),
            rate_limited=True,
        )

    user = get_admin_user(username)
    if user is None:
        record_login_attempt(username, False, ip_address)
        return CredentialCheck(valid=False, message="Invalid credentials")

    if not user.is_active:
        record_login_attempt(username, False, ip_address)
        return CredentialCheck(valid=False, message="Account is inactive")

    valid = verify_password(password, user.password_hash)
    record_login_attempt(username, valid, ip_address)

    if not valid:
        logger.info(f"Failed login for {username} from {ip_address}")
        return CredentialCheck(valid=False, message="Invalid credentials")

    _update_last_login(username)
    logger.info(f"Admin {username} logged in")
    return CredentialCheck(valid=True)

"""In-memory bearer-token sessions for admin users."""

import secrets
import threading
from datetime import datetime, timedelta
from typing import Optional

from grouptherapy.domain.radio.models import utc_now


class SessionStore:
    """Maps opaque tokens to usernames until they expire.

    Sessions are lost on restart. Accessed from both the event loop and the
    threadpool, so the map is guarded by a lock.
    """

    def __init__(self, ttl_hours: int = 24) -> None:
        self.ttl = timedelta(hours=ttl_hours)
        self._sessions: dict[str, tuple[str, datetime]] = {}
        self._lock = threading.Lock()

    def create(self, username: str, now: Optional[datetime] = None) -> str:
        token = secrets.token_urlsafe(32)
        expires_at = (now or utc_now()) + self.ttl
        with self._lock:
            self._sessions[token] = (username, expires_at)
        return token

    def validate(self, token: str, now: Optional[datetime] = None) -> Optional[str]:
        """Return the session's username, or None if unknown or expired."""
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            username, expires_at = session
            if (now or utc_now()) > expires_at:
                del self._sessions[token]
                return None
            return username

    def delete(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)

    def __len__(self) -> int:
        return len(self._sessions)

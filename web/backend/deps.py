from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from grouptherapy.core.config import Config
from grouptherapy.domain.auth import SessionStore
from grouptherapy.domain.radio import MetadataResolver, ScheduleStore

from .broadcaster import RadioBroadcaster


def get_config(request: Request) -> Config:
    """FastAPI dependency for configuration."""
    return request.app.state.config


def get_store(request: Request) -> ScheduleStore:
    return request.app.state.store


def get_resolver(request: Request) -> MetadataResolver:
    return request.app.state.resolver


def get_broadcaster(request: Request) -> RadioBroadcaster:
    """FastAPI dependency for the lifespan-owned broadcaster."""
    return request.app.state.broadcaster


def get_sessions(request: Request) -> SessionStore:
    return request.app.state.sessions


def get_bearer_token(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    if not authorization:
        return None
    if authorization.startswith("Bearer "):
        return authorization[len("Bearer "):].strip() or None
    return None


def require_auth(
    token: Optional[str] = Depends(get_bearer_token),
    sessions: SessionStore = Depends(get_sessions),
) -> str:
    """FastAPI dependency yielding the caller's username or rejecting with 401."""
    if not token:
        raise HTTPException(status_code=401, detail="Authentication required")

    username = sessions.validate(token)
    if not username:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return username

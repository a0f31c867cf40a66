"""Admin login, logout, and session introspection."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from grouptherapy.core.config import Config
from grouptherapy.domain.auth import SessionStore, validate_credentials

from ..deps import get_bearer_token, get_config, get_sessions, require_auth
from ..schemas import LoginRequest, LoginResponse, MeResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(
    req: LoginRequest,
    request: Request,
    config: Config = Depends(get_config),
    sessions: SessionStore = Depends(get_sessions),
) -> LoginResponse:
    """Exchange admin credentials for a bearer token."""
    if not req.username or not req.password:
        raise HTTPException(status_code=400, detail="Username and password are required")

    ip_address = request.client.host if request.client else None
    result = await run_in_threadpool(
        validate_credentials, req.username, req.password, ip_address, config.auth
    )

    if result.rate_limited:
        raise HTTPException(status_code=429, detail=result.message)
    if not result.valid:
        raise HTTPException(status_code=401, detail=result.message or "Invalid credentials")

    return LoginResponse(session_id=sessions.create(req.username), username=req.username)


@router.post("/logout")
def logout(
    token: Optional[str] = Depends(get_bearer_token),
    sessions: SessionStore = Depends(get_sessions),
) -> dict[str, str]:
    if token:
        sessions.delete(token)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=MeResponse)
def me(username: str = Depends(require_auth)) -> MeResponse:
    return MeResponse(username=username)

"""
Authentication endpoints (session cookie based)
"""
from datetime import datetime

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_current_user, get_db, get_session_id
from app.core.security import create_session_token
from app.schemas.auth import ChangePasswordRequest, LoginRequest, MessageResponse, SessionUser, UserEnvelope
from app.services import auth_service
from app.services.session_service import load_session

router = APIRouter()


def _set_session_cookie(response: Response, sid: str, expires_at: datetime) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=create_session_token(sid, expires_at),
        max_age=settings.SESSION_TTL_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def _clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


@router.post("/login", response_model=UserEnvelope)
async def login(
    login_data: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    """
    Authenticate username/password and start a session

    Wrong username and wrong password both return 401 INVALID_CREDENTIALS.
    A viewer whose access window is closed gets 403 VIEWER_EXPIRED.
    """
    sid, snapshot, expires_at = auth_service.login(db, login_data.username, login_data.password)

    # A new login replaces whatever session the browser carried before
    previous_sid = get_session_id(request)
    if previous_sid and previous_sid != sid:
        auth_service.logout(db, previous_sid)

    _set_session_cookie(response, sid, expires_at)
    return UserEnvelope(user=snapshot)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    """End the current session. Safe to call without a session."""
    sid = get_session_id(request)
    record = load_session(db, sid)
    user_id = record.user_id if record else None
    auth_service.logout(db, sid, user_id)
    _clear_session_cookie(response)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserEnvelope)
async def me(current_user: SessionUser = Depends(get_current_user)):
    """Identity snapshot of the current session"""
    return UserEnvelope(user=current_user)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    payload: ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(get_current_user)
):
    """Change own password; requires the current password"""
    auth_service.change_password(db, current_user, payload.current_password, payload.new_password)
    return MessageResponse(message="Password changed successfully")

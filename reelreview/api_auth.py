"""
Account API Endpoints
=====================

Credential login, token refresh, current user, password change and the
dev-mode cookie login.
"""

import logging

from fastapi import APIRouter, HTTPException, Depends, Response
from sqlalchemy.orm import Session

from .auth import (
    AuthContext, AuthService, decode_token, seed_dev_users, find_dev_user,
    is_password_too_long, DEV_COOKIE_NAME, DEV_COOKIE_MAX_AGE,
)
from .config import get_settings
from .db.models import User
from .dependencies import get_auth_context, get_db_dependency
from .schemas import (
    LoginRequest, RefreshRequest, TokenResponse, ChangePasswordRequest,
    DevLoginRequest, UserResponse, MessageResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginRequest, db: Session = Depends(get_db_dependency)):
    """Exchange email + password for access and refresh tokens."""
    if is_password_too_long(payload.password):
        raise HTTPException(status_code=400, detail="Password exceeds 72 bytes")

    service = AuthService(db)
    auth = service.authenticate(payload.email, payload.password)
    if not auth:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return service.issue_tokens(auth)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(payload: RefreshRequest, db: Session = Depends(get_db_dependency)):
    claims = decode_token(payload.refresh_token)
    if not claims or claims.get("type") != "refresh" or not claims.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    user = db.query(User).filter(User.id == claims["sub"]).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return AuthService(db).issue_tokens(AuthContext.from_user(user))


@router.get("/me", response_model=UserResponse)
async def me(auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db_dependency)):
    user = db.query(User).filter(User.id == auth.user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    payload: ChangePasswordRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db_dependency),
):
    if is_password_too_long(payload.new_password):
        raise HTTPException(status_code=400, detail="Password exceeds 72 bytes")
    if not AuthService(db).change_password(auth.user_id, payload.current_password, payload.new_password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    logger.info(f"Password changed for user {auth.user_id}")
    return {"message": "Password updated successfully"}


@router.post("/dev-login", response_model=UserResponse)
async def dev_login(payload: DevLoginRequest, response: Response, db: Session = Depends(get_db_dependency)):
    """Sign in as one of the dev users (DEV_MODE only)."""
    settings = get_settings()
    if not settings.dev_mode:
        raise HTTPException(status_code=403, detail="Dev mode not enabled")
    if payload.password != settings.dev_password:
        raise HTTPException(status_code=401, detail="Invalid password")

    entry = find_dev_user(payload.email)
    if not entry:
        raise HTTPException(status_code=401, detail="User not found")

    user = db.query(User).filter(User.external_identity_id == entry["external_identity_id"]).first()
    if not user:
        seed_dev_users(db)
        user = db.query(User).filter(User.external_identity_id == entry["external_identity_id"]).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    AuthService(db).record_login(user)

    response.set_cookie(
        DEV_COOKIE_NAME,
        entry["external_identity_id"],
        max_age=DEV_COOKIE_MAX_AGE,
        httponly=True,
        samesite="lax",
        secure=settings.enforce_https,
    )
    return user


@router.post("/dev-logout", response_model=MessageResponse)
async def dev_logout(response: Response):
    response.delete_cookie(DEV_COOKIE_NAME)
    return {"message": "Logged out"}

"""
FastAPI dependencies shared by the routers.
"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Cookie
from sqlalchemy.orm import Session

from .auth import AuthContext, get_auth_service, DEV_COOKIE_NAME
from .db.session import get_db
from .errors import ReviewError

logger = logging.getLogger(__name__)


def get_db_dependency():
    """Get database session for FastAPI dependency injection"""
    yield from get_db()


def raise_http(exc: ReviewError):
    """Translate a domain error into the HTTPException the routers raise."""
    detail = exc.message if exc.details is None else {"message": exc.message, "details": exc.details}
    raise HTTPException(status_code=exc.status_code, detail=detail) from exc


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
        return token or None
    return None


async def get_auth_context(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    dev_user_uid: Optional[str] = Cookie(None, alias=DEV_COOKIE_NAME),
    db: Session = Depends(get_db_dependency),
) -> AuthContext:
    """
    Get auth context from either:
    - `Authorization: Bearer <jwt>` (first-party or identity provider token)
    - `dev_user_uid` cookie (dev mode only)
    """
    token = _bearer_token(authorization)
    if not token and not dev_user_uid:
        raise HTTPException(status_code=401, detail="Authentication required")

    try:
        auth = get_auth_service(db).resolve(token, dev_user_uid)
    except ReviewError as e:
        raise_http(e)

    if not auth:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return auth


async def require_reviewer(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    if not auth.is_reviewer:
        raise HTTPException(status_code=403, detail="Reviewer access required")
    return auth


async def require_admin(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    if not auth.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return auth

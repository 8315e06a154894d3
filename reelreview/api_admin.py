"""
Admin API Endpoints
===================

User management (admin only).
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session

from .auth import AuthContext, hash_password, is_password_too_long
from .db.models import User
from .dependencies import require_admin, get_db_dependency
from .schemas import UserCreate, UserRoleUpdate, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=List[UserResponse])
async def list_users(
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db_dependency),
):
    return db.query(User).order_by(User.created_at.desc()).all()


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user(
    payload: UserCreate,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db_dependency),
):
    email = payload.email.strip().lower()
    if payload.external_identity_id and db.query(User).filter(
        User.external_identity_id == payload.external_identity_id
    ).first():
        raise HTTPException(status_code=409, detail="User with this external identity already exists")
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="User with this email already exists")

    user = User(
        email=email,
        role=payload.role,
        external_identity_id=payload.external_identity_id,
    )
    if payload.password:
        if is_password_too_long(payload.password):
            raise HTTPException(status_code=400, detail="Password exceeds 72 bytes")
        user.password_hash = hash_password(payload.password)

    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} created by admin {auth.user_id} with role {user.role.value}")
    return user


@router.patch("/users/{user_id}", response_model=UserResponse)
async def update_user_role(
    user_id: str,
    payload: UserRoleUpdate,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db_dependency),
):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    user.role = payload.role
    db.commit()
    db.refresh(user)
    logger.info(f"User {user_id} role set to {payload.role.value} by admin {auth.user_id}")
    return user

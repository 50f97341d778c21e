# backend/stockdb/apps/accounts/router_admin.py

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from stockdb.database import get_db
from stockdb.security import require_permission

from . import schemas, services
from .session import UserSession

router = APIRouter(prefix="/accounts/users", tags=["accounts_admin"])

manage_users = require_permission("can_manage_users")


@router.get("", response_model=List[schemas.UserRead])
def list_users(
    db: Session = Depends(get_db),
    session: UserSession = Depends(manage_users),
):
    return services.list_users(db)


@router.post(
    "",
    response_model=schemas.UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user (admin only)",
)
def create_user(
    payload: schemas.UserCreate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(manage_users),
):
    user = services.create_user(db, payload)
    db.commit()
    db.refresh(user)
    return user


@router.patch("/{user_id}", response_model=schemas.UserRead)
def update_user(
    user_id: str,
    payload: schemas.UserUpdate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(manage_users),
):
    user = services.update_user(db, user_id=user_id, payload=payload, actor=session.user)
    db.commit()
    db.refresh(user)
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    session: UserSession = Depends(manage_users),
):
    """
    Delete a user.

    Admins cannot delete their own account.
    """
    services.delete_user(db, user_id=user_id, actor=session.user)
    db.commit()
    return None

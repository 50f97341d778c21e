# backend/stockdb/apps/accounts/services.py

from __future__ import annotations

import logging
import os
from datetime import timedelta
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from stockdb.errors import NotFoundError, ValidationError
from stockdb.security import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    create_access_token,
    get_password_hash,
)

from . import models, schemas

logger = logging.getLogger(__name__)


# Reference accounts shipped with the application: (username, name, role, default password).
# Passwords can be overridden per user with SEED_<USERNAME>_PASSWORD.
REFERENCE_USERS: Tuple[Tuple[str, str, models.Role, str], ...] = (
    ("rodrigo", "Rodrigo", models.Role.ADMIN, "admin123"),
    ("charles", "Charles", models.Role.VIEWER, "visual123"),
    ("nelson", "Nelson", models.Role.MANAGER, "gestor123"),
    ("bruno", "Bruno", models.Role.MANAGER, "gestor123"),
    ("mauro", "Mauro", models.Role.MANAGER, "gestor123"),
)


# ---------------------------------------------------------------------------
# TOKENS
# ---------------------------------------------------------------------------


def issue_access_token_for_user(user: models.User) -> Tuple[str, int]:
    """
    Create a JWT access token for the user.

    Returns (token_string, expires_in_seconds).
    """
    expires_delta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": str(user.id),
        "username": user.username,
        "role": user.role.value if hasattr(user.role, "value") else str(user.role),
    }
    token = create_access_token(data=payload, expires_delta=expires_delta)
    return token, int(expires_delta.total_seconds())


# ---------------------------------------------------------------------------
# USER MANAGEMENT
# ---------------------------------------------------------------------------


def get_user_by_username(db: Session, username: str) -> Optional[models.User]:
    return (
        db.query(models.User)
        .filter(models.User.username == username)
        .first()
    )


def get_user(db: Session, user_id: str) -> models.User:
    user = db.get(models.User, str(user_id).strip())
    if user is None:
        raise NotFoundError("User", user_id)
    return user


def list_users(db: Session) -> List[models.User]:
    return db.query(models.User).order_by(models.User.username.asc()).all()


def create_user(db: Session, payload: schemas.UserCreate) -> models.User:
    if get_user_by_username(db, payload.username) is not None:
        raise ValidationError("Username already exists.", field="username")

    user = models.User(
        username=payload.username,
        name=payload.name,
        role=payload.role,
        hashed_password=get_password_hash(payload.password),
        is_active=True,
    )
    db.add(user)
    db.flush()
    logger.info("Created user %s (%s)", user.username, user.role.value)
    return user


def update_user(
    db: Session,
    *,
    user_id: str,
    payload: schemas.UserUpdate,
    actor: models.User,
) -> models.User:
    user = get_user(db, user_id)
    data = payload.model_dump(exclude_unset=True)

    if user.id == actor.id:
        if data.get("is_active") is False:
            raise ValidationError("You cannot deactivate your own account.", field="is_active")
        if "role" in data and data["role"] != models.Role.ADMIN:
            raise ValidationError("You cannot remove your own admin role.", field="role")

    password = data.pop("password", None)
    if password:
        user.hashed_password = get_password_hash(password)
    for field, value in data.items():
        if value is not None:
            setattr(user, field, value)

    db.add(user)
    db.flush()
    logger.info("Updated user %s fields=%s", user.username, sorted(payload.model_fields_set))
    return user


def delete_user(db: Session, *, user_id: str, actor: models.User) -> None:
    user = get_user(db, user_id)
    if user.id == actor.id:
        raise ValidationError("You cannot delete your own account.")
    db.delete(user)
    db.flush()
    logger.info("Deleted user %s", user.username)


# ---------------------------------------------------------------------------
# SEEDING
# ---------------------------------------------------------------------------


def _seed_password(username: str, default: str) -> str:
    return os.getenv(f"SEED_{username.upper()}_PASSWORD", default)


def seed_reference_users(
    db: Session,
    users: Iterable[Tuple[str, str, models.Role, str]] = REFERENCE_USERS,
) -> List[models.User]:
    """
    Insert the reference accounts that do not exist yet.

    Existing users are left untouched so re-running never resets passwords.
    """
    created: List[models.User] = []
    for username, name, role, default_password in users:
        if get_user_by_username(db, username) is not None:
            continue
        created.append(
            create_user(
                db,
                schemas.UserCreate(
                    username=username,
                    name=name,
                    role=role,
                    password=_seed_password(username, default_password),
                ),
            )
        )
    return created

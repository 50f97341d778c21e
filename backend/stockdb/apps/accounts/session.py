"""
Explicit user session.

A `UserSession` is created per request (or per CLI invocation) and passed
to whatever needs the current user; there is no process-wide "current
user". It starts empty, is established by `login` or `restore`, and is
cleared by `logout`.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from stockdb import security

from . import models, permissions

logger = logging.getLogger(__name__)


class UserSession:
    def __init__(self, user: Optional[models.User] = None) -> None:
        self.user = user

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def role(self) -> Optional[models.Role]:
        return self.user.role if self.user is not None else None

    # -- permission predicates ---------------------------------------------

    def can_add(self) -> bool:
        return permissions.can_add(self.role)

    def can_edit(self) -> bool:
        return permissions.can_edit(self.role)

    def can_delete(self) -> bool:
        return permissions.can_delete(self.role)

    def can_manage_users(self) -> bool:
        return permissions.can_manage_users(self.role)

    @property
    def permissions(self) -> permissions.Permissions:
        return permissions.Permissions.for_role(self.role)

    # -- lifecycle -----------------------------------------------------------

    def login(self, db: Session, username: str, password: str) -> bool:
        """
        Establish the session for an exact username/password match.

        On failure the session is left as it was.
        """
        user = authenticate(db, username, password)
        if user is None:
            return False
        self.user = user
        return True

    def logout(self) -> None:
        self.user = None

    def restore(self, db: Session, token: str) -> bool:
        """
        Rebuild the session from a previously issued access token.

        Tokens issued before the user's last logout, tokens for inactive or
        deleted users, and undecodable tokens leave the session empty.
        """
        self.user = None
        payload = security.decode_access_token(token)
        if payload is None:
            return False

        user = db.get(models.User, str(payload["sub"]))
        if user is None or not user.is_active:
            return False

        if user.token_revoked_at is not None:
            issued_ms = int(payload.get("iat_ms") or int(payload.get("iat", 0)) * 1000)
            if issued_ms <= security.to_epoch_ms(user.token_revoked_at):
                return False

        self.user = user
        return True

    def __repr__(self) -> str:
        return f"<UserSession user={self.user.username if self.user else None!r}>"


def authenticate(db: Session, username: str, password: str) -> Optional[models.User]:
    """Return the active user whose username and password match exactly."""
    if not username or not password:
        return None
    user = (
        db.query(models.User)
        .filter(models.User.username == username)
        .first()
    )
    # Some collations compare case-insensitively; enforce an exact match here.
    if user is None or user.username != username or not user.is_active:
        logger.warning("Login failed for username=%r", username)
        return None
    if not security.verify_password(password, user.hashed_password):
        logger.warning("Login failed for username=%r", username)
        return None
    return user


def revoke_tokens(db: Session, user: models.User) -> None:
    """Invalidate every token issued to the user up to now."""
    user.token_revoked_at = datetime.utcnow()
    db.add(user)
    db.flush()

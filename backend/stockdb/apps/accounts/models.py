# backend/stockdb/apps/accounts/models.py

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Index,
    String,
    UniqueConstraint,
)

from stockdb.database import Base
from stockdb.utils.identifiers import generate_user_id


def _utcnow() -> datetime:
    return datetime.utcnow()


class Role(str, enum.Enum):
    """Roles that drive the permission predicates."""

    ADMIN = "admin"
    MANAGER = "manager"
    VIEWER = "viewer"


class User(Base):
    """
    Portal user.

    Usernames are compared case-sensitively; passwords are only ever stored
    as argon2id hashes.
    """

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("username", name="uq_users_username"),
        Index("idx_users_role_active", "role", "is_active"),
    )

    id = Column(String(36), primary_key=True, default=generate_user_id)

    username = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)

    role = Column(
        Enum(Role, name="user_role_enum", values_callable=lambda roles: [r.value for r in roles]),
        nullable=False,
        default=Role.VIEWER,
        index=True,
    )

    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    # Tokens issued before this instant no longer restore a session.
    token_revoked_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role}>"

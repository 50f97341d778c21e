# backend/stockdb/security.py

"""
Security helpers for stockdb.

Responsibilities:
- Password hashing and verification (argon2id)
- JWT access token creation and decoding
- FastAPI dependencies resolving the current session
- Permission gates for router dependencies
"""

from __future__ import annotations

import calendar
import os
from datetime import datetime, timedelta
from typing import Callable, Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .database import get_db
from .errors import AuthFailureError, PermissionDeniedError

# ---------------------------------------------------------------------------
# CONFIG
# ---------------------------------------------------------------------------

# In production, ALWAYS override these via environment variables.
SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME_IN_PRODUCTION")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

try:
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
        os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "480")
    )
except ValueError:
    ACCESS_TOKEN_EXPIRE_MINUTES = 480

# Logical endpoint that issues tokens (OpenAPI docs only).
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


# ---------------------------------------------------------------------------
# PASSWORD HASHING
# ---------------------------------------------------------------------------

_pwd_hasher = PasswordHasher(
    time_cost=int(os.getenv("ARGON2_TIME_COST", "3")),
    memory_cost=int(os.getenv("ARGON2_MEMORY_COST", "65536")),  # KiB (64MB)
    parallelism=int(os.getenv("ARGON2_PARALLELISM", "2")),
    hash_len=int(os.getenv("ARGON2_HASH_LEN", "32")),
    salt_len=int(os.getenv("ARGON2_SALT_LEN", "16")),
)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if the plain password matches the hash."""
    if not plain_password or not hashed_password:
        return False
    try:
        return _pwd_hasher.verify(hashed_password, plain_password)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


def get_password_hash(password: str) -> str:
    """Hash a password for storing in the database (Argon2id)."""
    return _pwd_hasher.hash(password)


# ---------------------------------------------------------------------------
# JWT TOKENS
# ---------------------------------------------------------------------------


def to_epoch_ms(moment: datetime) -> int:
    """Milliseconds since the epoch for a UTC (naive or aware) datetime."""
    return calendar.timegm(moment.utctimetuple()) * 1000 + moment.microsecond // 1000


def create_access_token(
    *,
    data: dict,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed JWT.

    The `data` dict should already include the subject, e.g.:
        {"sub": user.id, "role": "manager"}
    """
    to_encode = data.copy()

    now = datetime.utcnow()
    expire = now + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update(
        {
            "exp": calendar.timegm(expire.utctimetuple()),
            "iat": calendar.timegm(now.utctimetuple()),
            "iat_ms": to_epoch_ms(now),
        }
    )
    return jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Return the token claims, or None for a bad signature / expired token."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None
    if not payload.get("sub"):
        return None
    return payload


# ---------------------------------------------------------------------------
# FASTAPI DEPENDENCIES
# ---------------------------------------------------------------------------


def get_current_session(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
):
    """
    Rebuild the caller's session from the bearer token.

    Raises AuthFailureError when the token is missing, invalid, expired,
    revoked by logout, or names an inactive user.
    """
    from stockdb.apps.accounts.session import UserSession

    session = UserSession()
    if not token or not session.restore(db, token):
        raise AuthFailureError("Could not validate credentials")
    return session


def require_permission(permission: str) -> Callable:
    """
    Dependency factory gating an endpoint on one permission predicate.

    Usage:
        @router.post(...)
        def endpoint(session: UserSession = Depends(require_permission("can_add"))):
            ...
    """
    if permission not in {"can_add", "can_edit", "can_delete", "can_manage_users"}:
        raise ValueError(f"Unknown permission {permission!r} passed to require_permission()")

    def dependency(
        session=Depends(get_current_session),
    ):
        if not getattr(session, permission)():
            raise PermissionDeniedError(permission)
        return session

    return dependency

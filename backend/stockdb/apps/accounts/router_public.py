# backend/stockdb/apps/accounts/router_public.py

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from stockdb.database import get_db
from stockdb.errors import AuthFailureError
from stockdb.security import get_current_session

from . import schemas, services
from .session import UserSession, revoke_tokens

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _session_read(session: UserSession) -> schemas.SessionRead:
    return schemas.SessionRead(
        user=schemas.UserRead.model_validate(session.user),
        permissions=schemas.PermissionsRead(**session.permissions.as_dict()),
    )


@router.post(
    "/login",
    response_model=schemas.Token,
    summary="Log in with username and password",
)
def login(
    payload: schemas.LoginRequest,
    db: Session = Depends(get_db),
):
    """
    Exact, case-sensitive username match plus password check.

    Returns a bearer token that later requests use to restore the session.
    """
    session = UserSession()
    if not session.login(db, payload.username, payload.password):
        raise AuthFailureError()

    token, expires_in = services.issue_access_token_for_user(session.user)
    logger.info("User %s logged in", session.user.username)
    return schemas.Token(
        access_token=token,
        expires_in=expires_in,
        user=schemas.UserRead.model_validate(session.user),
        permissions=schemas.PermissionsRead(**session.permissions.as_dict()),
    )


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Log out and revoke issued tokens",
)
def logout(
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    user = session.user
    revoke_tokens(db, user)
    db.commit()
    session.logout()
    logger.info("User %s logged out", user.username)
    return None


@router.get("/me", response_model=schemas.SessionRead)
def read_me(session: UserSession = Depends(get_current_session)):
    return _session_read(session)


@router.get("/permissions", response_model=schemas.PermissionsRead)
def read_permissions(session: UserSession = Depends(get_current_session)):
    return schemas.PermissionsRead(**session.permissions.as_dict())

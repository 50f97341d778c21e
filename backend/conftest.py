from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["STOCKDB_CREATE_TABLES"] = "false"
# Cheap hashing parameters keep the suite fast.
os.environ["ARGON2_TIME_COST"] = "1"
os.environ["ARGON2_MEMORY_COST"] = "1024"
os.environ["ARGON2_PARALLELISM"] = "1"

from stockdb.database import Base, enable_sqlite_foreign_keys  # noqa: E402
from stockdb.apps.accounts import models as account_models  # noqa: E402
from stockdb.apps.inventory import models as inventory_models  # noqa: E402
from stockdb.security import get_password_hash  # noqa: E402


def _make_session_factory(url: str, **engine_kwargs):
    engine = create_engine(url, **engine_kwargs)
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(
        bind=engine,
        tables=[
            account_models.User.__table__,
            inventory_models.InventoryItem.__table__,
            inventory_models.InventoryMovement.__table__,
        ],
    )
    factory = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    return engine, factory


@pytest.fixture()
def session_factory():
    engine, factory = _make_session_factory(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    try:
        yield factory
    finally:
        engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def file_session_factory(tmp_path):
    """Sessions on a file database, for tests that write from several threads."""
    engine, factory = _make_session_factory(
        f"sqlite+pysqlite:///{tmp_path / 'stock.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    try:
        yield factory
    finally:
        engine.dispose()


@pytest.fixture()
def make_user(db_session):
    def _make_user(
        username: str,
        *,
        role: account_models.Role = account_models.Role.VIEWER,
        password: str = "secret123",
        is_active: bool = True,
    ) -> account_models.User:
        user = account_models.User(
            username=username,
            name=username.title(),
            role=role,
            hashed_password=get_password_hash(password),
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user

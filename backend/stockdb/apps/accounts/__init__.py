# backend/stockdb/apps/accounts/__init__.py
"""
Accounts app

Responsible for:
- User accounts and their roles (admin / manager / viewer)
- Permission predicates derived from role
- The explicit per-request session (login, logout, token restore)
- Admin endpoints to manage users

Other apps depend on `UserSession` for anything related to "who is
allowed to do what".
"""

from . import models, permissions, schemas, services  # noqa: F401

__all__ = ["models", "permissions", "schemas", "services"]

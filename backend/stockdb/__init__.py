# backend/stockdb/__init__.py
"""
Import ORM models from each app so that Base.metadata.create_all() sees
all tables.

The actual model classes are kept in stockdb/apps/*/models.py.
"""

from .apps.accounts import models as accounts_models          # users / roles
from .apps.inventory import models as inventory_models        # items + movements

__all__ = [
    "accounts_models",
    "inventory_models",
]

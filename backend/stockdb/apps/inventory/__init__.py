"""
Inventory module.

Items, their entry/exit movements and the stock statistics built on them.
The HTTP router lives in `stockdb.apps.inventory.router`.
"""

from . import models  # noqa: F401

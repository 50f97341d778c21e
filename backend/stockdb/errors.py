# backend/stockdb/errors.py
"""
Domain errors raised by stockdb services.

Services never build HTTP responses themselves; `stockdb.main` maps each
error kind to a status code. Every error carries a machine-readable `kind`
so clients can branch without parsing the message.
"""

from __future__ import annotations

from typing import Optional


class StockDBError(Exception):
    kind = "error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {"detail": self.message, "error": self.kind}


class NotFoundError(StockDBError):
    """Referenced item, movement or user does not exist."""

    kind = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} {entity_id!r} not found.")
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStockError(StockDBError):
    """An exit asked for more than the item currently holds."""

    kind = "insufficient_stock"
    status_code = 409

    def __init__(self, *, item_id: str, available: int, requested: int) -> None:
        super().__init__(f"Insufficient stock. Available: {available}")
        self.item_id = item_id
        self.available = available
        self.requested = requested

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload.update({"available": self.available, "requested": self.requested})
        return payload


class ValidationError(StockDBError):
    kind = "validation_error"
    status_code = 400

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field

    def to_payload(self) -> dict:
        payload = super().to_payload()
        if self.field:
            payload["field"] = self.field
        return payload


class PartialFailureError(StockDBError):
    """
    One of the two movement writes failed.

    `movement_recorded` tells the caller whether the movement row survived;
    when False the store was rolled back to its state before the call.
    """

    kind = "partial_failure"
    status_code = 500

    def __init__(self, message: str, *, item_id: str, movement_recorded: bool) -> None:
        super().__init__(message)
        self.item_id = item_id
        self.movement_recorded = movement_recorded

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload.update({"item_id": self.item_id, "movement_recorded": self.movement_recorded})
        return payload


class AuthFailureError(StockDBError):
    kind = "auth_failure"
    status_code = 401

    def __init__(self, message: str = "Incorrect username or password.") -> None:
        super().__init__(message)


class PermissionDeniedError(StockDBError):
    kind = "permission_denied"
    status_code = 403

    def __init__(self, permission: str) -> None:
        super().__init__(f"Insufficient permissions: {permission} required.")
        self.permission = permission

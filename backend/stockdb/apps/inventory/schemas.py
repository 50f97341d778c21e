from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from . import models


ItemSortField = Literal["material", "category", "quantity", "updated", "created"]


def _strip_nullable(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class InventoryItemCreate(BaseModel):
    category: str
    material: str
    quantity: int = Field(..., ge=0)
    note: Optional[str] = None

    @field_validator("category", "material")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("note")
    @classmethod
    def _strip_note(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class InventoryItemUpdate(BaseModel):
    category: Optional[str] = None
    material: Optional[str] = None
    quantity: Optional[int] = Field(None, ge=0)
    note: Optional[str] = None

    @field_validator("category", "material")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v

    @field_validator("note")
    @classmethod
    def _strip_note(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class InventoryItemRead(BaseModel):
    id: str
    category: str
    material: str
    quantity: int
    note: Optional[str] = None
    created: datetime
    updated: datetime
    is_low_stock: bool

    class Config:
        from_attributes = True


class InventoryMovementCreate(BaseModel):
    item_id: str
    direction: models.MovementDirectionEnum
    quantity: int = Field(..., gt=0)
    note: Optional[str] = None

    @field_validator("note")
    @classmethod
    def _strip_note(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class InventoryMovementRead(BaseModel):
    id: str
    item_id: str
    material: str
    direction: models.MovementDirectionEnum
    quantity: int
    timestamp: datetime
    note: Optional[str] = None
    created_by_user_id: Optional[str] = None

    class Config:
        from_attributes = True


class InventoryStatistics(BaseModel):
    total_quantity: int
    movement_count: int
    low_stock_count: int
    item_count: int
    low_stock_threshold: int = models.LOW_STOCK_THRESHOLD


class InventoryDashboard(BaseModel):
    statistics: InventoryStatistics
    recent_movements: List[InventoryMovementRead]
    low_stock_items: List[InventoryItemRead]


class InventoryClearResult(BaseModel):
    movements_deleted: int
    items_deleted: int


class InventoryItemList(BaseModel):
    items: List[InventoryItemRead]
    total_items: int
    shown_items: int
    shown_quantity: int

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from stockdb.database import Base
from stockdb.utils.identifiers import generate_uuid7

# Items at or below this quantity count as low stock.
LOW_STOCK_THRESHOLD = 5


def _utcnow() -> datetime:
    return datetime.utcnow()


class MovementDirectionEnum(str, enum.Enum):
    ENTRY = "entry"
    EXIT = "exit"


class InventoryItem(Base):
    __tablename__ = "inventory_items"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_non_negative"),
        Index("ix_inventory_items_category_material", "category", "material"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    category = Column(String(128), nullable=False, index=True)
    material = Column(String(255), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    note = Column(Text, nullable=True)
    created = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    movements = relationship(
        "InventoryMovement",
        back_populates="item",
        cascade="all, delete-orphan",
        order_by="InventoryMovement.timestamp.desc()",
    )

    @property
    def is_low_stock(self) -> bool:
        return (self.quantity or 0) <= LOW_STOCK_THRESHOLD


class InventoryMovement(Base):
    """
    Immutable stock change against one item.

    `material` is copied from the item when the movement is recorded so the
    history keeps the name the item had at that time.
    """

    __tablename__ = "inventory_movements"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_inventory_movements_quantity_positive"),
        Index("ix_inventory_movements_item_time", "item_id", "timestamp"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    item_id = Column(
        String(36),
        ForeignKey("inventory_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    material = Column(String(255), nullable=False)
    direction = Column(
        SAEnum(
            MovementDirectionEnum,
            name="movement_direction_enum",
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
        index=True,
    )
    quantity = Column(Integer, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    note = Column(Text, nullable=True)
    created_by_user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    item = relationship("InventoryItem", back_populates="movements")

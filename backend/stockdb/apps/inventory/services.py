from __future__ import annotations

import logging
from contextlib import ExitStack, contextmanager
from typing import Iterator, List, Mapping, Optional, Union

from sqlalchemy import String, case, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockdb.errors import (
    InsufficientStockError,
    NotFoundError,
    PartialFailureError,
    ValidationError,
)

from . import models, schemas
from .locks import ItemLockRegistry

logger = logging.getLogger(__name__)

EDITABLE_ITEM_FIELDS = frozenset({"category", "material", "quantity", "note"})
RECENT_MOVEMENTS_LIMIT = 5

_item_locks = ItemLockRegistry()


@contextmanager
def item_guard(item_id: str) -> Iterator[None]:
    """
    Serialize stock changes for one item.

    Callers that commit after a service call should hold the guard around
    both, so the next writer only sees committed quantities.
    """
    with _item_locks.hold(item_id):
        yield


@contextmanager
def inventory_guard(db: Session) -> Iterator[None]:
    """Hold the guard of every existing item, acquired in id order."""
    item_ids = sorted(row[0] for row in db.query(models.InventoryItem.id).all())
    with ExitStack() as stack:
        for item_id in item_ids:
            stack.enter_context(item_guard(item_id))
        yield


# ---------------------------------------------------------------------------
# VALIDATION
# ---------------------------------------------------------------------------


def _require_text(value: Optional[str], field: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{field} is required.", field=field)
    return value


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _require_quantity(value, field: str = "quantity", *, positive: bool) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer.", field=field)
    if positive and value <= 0:
        raise ValidationError(f"{field} must be greater than zero.", field=field)
    if not positive and value < 0:
        raise ValidationError(f"{field} cannot be negative.", field=field)
    return value


def _parse_direction(direction: Union[str, models.MovementDirectionEnum]) -> models.MovementDirectionEnum:
    if isinstance(direction, models.MovementDirectionEnum):
        return direction
    try:
        return models.MovementDirectionEnum(str(direction).strip().lower())
    except ValueError:
        raise ValidationError(
            f"direction must be one of: {', '.join(d.value for d in models.MovementDirectionEnum)}.",
            field="direction",
        )


# ---------------------------------------------------------------------------
# ITEMS
# ---------------------------------------------------------------------------


def get_item(db: Session, item_id: str) -> models.InventoryItem:
    item = db.get(models.InventoryItem, item_id)
    if item is None:
        raise NotFoundError("Item", item_id)
    return item


def _get_item_for_update(db: Session, item_id: str) -> models.InventoryItem:
    item = (
        db.query(models.InventoryItem)
        .filter(models.InventoryItem.id == item_id)
        .populate_existing()
        .with_for_update()
        .first()
    )
    if item is None:
        raise NotFoundError("Item", item_id)
    return item


def add_item(
    db: Session,
    *,
    category: str,
    material: str,
    quantity: int,
    note: Optional[str] = None,
) -> models.InventoryItem:
    now = models._utcnow()
    item = models.InventoryItem(
        category=_require_text(category, "category"),
        material=_require_text(material, "material"),
        quantity=_require_quantity(quantity, positive=False),
        note=_optional_text(note),
        created=now,
        updated=now,
    )
    db.add(item)
    db.flush()
    logger.info("Added item %s (%s / %s) qty=%s", item.id, item.category, item.material, item.quantity)
    return item


def update_item(
    db: Session,
    item_id: str,
    *,
    changes: Mapping[str, object],
    actor_user_id: Optional[str] = None,
) -> models.InventoryItem:
    """
    Merge `changes` into the item and refresh its `updated` timestamp.

    A changed quantity is booked as an entry/exit movement for the
    difference, so the item's quantity always matches its movement history.
    """
    unknown = set(changes) - EDITABLE_ITEM_FIELDS
    if unknown:
        raise ValidationError(f"Unknown item fields: {', '.join(sorted(unknown))}.")

    # Validate everything up front; a rejected edit must not touch the item.
    fields = {}
    for field in ("category", "material"):
        if field in changes:
            fields[field] = _require_text(changes[field], field)
    if "note" in changes:
        fields["note"] = _optional_text(changes["note"])
    target = None
    if changes.get("quantity") is not None:
        target = _require_quantity(changes["quantity"], positive=False)

    with item_guard(item_id):
        item = _get_item_for_update(db, item_id)

        for field, value in fields.items():
            setattr(item, field, value)
        item.updated = models._utcnow()
        db.flush()

        if target is not None:
            delta = target - item.quantity
            if delta:
                record_movement(
                    db,
                    item_id=item.id,
                    direction=models.MovementDirectionEnum.ENTRY if delta > 0 else models.MovementDirectionEnum.EXIT,
                    quantity=abs(delta),
                    note="Quantity corrected by item edit",
                    actor_user_id=actor_user_id,
                )
    return item


def remove_item(db: Session, item_id: str) -> int:
    """Delete the item and every movement referencing it; returns the movement count removed."""
    with item_guard(item_id):
        item = get_item(db, item_id)
        movement_count = len(item.movements)
        db.delete(item)
        db.flush()
    logger.info("Removed item %s with %s movement(s)", item_id, movement_count)
    return movement_count


def list_items(
    db: Session,
    *,
    search: Optional[str] = None,
    category: Optional[str] = None,
    sort: str = "material",
    descending: bool = False,
) -> List[models.InventoryItem]:
    """
    Items filtered by a case-insensitive search over material and category,
    optionally restricted to one category.
    """
    sort_columns = {
        "material": func.lower(models.InventoryItem.material, type_=String),
        "category": func.lower(models.InventoryItem.category, type_=String),
        "quantity": models.InventoryItem.quantity,
        "updated": models.InventoryItem.updated,
        "created": models.InventoryItem.created,
    }
    if sort not in sort_columns:
        raise ValidationError(f"Cannot sort items by {sort!r}.", field="sort")

    query = db.query(models.InventoryItem)
    term = _optional_text(search)
    if term:
        term = term.lower()
        query = query.filter(
            or_(
                func.lower(models.InventoryItem.material, type_=String).contains(term, autoescape=True),
                func.lower(models.InventoryItem.category, type_=String).contains(term, autoescape=True),
            )
        )
    if category:
        query = query.filter(models.InventoryItem.category == category)

    column = sort_columns[sort]
    return query.order_by(
        column.desc() if descending else column.asc(),
        models.InventoryItem.id.asc(),
    ).all()


def list_categories(db: Session) -> List[str]:
    rows = (
        db.query(models.InventoryItem.category)
        .filter(models.InventoryItem.category != "")
        .distinct()
        .order_by(models.InventoryItem.category.asc())
        .all()
    )
    return [row[0] for row in rows]


def list_low_stock_items(db: Session) -> List[models.InventoryItem]:
    return (
        db.query(models.InventoryItem)
        .filter(models.InventoryItem.quantity <= models.LOW_STOCK_THRESHOLD)
        .order_by(models.InventoryItem.quantity.asc(), func.lower(models.InventoryItem.material, type_=String).asc())
        .all()
    )


# ---------------------------------------------------------------------------
# MOVEMENTS
# ---------------------------------------------------------------------------


def _apply_quantity(db: Session, item: models.InventoryItem, quantity: int) -> None:
    item.quantity = quantity
    item.updated = models._utcnow()
    db.flush()


def record_movement(
    db: Session,
    *,
    item_id: str,
    direction: Union[str, models.MovementDirectionEnum],
    quantity: int,
    note: Optional[str] = None,
    actor_user_id: Optional[str] = None,
) -> models.InventoryMovement:
    """
    Book an entry or exit against an item and adjust its quantity.

    The movement insert and the quantity update share one savepoint: if the
    update fails the insert is rolled back with it and PartialFailureError
    reports that no movement was kept. An exit larger than the current
    quantity raises InsufficientStockError and writes nothing.
    """
    direction = _parse_direction(direction)
    quantity = _require_quantity(quantity, positive=True)

    with item_guard(item_id):
        item = _get_item_for_update(db, item_id)

        if direction == models.MovementDirectionEnum.EXIT and quantity > item.quantity:
            logger.warning(
                "Rejected exit of %s from item %s: only %s available",
                quantity,
                item.id,
                item.quantity,
            )
            raise InsufficientStockError(item_id=item.id, available=item.quantity, requested=quantity)

        if direction == models.MovementDirectionEnum.ENTRY:
            new_quantity = item.quantity + quantity
        else:
            new_quantity = item.quantity - quantity

        try:
            with db.begin_nested():
                movement = models.InventoryMovement(
                    item_id=item.id,
                    material=item.material,
                    direction=direction,
                    quantity=quantity,
                    timestamp=models._utcnow(),
                    note=_optional_text(note),
                    created_by_user_id=actor_user_id,
                )
                db.add(movement)
                db.flush()
                try:
                    _apply_quantity(db, item, new_quantity)
                except SQLAlchemyError as exc:
                    raise PartialFailureError(
                        "Movement was written but the item quantity update failed; "
                        "the movement has been rolled back.",
                        item_id=item_id,
                        movement_recorded=False,
                    ) from exc
        except PartialFailureError:
            logger.warning("Partial failure recording movement for item %s", item_id, exc_info=True)
            raise

    logger.info(
        "Recorded %s of %s for item %s (qty now %s)",
        direction.value,
        quantity,
        item_id,
        new_quantity,
    )
    return movement


def list_movements(
    db: Session,
    *,
    item_id: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.InventoryMovement]:
    """Movements newest first, optionally for one item."""
    query = db.query(models.InventoryMovement)
    if item_id:
        query = query.filter(models.InventoryMovement.item_id == item_id)
    return (
        query.order_by(
            models.InventoryMovement.timestamp.desc(),
            models.InventoryMovement.id.desc(),
        )
        .offset(skip)
        .limit(limit)
        .all()
    )


# ---------------------------------------------------------------------------
# STATISTICS / MAINTENANCE
# ---------------------------------------------------------------------------


def compute_statistics(db: Session) -> schemas.InventoryStatistics:
    total_quantity, item_count, low_stock_count = db.query(
        func.coalesce(func.sum(models.InventoryItem.quantity), 0),
        func.count(models.InventoryItem.id),
        func.coalesce(
            func.sum(case((models.InventoryItem.quantity <= models.LOW_STOCK_THRESHOLD, 1), else_=0)),
            0,
        ),
    ).one()
    movement_count = db.query(func.count(models.InventoryMovement.id)).scalar() or 0
    return schemas.InventoryStatistics(
        total_quantity=int(total_quantity),
        movement_count=int(movement_count),
        low_stock_count=int(low_stock_count),
        item_count=int(item_count),
    )


def dashboard(db: Session, *, recent_limit: int = RECENT_MOVEMENTS_LIMIT) -> schemas.InventoryDashboard:
    return schemas.InventoryDashboard(
        statistics=compute_statistics(db),
        recent_movements=[
            schemas.InventoryMovementRead.model_validate(m)
            for m in list_movements(db, limit=recent_limit)
        ],
        low_stock_items=[
            schemas.InventoryItemRead.model_validate(i)
            for i in list_low_stock_items(db)
        ],
    )


def clear_all(db: Session) -> schemas.InventoryClearResult:
    """
    Delete every movement, then every item.

    Movements booked concurrently wait for the guards and then find their
    item gone. Callers that commit afterwards should hold `inventory_guard`
    around both.
    """
    with inventory_guard(db):
        movements_deleted = db.query(models.InventoryMovement).delete(synchronize_session=False)
        items_deleted = db.query(models.InventoryItem).delete(synchronize_session=False)
        db.flush()
    db.expire_all()
    logger.info("Cleared inventory: %s movement(s), %s item(s)", movements_deleted, items_deleted)
    return schemas.InventoryClearResult(
        movements_deleted=movements_deleted,
        items_deleted=items_deleted,
    )

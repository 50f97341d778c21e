from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stockdb.apps.accounts.session import UserSession
from stockdb.database import get_db, get_read_db
from stockdb.security import get_current_session, require_permission

from . import schemas, services

router = APIRouter(prefix="/inventory", tags=["inventory"])


# ---------------------------------------------------------------------------
# ITEMS
# ---------------------------------------------------------------------------


@router.get("/items", response_model=schemas.InventoryItemList)
def list_items(
    search: Optional[str] = None,
    category: Optional[str] = None,
    sort: schemas.ItemSortField = "material",
    descending: bool = False,
    db: Session = Depends(get_read_db),
    session: UserSession = Depends(get_current_session),
):
    items = services.list_items(db, search=search, category=category, sort=sort, descending=descending)
    total_items = services.compute_statistics(db).item_count
    return schemas.InventoryItemList(
        items=[schemas.InventoryItemRead.model_validate(item) for item in items],
        total_items=total_items,
        shown_items=len(items),
        shown_quantity=sum(item.quantity for item in items),
    )


@router.get("/items/{item_id}", response_model=schemas.InventoryItemRead)
def get_item(
    item_id: str,
    db: Session = Depends(get_read_db),
    session: UserSession = Depends(get_current_session),
):
    return services.get_item(db, item_id)


@router.post(
    "/items",
    response_model=schemas.InventoryItemRead,
    status_code=status.HTTP_201_CREATED,
)
def create_item(
    payload: schemas.InventoryItemCreate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_permission("can_add")),
):
    item = services.add_item(
        db,
        category=payload.category,
        material=payload.material,
        quantity=payload.quantity,
        note=payload.note,
    )
    db.commit()
    db.refresh(item)
    return item


@router.patch("/items/{item_id}", response_model=schemas.InventoryItemRead)
def update_item(
    item_id: str,
    payload: schemas.InventoryItemUpdate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_permission("can_edit")),
):
    with services.item_guard(item_id):
        item = services.update_item(
            db,
            item_id,
            changes=payload.model_dump(exclude_unset=True),
            actor_user_id=session.user.id,
        )
        db.commit()
    db.refresh(item)
    return item


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(
    item_id: str,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_permission("can_delete")),
):
    with services.item_guard(item_id):
        services.remove_item(db, item_id)
        db.commit()
    return None


@router.get("/categories", response_model=List[str])
def list_categories(
    db: Session = Depends(get_read_db),
    session: UserSession = Depends(get_current_session),
):
    return services.list_categories(db)


# ---------------------------------------------------------------------------
# MOVEMENTS
# ---------------------------------------------------------------------------


@router.get("/movements", response_model=List[schemas.InventoryMovementRead])
def list_movements(
    item_id: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_read_db),
    session: UserSession = Depends(get_current_session),
):
    return services.list_movements(db, item_id=item_id, skip=skip, limit=limit)


@router.post(
    "/movements",
    response_model=schemas.InventoryMovementRead,
    status_code=status.HTTP_201_CREATED,
)
def record_movement(
    payload: schemas.InventoryMovementCreate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_permission("can_add")),
):
    with services.item_guard(payload.item_id):
        movement = services.record_movement(
            db,
            item_id=payload.item_id,
            direction=payload.direction,
            quantity=payload.quantity,
            note=payload.note,
            actor_user_id=session.user.id,
        )
        db.commit()
    db.refresh(movement)
    return movement


# ---------------------------------------------------------------------------
# STATISTICS / MAINTENANCE
# ---------------------------------------------------------------------------


@router.get("/statistics", response_model=schemas.InventoryStatistics)
def read_statistics(
    db: Session = Depends(get_read_db),
    session: UserSession = Depends(get_current_session),
):
    return services.compute_statistics(db)


@router.get("/dashboard", response_model=schemas.InventoryDashboard)
def read_dashboard(
    db: Session = Depends(get_read_db),
    session: UserSession = Depends(get_current_session),
):
    return services.dashboard(db)


@router.delete("", response_model=schemas.InventoryClearResult)
def clear_inventory(
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_permission("can_delete")),
):
    with services.inventory_guard(db):
        result = services.clear_all(db)
        db.commit()
    return result

from __future__ import annotations

import pytest

from stockdb.apps.inventory import models as inventory_models
from stockdb.apps.inventory import services as inventory_services
from stockdb.errors import InsufficientStockError, NotFoundError, ValidationError

ENTRY = inventory_models.MovementDirectionEnum.ENTRY
EXIT = inventory_models.MovementDirectionEnum.EXIT


def _add(db, material="Cable 2.5mm", quantity=5, category="Electrical", note=None):
    item = inventory_services.add_item(db, category=category, material=material, quantity=quantity, note=note)
    db.commit()
    return item


def _movement_count(db, item_id=None):
    query = db.query(inventory_models.InventoryMovement)
    if item_id is not None:
        query = query.filter(inventory_models.InventoryMovement.item_id == item_id)
    return query.count()


def test_add_item_sets_id_and_timestamps(db_session):
    item = _add(db_session, note="  top shelf ")

    assert item.id
    assert item.created == item.updated
    assert item.note == "top shelf"
    assert item.quantity == 5


@pytest.mark.parametrize("quantity", [-1, 1.5, "3", True])
def test_add_item_rejects_bad_quantities(db_session, quantity):
    with pytest.raises(ValidationError):
        inventory_services.add_item(db_session, category="Tools", material="Hammer", quantity=quantity)


def test_add_item_requires_category_and_material(db_session):
    with pytest.raises(ValidationError) as exc:
        inventory_services.add_item(db_session, category="  ", material="Hammer", quantity=1)
    assert exc.value.field == "category"


def test_entry_exit_scenario(db_session):
    item = _add(db_session, quantity=5)

    entry = inventory_services.record_movement(db_session, item_id=item.id, direction=ENTRY, quantity=10)
    db_session.commit()
    assert item.quantity == 15
    assert entry.direction == ENTRY
    assert entry.material == "Cable 2.5mm"
    assert _movement_count(db_session) == 1

    with pytest.raises(InsufficientStockError) as exc:
        inventory_services.record_movement(db_session, item_id=item.id, direction=EXIT, quantity=20)
    assert exc.value.available == 15
    db_session.rollback()
    assert inventory_services.get_item(db_session, item.id).quantity == 15
    assert _movement_count(db_session) == 1

    inventory_services.record_movement(db_session, item_id=item.id, direction="exit", quantity=15)
    db_session.commit()
    assert inventory_services.get_item(db_session, item.id).quantity == 0
    assert _movement_count(db_session) == 2


def test_record_movement_validation(db_session):
    item = _add(db_session)

    with pytest.raises(NotFoundError):
        inventory_services.record_movement(db_session, item_id="missing", direction=ENTRY, quantity=1)
    with pytest.raises(ValidationError):
        inventory_services.record_movement(db_session, item_id=item.id, direction=ENTRY, quantity=0)
    with pytest.raises(ValidationError):
        inventory_services.record_movement(db_session, item_id=item.id, direction="sideways", quantity=1)
    assert _movement_count(db_session) == 0


def test_movement_keeps_material_name_from_record_time(db_session):
    item = _add(db_session, material="Old name")
    movement = inventory_services.record_movement(db_session, item_id=item.id, direction=ENTRY, quantity=1)
    db_session.commit()

    inventory_services.update_item(db_session, item.id, changes={"material": "New name"})
    db_session.commit()

    db_session.refresh(movement)
    assert movement.material == "Old name"
    assert inventory_services.get_item(db_session, item.id).material == "New name"


def test_quantity_matches_movement_history(db_session):
    first = _add(db_session, material="Bolt", quantity=7)
    second = _add(db_session, material="Nut", quantity=0)
    initial = {first.id: 7, second.id: 0}

    operations = [
        (first.id, ENTRY, 3),
        (second.id, ENTRY, 12),
        (first.id, EXIT, 10),
        (second.id, EXIT, 4),
        (first.id, EXIT, 1),
        (second.id, ENTRY, 2),
    ]
    for item_id, direction, quantity in operations:
        try:
            inventory_services.record_movement(db_session, item_id=item_id, direction=direction, quantity=quantity)
            db_session.commit()
        except InsufficientStockError:
            db_session.rollback()

    inventory_services.update_item(db_session, second.id, changes={"quantity": 4, "note": "recount"})
    db_session.commit()

    for item_id, start in initial.items():
        movements = inventory_services.list_movements(db_session, item_id=item_id)
        expected = start + sum(m.quantity if m.direction == ENTRY else -m.quantity for m in movements)
        item = inventory_services.get_item(db_session, item_id)
        assert item.quantity == expected
        assert item.quantity >= 0

    assert inventory_services.get_item(db_session, second.id).quantity == 4


def test_update_item_merges_fields_and_refreshes_timestamp(db_session):
    item = _add(db_session)
    before = item.updated

    updated = inventory_services.update_item(db_session, item.id, changes={"category": "Wiring"})
    db_session.commit()

    assert updated.category == "Wiring"
    assert updated.material == "Cable 2.5mm"
    assert updated.updated >= before
    assert _movement_count(db_session) == 0


def test_update_item_rejects_unknown_fields_and_missing_items(db_session):
    item = _add(db_session)
    with pytest.raises(ValidationError):
        inventory_services.update_item(db_session, item.id, changes={"id": "other"})
    with pytest.raises(ValidationError):
        inventory_services.update_item(db_session, item.id, changes={"quantity": -3})
    with pytest.raises(NotFoundError):
        inventory_services.update_item(db_session, "missing", changes={"note": "x"})


def test_rejected_update_leaves_item_unchanged(db_session):
    item = _add(db_session, material="Saw", category="Tools", quantity=4)
    db_session.expire_all()
    before = inventory_services.get_item(db_session, item.id).updated

    for changes in (
        {"material": "Hacksaw", "quantity": -1},
        {"note": "blade", "category": "   "},
        {"category": "Cutting", "quantity": "7"},
    ):
        with pytest.raises(ValidationError):
            inventory_services.update_item(db_session, item.id, changes=changes)
    db_session.commit()

    db_session.expire_all()
    stored = inventory_services.get_item(db_session, item.id)
    assert (stored.material, stored.category, stored.note, stored.quantity) == ("Saw", "Tools", None, 4)
    assert stored.updated == before
    assert _movement_count(db_session, item.id) == 0


def test_remove_item_cascades_only_its_movements(db_session):
    keep = _add(db_session, material="Keep")
    drop = _add(db_session, material="Drop")
    for item in (keep, drop, drop):
        inventory_services.record_movement(db_session, item_id=item.id, direction=ENTRY, quantity=2)
    db_session.commit()

    removed = inventory_services.remove_item(db_session, drop.id)
    db_session.commit()

    assert removed == 2
    assert _movement_count(db_session, drop.id) == 0
    assert _movement_count(db_session, keep.id) == 1
    with pytest.raises(NotFoundError):
        inventory_services.get_item(db_session, drop.id)
    with pytest.raises(NotFoundError):
        inventory_services.remove_item(db_session, drop.id)


def test_statistics_example(db_session):
    for index, quantity in enumerate([10, 3, 5, 0]):
        _add(db_session, material=f"Material {index}", quantity=quantity)

    stats = inventory_services.compute_statistics(db_session)

    assert stats.low_stock_count == 3
    assert stats.total_quantity == 18
    assert stats.item_count == 4
    assert stats.movement_count == 0


def test_statistics_on_empty_store(db_session):
    stats = inventory_services.compute_statistics(db_session)
    assert (stats.total_quantity, stats.movement_count, stats.low_stock_count, stats.item_count) == (0, 0, 0, 0)


def test_clear_all_removes_everything(db_session):
    item = _add(db_session)
    inventory_services.record_movement(db_session, item_id=item.id, direction=ENTRY, quantity=1)
    db_session.commit()

    result = inventory_services.clear_all(db_session)
    db_session.commit()

    assert (result.movements_deleted, result.items_deleted) == (1, 1)
    assert inventory_services.compute_statistics(db_session).item_count == 0


def test_list_items_search_filter_and_sort(db_session):
    _add(db_session, material="Copper cable", category="Electrical", quantity=8)
    _add(db_session, material="Hammer", category="Tools", quantity=2)
    _add(db_session, material="breaker 20A", category="Electrical", quantity=30)

    assert [i.material for i in inventory_services.list_items(db_session)] == [
        "breaker 20A",
        "Copper cable",
        "Hammer",
    ]
    assert [i.material for i in inventory_services.list_items(db_session, search="ELEC")] == [
        "breaker 20A",
        "Copper cable",
    ]
    assert [i.material for i in inventory_services.list_items(db_session, search="cable")] == ["Copper cable"]
    assert [i.material for i in inventory_services.list_items(db_session, category="Tools")] == ["Hammer"]
    assert [
        i.quantity for i in inventory_services.list_items(db_session, sort="quantity", descending=True)
    ] == [30, 8, 2]
    assert inventory_services.list_items(db_session, search="100%") == []
    with pytest.raises(ValidationError):
        inventory_services.list_items(db_session, sort="price")


def test_categories_low_stock_and_dashboard(db_session):
    low = _add(db_session, material="Fuse", category="Electrical", quantity=1)
    _add(db_session, material="Drill", category="Tools", quantity=50)
    _add(db_session, material="Tape", category="Electrical", quantity=5)
    for _ in range(7):
        inventory_services.record_movement(db_session, item_id=low.id, direction=ENTRY, quantity=1)
    db_session.commit()

    assert inventory_services.list_categories(db_session) == ["Electrical", "Tools"]
    assert [i.material for i in inventory_services.list_low_stock_items(db_session)] == ["Tape"]

    board = inventory_services.dashboard(db_session)
    assert board.statistics.movement_count == 7
    assert len(board.recent_movements) == 5
    assert [i.material for i in board.low_stock_items] == ["Tape"]

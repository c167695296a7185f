"""
Stock Ledger mutation tests: non-negativity, one log entry per change,
transfer conservation and reconciliation.
"""

from datetime import timedelta

import pytest

from rainbow_room.extensions import db
from rainbow_room.errors import InsufficientStockError, ValidationError, NotFoundError
from rainbow_room.models import (
    InventoryTransaction,
    ItemSize,
    TX_ADDITION,
    TX_MANUAL_ADJUSTMENT,
    TX_TRANSFER_IN,
    TX_TRANSFER_OUT,
)
from rainbow_room.services import inventory_service, item_service, location_service
from rainbow_room.time_utils import utcnow

from conftest import stock_row


def _entries(size_row_id):
    return (
        db.session.query(InventoryTransaction)
        .filter_by(size_id=size_row_id)
        .order_by(InventoryTransaction.id.asc())
        .all()
    )


def test_create_item_makes_rows_per_size_and_location(boys_pants, locations):
    rows = item_service.list_item_sizes(boys_pants.id)
    assert len(rows) == 2 * len(locations)
    assert {r.size_label for r in rows} == {"4T", "5T"}
    assert all(r.current_quantity == 0 for r in rows)
    assert boys_pants.code.startswith("RR-")
    assert len(boys_pants.code) == len("RR-") + 8


def test_unsized_item_gets_single_na_row_per_location(locations):
    item = item_service.create_item({"name": "Diapers"})
    rows = item_service.list_item_sizes(item.id)
    assert [r.size_label for r in rows] == ["N/A"] * len(locations)


def test_add_stock_appends_addition_entry(pants_4t):
    row = inventory_service.get_size_row(pants_4t.id)
    assert row.current_quantity == 10

    entries = _entries(row.id)
    assert len(entries) == 1
    assert entries[0].type == TX_ADDITION
    assert entries[0].quantity_delta == 10
    assert entries[0].actor_name == "Sam"
    assert entries[0].source == "Drive"


def test_add_stock_rejects_non_positive(pants_4t):
    with pytest.raises(ValidationError):
        inventory_service.add_stock(pants_4t.id, 0)
    with pytest.raises(ValidationError):
        inventory_service.add_stock(pants_4t.id, -3)


def test_adjust_quantity_logs_manual_adjustment(pants_4t):
    row, entry = inventory_service.adjust_quantity(pants_4t.id, -4, admin_name="Admin", reason="Damaged")
    assert row.current_quantity == 6
    assert entry.type == TX_MANUAL_ADJUSTMENT
    assert entry.quantity_delta == -4
    assert entry.reason == "Damaged"


def test_adjust_below_zero_is_rejected_and_row_unchanged(pants_4t):
    with pytest.raises(InsufficientStockError) as exc_info:
        inventory_service.adjust_quantity(pants_4t.id, -11, admin_name="Admin")

    assert exc_info.value.available == 10
    assert exc_info.value.requested == 11
    assert inventory_service.get_size_row(pants_4t.id).current_quantity == 10
    assert len(_entries(pants_4t.id)) == 1


def test_adjust_zero_delta_is_invalid(pants_4t):
    with pytest.raises(ValidationError):
        inventory_service.adjust_quantity(pants_4t.id, 0)


def test_set_quantity_logs_difference(pants_4t):
    row, entry = inventory_service.set_quantity(pants_4t.id, 3, actor_name="Admin")
    assert row.current_quantity == 3
    assert entry.type == TX_MANUAL_ADJUSTMENT
    assert entry.quantity_delta == -7


def test_set_quantity_to_current_value_writes_nothing(pants_4t):
    row, entry = inventory_service.set_quantity(pants_4t.id, 10)
    assert entry is None
    assert row.current_quantity == 10
    assert len(_entries(pants_4t.id)) == 1


def test_set_quantity_rejects_negative(pants_4t):
    with pytest.raises(ValidationError):
        inventory_service.set_quantity(pants_4t.id, -1)


def test_future_occurred_at_is_rejected(pants_4t):
    future = (utcnow() + timedelta(hours=1)).isoformat() + "Z"
    with pytest.raises(ValidationError):
        inventory_service.add_stock(pants_4t.id, 1, occurred_at=future)


def test_unknown_row_is_not_found(locations):
    with pytest.raises(NotFoundError):
        inventory_service.add_stock(999999, 1)


def test_transfer_conserves_quantity(pants_4t, plano):
    result = inventory_service.transfer_stock(pants_4t.id, plano.id, 4, actor_name="Sam")

    source = inventory_service.get_size_row(pants_4t.id)
    destination = inventory_service.get_size_row(result["destination"].id)
    assert source.current_quantity == 6
    assert destination.current_quantity == 4
    assert destination.location_id == plano.id
    assert destination.size_label == "4T"

    out_entry, in_entry = result["transfer_out"], result["transfer_in"]
    assert out_entry.type == TX_TRANSFER_OUT and out_entry.quantity_delta == -4
    assert in_entry.type == TX_TRANSFER_IN and in_entry.quantity_delta == 4
    assert out_entry.transfer_group == in_entry.transfer_group
    assert out_entry.counterpart_location_id == plano.id
    assert in_entry.counterpart_location_id == pants_4t.location_id


def test_transfer_creates_missing_destination_row(pants_4t, boys_pants, plano):
    existing = stock_row(boys_pants.id, "4T", plano.id)
    db.session.delete(existing)
    db.session.commit()

    result = inventory_service.transfer_stock(pants_4t.id, plano.id, 2)
    created = stock_row(boys_pants.id, "4T", plano.id)
    assert created.id == result["destination"].id
    assert created.current_quantity == 2


def test_transfer_more_than_available_changes_nothing(pants_4t, plano, boys_pants):
    with pytest.raises(InsufficientStockError):
        inventory_service.transfer_stock(pants_4t.id, plano.id, 11)

    assert inventory_service.get_size_row(pants_4t.id).current_quantity == 10
    assert stock_row(boys_pants.id, "4T", plano.id).current_quantity == 0
    assert db.session.query(InventoryTransaction).filter(
        InventoryTransaction.type.in_([TX_TRANSFER_IN, TX_TRANSFER_OUT])
    ).count() == 0


def test_transfer_to_same_location_is_invalid(pants_4t):
    with pytest.raises(ValidationError):
        inventory_service.transfer_stock(pants_4t.id, pants_4t.location_id, 1)


def test_transfer_to_inactive_location_is_invalid(pants_4t, plano):
    location_service.toggle_location(plano.id)
    with pytest.raises(ValidationError):
        inventory_service.transfer_stock(pants_4t.id, plano.id, 1)


def test_random_walk_never_negative_and_reconciles(pants_4t, plano):
    deltas = [-3, 5, -12, -7, 2, -1, -20, 8, -8]
    for delta in deltas:
        before = inventory_service.get_size_row(pants_4t.id).current_quantity
        try:
            inventory_service.adjust_quantity(pants_4t.id, delta)
        except InsufficientStockError:
            assert before + delta < 0
            assert inventory_service.get_size_row(pants_4t.id).current_quantity == before
        assert inventory_service.get_size_row(pants_4t.id).current_quantity >= 0

    inventory_service.transfer_stock(pants_4t.id, plano.id, 1)

    row = inventory_service.get_size_row(pants_4t.id)
    assert inventory_service.quantity_from_ledger(row.id) == row.current_quantity
    report = inventory_service.reconcile()
    assert report["mismatch_count"] == 0
    assert report["checked"] == db.session.query(ItemSize).count()


def test_reconcile_reports_drift(pants_4t):
    row = inventory_service.get_size_row(pants_4t.id)
    row.current_quantity = 12
    db.session.commit()

    report = inventory_service.reconcile(pants_4t.id)
    assert report["checked"] == 1
    assert report["mismatch_count"] == 1
    mismatch = report["mismatches"][0]
    assert mismatch["ledger_quantity"] == 10
    assert mismatch["difference"] == 2


def test_list_transactions_filters_by_type(pants_4t):
    inventory_service.adjust_quantity(pants_4t.id, -2)
    entries = inventory_service.list_transactions(item_id=pants_4t.item_id, tx_type=TX_MANUAL_ADJUSTMENT)
    assert [e.quantity_delta for e in entries] == [-2]

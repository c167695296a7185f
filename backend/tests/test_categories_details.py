"""
Category/size catalog and the item detail lifecycle.
"""

import pytest

from rainbow_room.extensions import db
from rainbow_room.errors import ValidationError, NotFoundError, DuplicateKeyError, ConflictError
from rainbow_room.models import CategorySize
from rainbow_room.services import category_service, detail_service, reporting_service


@pytest.fixture
def shirts(db_session):
    return category_service.create_category({"name": "Shirts", "low_stock_threshold": 2})


def _detail(category, location, **overrides):
    payload = {
        "category_id": category.id,
        "location_id": location.id,
        "condition": "New",
        "received_date": "2026-02-01",
    }
    payload.update(overrides)
    return detail_service.create_detail(payload)


def test_category_gets_code_and_default_threshold(db_session):
    category = category_service.create_category({"name": "Jackets"})
    assert category.qr_code_value.startswith("category-")
    assert category.low_stock_threshold == 5

    with pytest.raises(DuplicateKeyError):
        category_service.create_category({"name": "Jackets"})


def test_negative_threshold_rejected(db_session):
    with pytest.raises(ValidationError):
        category_service.create_category({"name": "Hats", "low_stock_threshold": -1})


def test_size_association_is_idempotent(shirts):
    small = category_service.create_size("S")

    assert category_service.add_size_to_category(shirts.id, small.id) is True
    assert category_service.add_size_to_category(shirts.id, small.id) is False
    assert db.session.query(CategorySize).count() == 1
    assert [s.name for s in category_service.list_sizes_for_category(shirts.id)] == ["S"]

    category_service.remove_size_from_category(shirts.id, small.id)
    with pytest.raises(NotFoundError):
        category_service.remove_size_from_category(shirts.id, small.id)


def test_blank_or_duplicate_size(db_session):
    category_service.create_size("M")
    with pytest.raises(DuplicateKeyError):
        category_service.create_size(" M ")
    with pytest.raises(ValidationError):
        category_service.create_size("   ")


def test_delete_category_in_use_conflicts(shirts, mckinney):
    _detail(shirts, mckinney)
    with pytest.raises(ConflictError):
        category_service.delete_category(shirts.id)


def test_delete_unused_category(shirts):
    category_service.delete_category(shirts.id)
    with pytest.raises(NotFoundError):
        category_service.get_category(shirts.id)


def test_detail_lifecycle(shirts, mckinney, plano):
    detail = _detail(shirts, mckinney, donor_info="Church drive", approx_price="4.5")
    assert detail.is_active
    assert detail.qr_code_value.startswith("item-")
    assert detail.approx_price == 4.5

    moved = detail_service.update_detail(detail.id, {"location_id": plano.id, "condition": "Gently Used"})
    assert moved.location_id == plano.id

    gone = detail_service.deactivate_detail(detail.id)
    assert gone.is_active is False
    assert gone.deactivated_at is not None

    with pytest.raises(ValidationError):
        detail_service.deactivate_detail(detail.id)
    with pytest.raises(ValidationError):
        detail_service.update_detail(detail.id, {"condition": "New"})


@pytest.mark.parametrize(
    "overrides",
    [{"condition": "Torn"}, {"received_date": "02/01/2026"}, {"approx_price": -1}],
)
def test_detail_rules(shirts, mckinney, overrides):
    with pytest.raises(ValidationError):
        _detail(shirts, mckinney, **overrides)


def test_detail_unknown_size(shirts, mckinney):
    with pytest.raises(NotFoundError):
        _detail(shirts, mckinney, size_id=4242)


def test_totals_count_active_details_only(shirts, mckinney):
    first = _detail(shirts, mckinney)
    _detail(shirts, mckinney)
    _detail(shirts, mckinney)
    assert category_service.category_total(shirts.id) == 3
    assert reporting_service.category_low_stock()["rows"] == []

    detail_service.deactivate_detail(first.id)
    listed = category_service.list_categories()
    assert listed[0]["total_quantity"] == 2

    low = reporting_service.category_low_stock()["rows"]
    assert [(r["name"], r["shortfall"]) for r in low] == [("Shirts", 0)]


def test_list_details_filters(shirts, mckinney, plano):
    _detail(shirts, mckinney)
    other = _detail(shirts, plano)
    detail_service.deactivate_detail(other.id)

    assert len(detail_service.list_details(location_id=mckinney.id)) == 1
    assert len(detail_service.list_details(is_active=False)) == 1
    assert len(detail_service.list_details(category_id=shirts.id)) == 2

import re

import pytest

from rainbow_room.errors import NotFoundError, ValidationError
from rainbow_room.services import identifier_service, category_service, detail_service


def test_item_codes_use_prefix(boys_pants):
    assert re.fullmatch(r"RR-[0-9A-F]{8}", boys_pants.code)


def test_lookup_resolves_each_entity_kind(boys_pants, mckinney):
    shirts = category_service.create_category({"name": "Shirts"})
    detail = detail_service.create_detail({
        "category_id": shirts.id,
        "location_id": mckinney.id,
        "condition": "New",
        "received_date": "2026-02-01",
    })

    assert identifier_service.lookup_by_code(boys_pants.code) == ("item", boys_pants)
    assert identifier_service.lookup_by_code(f"  {shirts.qr_code_value} ") == ("category", shirts)
    kind, found = identifier_service.lookup_by_code(detail.qr_code_value)
    assert kind == "item_detail"
    assert found.id == detail.id


def test_lookup_misses(locations):
    with pytest.raises(NotFoundError):
        identifier_service.lookup_by_code("RR-00000000")
    with pytest.raises(ValidationError):
        identifier_service.lookup_by_code("   ")

# Overview: Service-layer operations for the item master; encapsulates business logic and database work.

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Item, ItemSize, Location, NO_SIZE_LABEL
from ..errors import ValidationError, NotFoundError, DuplicateKeyError
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import lock_for_update, run_in_transaction
from .identifier_service import generate_item_code, normalize_code


ITEM_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "storage_location", "has_sizes", "min_stock_level", "unit_type"},
    required_on_create={"name"},
)

ITEM_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "storage_location", "min_stock_level", "unit_type"},
)


def _clean_size_labels(has_sizes: bool, sizes) -> list[str]:
    if not has_sizes:
        if sizes:
            raise ValidationError("sizes given for an item without sizes")
        return [NO_SIZE_LABEL]

    if not isinstance(sizes, (list, tuple)) or not sizes:
        raise ValidationError("At least one size is required when has_sizes is true")

    labels: list[str] = []
    for raw in sizes:
        label = str(raw or "").strip()
        if not label:
            raise ValidationError("Size labels cannot be blank")
        if label in labels:
            raise ValidationError(f"Duplicate size label: {label}")
        labels.append(label)
    return labels


def create_item(payload: dict, sizes=None) -> Item:
    """
    Create an item master record and its stock rows.

    One ItemSize row per (size label, active location) starting at quantity 0.
    Items without sizes get a single "N/A" row per location. Stock is added
    afterwards through inventory_service so every unit has a log entry.
    """
    patch = validate_payload(model=Item, payload=payload, policy=ITEM_CREATE_POLICY, partial=False)
    has_sizes = bool(patch.get("has_sizes", False))
    labels = _clean_size_labels(has_sizes, sizes)

    min_level = patch.get("min_stock_level")
    if min_level is None:
        min_level = current_app.config.get("DEFAULT_MIN_STOCK_LEVEL", 5)
    if min_level < 0:
        raise ValidationError("min_stock_level must be >= 0")

    def _op():
        if db.session.query(Item).filter_by(name=patch["name"]).first():
            raise DuplicateKeyError(f"Item {patch['name']} already exists")

        locations = (
            db.session.query(Location)
            .filter(Location.is_active.is_(True))
            .order_by(Location.id.asc())
            .all()
        )
        if not locations:
            raise ValidationError("No active locations to stock the item at")

        item = Item(
            name=patch["name"],
            description=patch.get("description"),
            storage_location=patch.get("storage_location"),
            code=generate_item_code(),
            has_sizes=has_sizes,
            min_stock_level=min_level,
            unit_type=patch.get("unit_type") or "each",
        )
        db.session.add(item)
        db.session.flush()

        for location in locations:
            for order, label in enumerate(labels):
                db.session.add(ItemSize(
                    item_id=item.id,
                    location_id=location.id,
                    size_label=label,
                    current_quantity=0,
                    sort_order=order,
                ))
        db.session.flush()
        return item

    item = run_in_transaction(_op)
    current_app.logger.info("item.created id=%s code=%s sizes=%s", item.id, item.code, len(labels))
    return item


def update_item(item_id: int, payload: dict) -> Item:
    patch = validate_payload(model=Item, payload=payload, policy=ITEM_UPDATE_POLICY, partial=True)
    if patch.get("min_stock_level") is not None and patch["min_stock_level"] < 0:
        raise ValidationError("min_stock_level must be >= 0")

    def _op():
        item = lock_for_update(db.session.query(Item).filter_by(id=item_id)).first()
        if item is None:
            raise NotFoundError("Item not found")
        if "name" in patch and patch["name"] != item.name:
            if db.session.query(Item).filter_by(name=patch["name"]).first():
                raise DuplicateKeyError(f"Item {patch['name']} already exists")
        for key, value in patch.items():
            setattr(item, key, value)
        db.session.flush()
        return item

    return run_in_transaction(_op)


def get_item(item_id: int) -> Item:
    item = db.session.query(Item).filter_by(id=item_id).first()
    if item is None:
        raise NotFoundError("Item not found")
    return item


def get_item_by_code(code: str) -> Item:
    item = db.session.query(Item).filter_by(code=normalize_code(code)).first()
    if item is None:
        raise NotFoundError("Item not found")
    return item


def get_total_quantity(item_id: int, location_id: int | None = None) -> int:
    q = db.session.query(func.coalesce(func.sum(ItemSize.current_quantity), 0)).filter(
        ItemSize.item_id == item_id,
    )
    if location_id is not None:
        q = q.filter(ItemSize.location_id == location_id)
    return int(q.scalar() or 0)


def list_items(*, location_id: int | None = None, search: str | None = None) -> list[dict]:
    """Items ordered by name, each with total_quantity summed over its stock rows."""
    totals = db.session.query(
        ItemSize.item_id.label("item_id"),
        func.coalesce(func.sum(ItemSize.current_quantity), 0).label("total_quantity"),
    )
    if location_id is not None:
        totals = totals.filter(ItemSize.location_id == location_id)
    totals = totals.group_by(ItemSize.item_id).subquery()

    q = db.session.query(Item, totals.c.total_quantity).outerjoin(totals, totals.c.item_id == Item.id)
    if search:
        q = q.filter(Item.name.ilike(f"%{search.strip()}%"))

    rows = []
    for item, total in q.order_by(Item.name.asc()).all():
        data = item.to_dict()
        data["total_quantity"] = int(total or 0)
        rows.append(data)
    return rows


def list_item_sizes(item_id: int, *, location_id: int | None = None) -> list[ItemSize]:
    get_item(item_id)
    q = db.session.query(ItemSize).filter(ItemSize.item_id == item_id)
    if location_id is not None:
        q = q.filter(ItemSize.location_id == location_id)
    return q.order_by(ItemSize.location_id.asc(), ItemSize.sort_order.asc(), ItemSize.id.asc()).all()

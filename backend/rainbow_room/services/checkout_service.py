# Overview: Service-layer operations for checkouts; encapsulates business logic and database work.

"""
Checkout commit (all-or-nothing)

1. Case-file fields are validated (validate_checkout_form) before any query.
2. Every line is resolved to its stock row at the checkout location and the
   summed request per row is checked against current_quantity.
3. Only when every line fits: Checkout + CheckoutLine rows are written and
   each line decrements its row with one CHECKOUT log entry.

All of step 3 runs inside one run_in_transaction call; any failure rolls back
the whole checkout, so no stock row or log entry is touched on rejection.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import date

from flask import current_app

from ..extensions import db
from ..models import Checkout, CheckoutLine, ItemSize, Item, NO_SIZE_LABEL, TX_CHECKOUT
from ..errors import ValidationError, NotFoundError, InsufficientStockError
from ..validation import CheckoutForm, validate_checkout_form, RequestSchema
from rainbow_room.time_utils import utcnow
from .concurrency import lock_for_update, run_in_transaction
from .inventory_service import apply_delta
from .location_service import require_active_location


CHECKOUT_FORM_FIELDS = {
    "checkout_date",
    "worker_first_name",
    "worker_last_name",
    "department",
    "case_number",
    "allegations",
    "parent_guardian_first_name",
    "parent_guardian_last_name",
    "zip_code",
    "alleged_perpetrator_first_name",
    "alleged_perpetrator_last_name",
    "number_of_children",
}

CHECKOUT_LINE_SCHEMA = RequestSchema(
    required={"item_id": "int", "quantity": "int"},
    optional={"size_id": "int", "item_name": "str", "size_label": "str", "location_id": "int"},
)


def _clean_lines(items) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise ValidationError("Checkout must include at least one item")

    lines = []
    for index, raw in enumerate(items, start=1):
        try:
            line = CHECKOUT_LINE_SCHEMA.validate(raw)
        except ValidationError as e:
            raise ValidationError(f"Item {index}: {e}")
        if line["quantity"] <= 0:
            raise ValidationError(f"Item {index}: quantity must be > 0")
        lines.append(line)
    return lines


def _resolve_row(line: dict, location_id: int) -> ItemSize:
    item = db.session.query(Item).filter_by(id=line["item_id"]).first()
    if item is None:
        raise NotFoundError(f"Item {line['item_id']} not found")

    size_id = line.get("size_id")
    if size_id is None:
        if item.has_sizes:
            raise ValidationError(f"A size must be selected for {item.name}")
        query = db.session.query(ItemSize).filter_by(
            item_id=item.id, size_label=NO_SIZE_LABEL, location_id=location_id
        )
    else:
        query = db.session.query(ItemSize).filter_by(id=size_id)

    row = lock_for_update(query).first()
    if row is None:
        raise NotFoundError(f"{item.name} is not stocked at this location")
    if row.item_id != item.id:
        raise ValidationError(f"Size {size_id} does not belong to {item.name}")
    if row.location_id != location_id:
        raise ValidationError(f"{item.name} ({row.size_label}) is not stocked at this location")
    return row


def create_checkout(*, location_id: int, form, items) -> Checkout:
    """
    Commit a checkout. form is a CheckoutForm or the raw case-file dict.

    Raises ValidationError / NotFoundError / InsufficientStockError without
    any stock change.
    """
    if not isinstance(form, CheckoutForm):
        form = validate_checkout_form(form)
    lines = _clean_lines(items)
    if isinstance(location_id, bool) or not isinstance(location_id, int):
        raise ValidationError("location_id is required")

    def _op():
        require_active_location(location_id)

        resolved = [(line, _resolve_row(line, location_id)) for line in lines]

        # Check every row against its summed request before writing anything
        requested: "OrderedDict[int, int]" = OrderedDict()
        rows: dict[int, ItemSize] = {}
        for line, row in resolved:
            requested[row.id] = requested.get(row.id, 0) + line["quantity"]
            rows[row.id] = row
        for row_id, qty in requested.items():
            row = rows[row_id]
            if row.current_quantity < qty:
                raise InsufficientStockError(
                    f"Insufficient stock for {row.item.name} ({row.size_label}): "
                    f"available {row.current_quantity}, requested {qty}",
                    size_row_id=row.id,
                    available=row.current_quantity,
                    requested=qty,
                )

        checkout = Checkout(
            location_id=location_id,
            checkout_date=form.checkout_date,
            worker_first_name=form.worker_first_name,
            worker_last_name=form.worker_last_name,
            department=form.department,
            case_number=form.case_number,
            allegations=form.allegations_json,
            parent_guardian_first_name=form.parent_guardian_first_name,
            parent_guardian_last_name=form.parent_guardian_last_name,
            zip_code=form.zip_code,
            alleged_perpetrator_first_name=form.alleged_perpetrator_first_name,
            alleged_perpetrator_last_name=form.alleged_perpetrator_last_name,
            number_of_children=form.number_of_children,
            total_items=sum(qty for qty in requested.values()),
        )
        db.session.add(checkout)
        db.session.flush()

        occurred_dt = utcnow()
        for line, row in resolved:
            db.session.add(CheckoutLine(
                checkout_id=checkout.id,
                item_id=row.item_id,
                size_id=row.id,
                quantity=line["quantity"],
                item_name=row.item.name,
                size_label=row.size_label,
            ))
            apply_delta(
                row,
                -line["quantity"],
                tx_type=TX_CHECKOUT,
                occurred_dt=occurred_dt,
                actor_name=form.worker_first_name + " " + form.worker_last_name,
                reason=f"Checkout case {form.case_number}",
                checkout_id=checkout.id,
            )
        db.session.flush()
        return checkout

    checkout = run_in_transaction(_op)
    current_app.logger.info(
        "checkout.committed id=%s location=%s lines=%s items=%s",
        checkout.id, location_id, len(lines), checkout.total_items,
    )
    return checkout


def create_checkout_from_payload(payload: dict) -> Checkout:
    """HTTP shape: case-file fields + location_id + items[] in one object."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    for key in payload.keys():
        if key not in CHECKOUT_FORM_FIELDS and key not in ("location_id", "items"):
            raise ValidationError(f"Field not allowed: {key}")

    form = validate_checkout_form({k: v for k, v in payload.items() if k in CHECKOUT_FORM_FIELDS})
    location_id = payload.get("location_id")
    if isinstance(location_id, str) and location_id.strip().isdigit():
        location_id = int(location_id)
    return create_checkout(location_id=location_id, form=form, items=payload.get("items"))


def get_checkout(checkout_id: int) -> Checkout:
    checkout = db.session.query(Checkout).filter_by(id=checkout_id).first()
    if checkout is None:
        raise NotFoundError("Checkout not found")
    return checkout


def list_checkouts(
    *,
    location_id: int | None = None,
    start: date | None = None,
    end: date | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Checkout]:
    """Newest first. start/end are inclusive checkout dates."""
    q = db.session.query(Checkout)
    if location_id is not None:
        q = q.filter(Checkout.location_id == location_id)
    if start is not None:
        q = q.filter(Checkout.checkout_date >= start)
    if end is not None:
        q = q.filter(Checkout.checkout_date <= end)
    return q.order_by(Checkout.checkout_date.desc(), Checkout.id.desc()).offset(offset).limit(limit).all()

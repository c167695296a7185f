# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/rainbow_room/services/inventory_service.py

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import (
    ItemSize,
    InventoryTransaction,
    Location,
    TX_ADDITION,
    TX_MANUAL_ADJUSTMENT,
    TX_TRANSFER_IN,
    TX_TRANSFER_OUT,
)
from ..errors import ValidationError, NotFoundError, InsufficientStockError
from rainbow_room.time_utils import utcnow, parse_iso_datetime
from .concurrency import lock_for_update, run_in_transaction
"""
Stock Ledger invariants (authoritative)

- ItemSize.current_quantity is the quantity on hand for one
  (item, size label, location) key and is never negative.
- Every change to current_quantity appends exactly one InventoryTransaction
  in the same DB transaction (a transfer touches two rows and appends two).
- Therefore SUM(quantity_delta) over a row's log entries == current_quantity.
  reconcile() reports any row where this does not hold.
- Sufficiency is checked before the row is written; the row is loaded with
  SELECT ... FOR UPDATE so concurrent mutations of one row serialize where
  the database honors row locks.

Time semantics:
- occurred_at is UTC-naive; callers may backdate (imports, corrections) but
  never post-date beyond a small clock-skew allowance.
"""


FUTURE_SKEW = timedelta(minutes=2)


def _parse_occurred_at(value):
    """
    Normalize occurred_at to canonical UTC-naive datetime.

    Accepts:
    - None -> utcnow() (UTC-naive)
    - datetime:
        - aware -> convert to UTC, strip tzinfo
        - naive -> treat as UTC-naive
    - str -> parse_iso_datetime (accepts Z/offsets; returns UTC-naive)
    """
    if value is None:
        return utcnow()

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            dt = value.astimezone(timezone.utc).replace(tzinfo=None)
        else:
            dt = value
    elif isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            raise ValidationError("invalid occurred_at")
        if dt is None:
            raise ValidationError("invalid occurred_at")
    else:
        raise ValidationError("invalid occurred_at")

    if dt > utcnow() + FUTURE_SKEW:
        raise ValidationError("occurred_at cannot be in the future")
    return dt


def _require_int(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer")
    return value


def _load_row(size_row_id: int, *, lock: bool = False) -> ItemSize:
    query = db.session.query(ItemSize).filter_by(id=size_row_id)
    if lock:
        query = lock_for_update(query)
    row = query.first()
    if row is None:
        raise NotFoundError("Stock row not found")
    return row


def get_size_row(size_row_id: int) -> ItemSize:
    return _load_row(size_row_id)


def apply_delta(
    row: ItemSize,
    delta: int,
    *,
    tx_type: str,
    occurred_dt: datetime,
    actor_name: str | None = None,
    reason: str | None = None,
    source: str | None = None,
    notes: str | None = None,
    counterpart_location_id: int | None = None,
    transfer_group: str | None = None,
    checkout_id: int | None = None,
) -> InventoryTransaction:
    """
    Core mutation without locking, retry or commit.

    Applies delta to one stock row and appends its log entry. Callers own the
    transaction (see run_in_transaction) so the pair commits or rolls back
    together.
    """
    if delta == 0:
        raise ValidationError("quantity delta must be non-zero")

    new_quantity = row.current_quantity + delta
    if new_quantity < 0:
        raise InsufficientStockError(
            f"Insufficient stock for {row.item.name} ({row.size_label}) at "
            f"{row.location.name}: available {row.current_quantity}, requested {-delta}",
            size_row_id=row.id,
            available=row.current_quantity,
            requested=-delta,
        )

    row.current_quantity = new_quantity

    entry = InventoryTransaction(
        item_id=row.item_id,
        size_id=row.id,
        location_id=row.location_id,
        size_label=row.size_label,
        type=tx_type,
        quantity_delta=delta,
        actor_name=actor_name,
        reason=reason,
        source=source,
        notes=notes,
        counterpart_location_id=counterpart_location_id,
        transfer_group=transfer_group,
        checkout_id=checkout_id,
        occurred_at=occurred_dt,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def set_quantity(
    size_row_id: int,
    new_quantity: int,
    *,
    actor_name: str | None = None,
    reason: str | None = None,
    occurred_at=None,
) -> tuple[ItemSize, InventoryTransaction | None]:
    """
    Absolute set of a stock row.

    Recorded as a MANUAL_ADJUSTMENT of (new - old) so the log still sums to
    the quantity. Setting the current value is a no-op and writes no entry.
    """
    _require_int("quantity", new_quantity)
    if new_quantity < 0:
        raise ValidationError("quantity must be >= 0")
    occurred_dt = _parse_occurred_at(occurred_at)

    def _op():
        row = _load_row(size_row_id, lock=True)
        delta = new_quantity - row.current_quantity
        if delta == 0:
            return row, None
        entry = apply_delta(
            row,
            delta,
            tx_type=TX_MANUAL_ADJUSTMENT,
            occurred_dt=occurred_dt,
            actor_name=actor_name,
            reason=reason or "Quantity set",
        )
        return row, entry

    row, entry = run_in_transaction(_op)
    if entry is not None:
        current_app.logger.info(
            "stock.set size_row=%s delta=%s quantity=%s", row.id, entry.quantity_delta, row.current_quantity
        )
    return row, entry


def adjust_quantity(
    size_row_id: int,
    delta: int,
    *,
    admin_name: str | None = None,
    reason: str | None = None,
    occurred_at=None,
) -> tuple[ItemSize, InventoryTransaction]:
    """Relative manual adjustment; fails with InsufficientStockError rather than going negative."""
    _require_int("quantity_delta", delta)
    if delta == 0:
        raise ValidationError("quantity_delta must be non-zero")
    occurred_dt = _parse_occurred_at(occurred_at)

    def _op():
        row = _load_row(size_row_id, lock=True)
        entry = apply_delta(
            row,
            delta,
            tx_type=TX_MANUAL_ADJUSTMENT,
            occurred_dt=occurred_dt,
            actor_name=admin_name,
            reason=reason,
        )
        return row, entry

    row, entry = run_in_transaction(_op)
    current_app.logger.info(
        "stock.adjusted size_row=%s delta=%s quantity=%s by=%s", row.id, delta, row.current_quantity, admin_name
    )
    return row, entry


def add_stock(
    size_row_id: int,
    quantity: int,
    *,
    volunteer_name: str | None = None,
    source: str | None = None,
    notes: str | None = None,
    occurred_at=None,
) -> tuple[ItemSize, InventoryTransaction]:
    """Donation intake: ADDITION entry with a positive delta."""
    _require_int("quantity", quantity)
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")
    occurred_dt = _parse_occurred_at(occurred_at)

    def _op():
        row = _load_row(size_row_id, lock=True)
        entry = apply_delta(
            row,
            quantity,
            tx_type=TX_ADDITION,
            occurred_dt=occurred_dt,
            actor_name=volunteer_name,
            source=source,
            notes=notes,
        )
        return row, entry

    row, entry = run_in_transaction(_op)
    current_app.logger.info(
        "stock.added size_row=%s quantity=%s total=%s", row.id, quantity, row.current_quantity
    )
    return row, entry


def ensure_size_row(item_id: int, size_label: str, location_id: int, *, sort_order: int = 0) -> ItemSize:
    """Find or create the stock row for (item, size label, location). Flushes, never commits."""
    row = lock_for_update(
        db.session.query(ItemSize).filter_by(item_id=item_id, size_label=size_label, location_id=location_id)
    ).first()
    if row is not None:
        return row
    row = ItemSize(
        item_id=item_id,
        size_label=size_label,
        location_id=location_id,
        current_quantity=0,
        sort_order=sort_order,
    )
    db.session.add(row)
    db.session.flush()
    return row


def transfer_stock(
    size_row_id: int,
    to_location_id: int,
    quantity: int,
    *,
    actor_name: str | None = None,
    notes: str | None = None,
    occurred_at=None,
) -> dict:
    """
    Move quantity of one item/size to another location.

    Writes a TRANSFER_OUT on the source row and a TRANSFER_IN on the
    destination row (created on demand), sharing a transfer_group and naming
    each other's location. Total quantity over both rows is unchanged.
    """
    _require_int("quantity", quantity)
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")
    occurred_dt = _parse_occurred_at(occurred_at)

    def _op():
        source_row = _load_row(size_row_id, lock=True)
        if source_row.location_id == to_location_id:
            raise ValidationError("Cannot transfer to the same location")

        destination = db.session.query(Location).filter_by(id=to_location_id).first()
        if destination is None:
            raise NotFoundError("Destination location not found")
        if not destination.is_active:
            raise ValidationError(f"Location {destination.name} is inactive")

        dest_row = ensure_size_row(
            source_row.item_id,
            source_row.size_label,
            to_location_id,
            sort_order=source_row.sort_order,
        )

        group = str(uuid.uuid4())
        out_entry = apply_delta(
            source_row,
            -quantity,
            tx_type=TX_TRANSFER_OUT,
            occurred_dt=occurred_dt,
            actor_name=actor_name,
            notes=notes,
            counterpart_location_id=to_location_id,
            transfer_group=group,
        )
        in_entry = apply_delta(
            dest_row,
            quantity,
            tx_type=TX_TRANSFER_IN,
            occurred_dt=occurred_dt,
            actor_name=actor_name,
            notes=notes,
            counterpart_location_id=source_row.location_id,
            transfer_group=group,
        )
        return {
            "source": source_row,
            "destination": dest_row,
            "transfer_out": out_entry,
            "transfer_in": in_entry,
            "transfer_group": group,
        }

    result = run_in_transaction(_op)
    current_app.logger.info(
        "stock.transferred size_row=%s to_location=%s quantity=%s group=%s",
        size_row_id, to_location_id, quantity, result["transfer_group"],
    )
    return result


def quantity_from_ledger(size_row_id: int, as_of: datetime | None = None) -> int:
    """SUM(quantity_delta) for one stock row, optionally as-of (inclusive)."""
    q = db.session.query(
        func.coalesce(func.sum(InventoryTransaction.quantity_delta), 0)
    ).filter(InventoryTransaction.size_id == size_row_id)
    if as_of is not None:
        q = q.filter(InventoryTransaction.occurred_at <= as_of)
    return int(q.scalar() or 0)


def reconcile(size_row_id: int | None = None) -> dict:
    """Compare every stock row (or one) against the sum of its log deltas."""
    sums = db.session.query(
        InventoryTransaction.size_id.label("size_id"),
        func.coalesce(func.sum(InventoryTransaction.quantity_delta), 0).label("ledger_quantity"),
    ).group_by(InventoryTransaction.size_id).subquery()

    q = db.session.query(ItemSize, sums.c.ledger_quantity).outerjoin(sums, sums.c.size_id == ItemSize.id)
    if size_row_id is not None:
        _load_row(size_row_id)
        q = q.filter(ItemSize.id == size_row_id)

    checked = 0
    mismatches = []
    for row, ledger_quantity in q.order_by(ItemSize.id.asc()).all():
        checked += 1
        ledger_quantity = int(ledger_quantity or 0)
        if ledger_quantity != row.current_quantity:
            mismatches.append({
                "size_id": row.id,
                "item_id": row.item_id,
                "location_id": row.location_id,
                "size_label": row.size_label,
                "current_quantity": row.current_quantity,
                "ledger_quantity": ledger_quantity,
                "difference": row.current_quantity - ledger_quantity,
            })

    return {"checked": checked, "mismatch_count": len(mismatches), "mismatches": mismatches}


def list_transactions(
    *,
    item_id: int | None = None,
    size_row_id: int | None = None,
    location_id: int | None = None,
    tx_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 200,
    offset: int = 0,
) -> list[InventoryTransaction]:
    """Log entries newest first. start is inclusive, end is exclusive."""
    q = db.session.query(InventoryTransaction)
    if item_id is not None:
        q = q.filter(InventoryTransaction.item_id == item_id)
    if size_row_id is not None:
        q = q.filter(InventoryTransaction.size_id == size_row_id)
    if location_id is not None:
        q = q.filter(InventoryTransaction.location_id == location_id)
    if tx_type is not None:
        q = q.filter(InventoryTransaction.type == tx_type)
    if start is not None:
        q = q.filter(InventoryTransaction.occurred_at >= start)
    if end is not None:
        q = q.filter(InventoryTransaction.occurred_at < end)

    return q.order_by(
        InventoryTransaction.occurred_at.desc(),
        InventoryTransaction.id.desc(),
    ).offset(offset).limit(limit).all()

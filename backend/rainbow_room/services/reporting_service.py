# Overview: Service-layer operations for reporting; read-only aggregations over the stock ledger and log.

from __future__ import annotations

from collections import OrderedDict
from datetime import date, datetime

from sqlalchemy import func, case

from ..extensions import db
from ..models import (
    Item,
    ItemSize,
    Location,
    Category,
    ItemDetail,
    InventoryTransaction,
    Checkout,
    CheckoutLine,
    VolunteerSession,
    TX_ADDITION,
    TX_CHECKOUT,
    TX_MANUAL_ADJUSTMENT,
    TX_TRANSFER_IN,
    TX_TRANSFER_OUT,
)
from ..errors import ValidationError, NotFoundError
from rainbow_room.time_utils import (
    parse_iso_date,
    day_bounds,
    month_bounds,
    to_iso_date,
    to_utc_z,
    format_clock_time,
    utcnow,
)


DEFAULT_POPULAR_LIMIT = 10
TOP_ITEMS_LIMIT = 10

STATUS_LOW = "LOW"
STATUS_OK = "OK"
STATUS_HIGH = "HIGH"


class ReportError(ValidationError):
    """Raised when report parameters are invalid."""


def _parse_dates(start: str | None, end: str | None) -> tuple[date | None, date | None]:
    try:
        start_d = parse_iso_date(start)
        end_d = parse_iso_date(end)
    except ValueError as e:
        raise ReportError(str(e))
    if start_d and end_d and start_d > end_d:
        raise ReportError("start_date must be on or before end_date")
    return start_d, end_d


def _parse_month(year, month) -> tuple[datetime, datetime]:
    try:
        year, month = int(year), int(month)
    except (TypeError, ValueError):
        raise ReportError("year and month must be integers")
    try:
        return month_bounds(year, month)
    except ValueError as e:
        raise ReportError(str(e))


def _effective_min():
    return func.coalesce(ItemSize.min_stock_level, Item.min_stock_level)


def stock_status(quantity: int, min_level: int) -> str:
    if quantity <= min_level:
        return STATUS_LOW
    if quantity > min_level * 2:
        return STATUS_HIGH
    return STATUS_OK


def _stock_rows(location_id: int | None):
    min_level = _effective_min().label("min_stock_level")
    q = db.session.query(ItemSize, Item, Location, min_level).join(
        Item, Item.id == ItemSize.item_id
    ).join(
        Location, Location.id == ItemSize.location_id
    ).filter(Location.is_active.is_(True))
    if location_id is not None:
        q = q.filter(ItemSize.location_id == location_id)
    return q, min_level


def current_inventory(*, location_id: int | None = None) -> dict:
    q, _ = _stock_rows(location_id)
    rows = []
    for row, item, location, min_level in q.order_by(Item.name.asc(), ItemSize.sort_order.asc(), Location.name.asc()).all():
        rows.append({
            "size_id": row.id,
            "item_id": item.id,
            "item_name": item.name,
            "description": item.description,
            "size_label": row.size_label,
            "current_quantity": row.current_quantity,
            "min_stock_level": int(min_level),
            "stock_status": stock_status(row.current_quantity, int(min_level)),
            "location_id": location.id,
            "location_name": location.name,
            "unit_type": item.unit_type,
        })
    return {"location_id": location_id, "rows": rows}


def low_stock(*, location_id: int | None = None) -> dict:
    """
    Stock rows at or below their minimum.

    needed_quantity restocks to twice the minimum: 2 * min - current.
    """
    q, min_level = _stock_rows(location_id)
    q = q.filter(ItemSize.current_quantity <= min_level)
    rows = []
    for row, item, location, level in q.order_by(
        (min_level - ItemSize.current_quantity).desc(), Item.name.asc(), ItemSize.id.asc()
    ).all():
        level = int(level)
        rows.append({
            "size_id": row.id,
            "item_id": item.id,
            "item_name": item.name,
            "size_label": row.size_label,
            "location_id": location.id,
            "location_name": location.name,
            "current_quantity": row.current_quantity,
            "min_stock_level": level,
            "needed_quantity": 2 * level - row.current_quantity,
            "unit_type": item.unit_type,
        })
    return {"location_id": location_id, "rows": rows}


def category_low_stock() -> dict:
    """Categories whose active item detail count is <= low_stock_threshold."""
    counts = db.session.query(
        ItemDetail.category_id.label("category_id"),
        func.count(ItemDetail.id).label("total"),
    ).filter(ItemDetail.is_active.is_(True)).group_by(ItemDetail.category_id).subquery()

    total = func.coalesce(counts.c.total, 0)
    q = db.session.query(Category, total).outerjoin(counts, counts.c.category_id == Category.id).filter(
        total <= Category.low_stock_threshold
    ).order_by(Category.name.asc())

    rows = [
        {
            "category_id": category.id,
            "name": category.name,
            "total_quantity": int(count),
            "low_stock_threshold": category.low_stock_threshold,
            "shortfall": category.low_stock_threshold - int(count),
        }
        for category, count in q.all()
    ]
    return {"rows": rows}


def checkout_report(*, start: str | None = None, end: str | None = None, location_id: int | None = None) -> dict:
    start_d, end_d = _parse_dates(start, end)
    q = db.session.query(Checkout, CheckoutLine, Location, Item).join(
        CheckoutLine, CheckoutLine.checkout_id == Checkout.id
    ).join(
        Location, Location.id == Checkout.location_id
    ).join(
        Item, Item.id == CheckoutLine.item_id
    )
    if start_d:
        q = q.filter(Checkout.checkout_date >= start_d)
    if end_d:
        q = q.filter(Checkout.checkout_date <= end_d)
    if location_id is not None:
        q = q.filter(Checkout.location_id == location_id)

    rows = [
        {
            "checkout_id": checkout.id,
            "checkout_date": to_iso_date(checkout.checkout_date),
            "location_name": location.name,
            "item_name": line.item_name,
            "size_label": line.size_label,
            "quantity": line.quantity,
            "case_worker": checkout.case_worker,
            "client_info": f"{checkout.parent_guardian_first_name} {checkout.parent_guardian_last_name}",
            "department": checkout.department,
            "unit_type": item.unit_type,
        }
        for checkout, line, location, item in q.order_by(
            Checkout.checkout_date.desc(), Checkout.id.desc(), CheckoutLine.item_name.asc()
        ).all()
    ]
    return {
        "start_date": to_iso_date(start_d),
        "end_date": to_iso_date(end_d),
        "location_id": location_id,
        "total_quantity": sum(r["quantity"] for r in rows),
        "rows": rows,
    }


def popular_items(
    *,
    start: str | None = None,
    end: str | None = None,
    location_id: int | None = None,
    limit: int | None = DEFAULT_POPULAR_LIMIT,
) -> dict:
    """CHECKOUT log entries grouped by item and size label, most frequent first."""
    start_d, end_d = _parse_dates(start, end)
    if limit is not None and limit <= 0:
        raise ReportError("limit must be > 0")
    start_dt, end_dt = day_bounds(start_d, end_d)

    times = func.count(InventoryTransaction.id).label("times_checked_out")
    quantity = (-func.sum(InventoryTransaction.quantity_delta)).label("total_quantity")
    q = db.session.query(
        InventoryTransaction.item_id,
        Item.name,
        InventoryTransaction.size_label,
        times,
        quantity,
        func.max(InventoryTransaction.occurred_at).label("last_checkout"),
    ).join(Item, Item.id == InventoryTransaction.item_id).filter(
        InventoryTransaction.type == TX_CHECKOUT
    )
    if start_dt:
        q = q.filter(InventoryTransaction.occurred_at >= start_dt)
    if end_dt:
        q = q.filter(InventoryTransaction.occurred_at < end_dt)
    if location_id is not None:
        q = q.filter(InventoryTransaction.location_id == location_id)

    q = q.group_by(InventoryTransaction.item_id, Item.name, InventoryTransaction.size_label).order_by(
        times.desc(), quantity.desc(), Item.name.asc()
    )
    if limit:
        q = q.limit(limit)

    rows = [
        {
            "item_id": item_id,
            "item_name": name,
            "size_label": size_label,
            "times_checked_out": int(count),
            "total_quantity": int(total or 0),
            "last_checkout": _date_of(last),
        }
        for item_id, name, size_label, count, total, last in q.all()
    ]
    return {"start_date": to_iso_date(start_d), "end_date": to_iso_date(end_d), "rows": rows}


def _date_of(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)[:10]


def transaction_history(
    item_id: int,
    *,
    start: str | None = None,
    end: str | None = None,
    location_id: int | None = None,
) -> dict:
    """Every log entry for one item, newest first."""
    item = db.session.query(Item).filter_by(id=item_id).first()
    if item is None:
        raise NotFoundError("Item not found")
    start_d, end_d = _parse_dates(start, end)
    start_dt, end_dt = day_bounds(start_d, end_d)

    q = db.session.query(InventoryTransaction).filter(InventoryTransaction.item_id == item_id)
    if start_dt:
        q = q.filter(InventoryTransaction.occurred_at >= start_dt)
    if end_dt:
        q = q.filter(InventoryTransaction.occurred_at < end_dt)
    if location_id is not None:
        q = q.filter(InventoryTransaction.location_id == location_id)

    entries = q.order_by(InventoryTransaction.occurred_at.desc(), InventoryTransaction.id.desc()).all()
    return {
        "item_id": item.id,
        "item_name": item.name,
        "rows": [e.to_dict() for e in entries],
    }


_MOVEMENT_KEYS = (
    "additions",
    "checkouts",
    "transfers_in",
    "transfers_out",
    "manual_additions",
    "manual_subtractions",
)


def _movement_bucket(tx_type: str, positive: bool) -> str | None:
    if tx_type == TX_ADDITION:
        return "additions"
    if tx_type == TX_CHECKOUT:
        return "checkouts"
    if tx_type == TX_TRANSFER_IN:
        return "transfers_in"
    if tx_type == TX_TRANSFER_OUT:
        return "transfers_out"
    if tx_type == TX_MANUAL_ADJUSTMENT:
        return "manual_additions" if positive else "manual_subtractions"
    return None


def monthly_movements(*, year: int, month: int, location_id: int | None = None) -> dict:
    """
    Per stock row: totals and counts of each movement kind within the month.

    Totals are magnitudes; net_change is signed. starting_quantity is the log
    sum before the month, so ending_quantity - starting_quantity == net_change.
    Rows without movement in the month are omitted.
    """
    start_dt, end_dt = _parse_month(year, month)

    positive = case((InventoryTransaction.quantity_delta > 0, 1), else_=0).label("positive")
    q = db.session.query(
        InventoryTransaction.size_id,
        InventoryTransaction.type,
        positive,
        func.sum(InventoryTransaction.quantity_delta),
        func.count(InventoryTransaction.id),
    ).join(Location, Location.id == InventoryTransaction.location_id).filter(
        InventoryTransaction.occurred_at >= start_dt,
        InventoryTransaction.occurred_at < end_dt,
        Location.is_active.is_(True),
    )
    if location_id is not None:
        q = q.filter(InventoryTransaction.location_id == location_id)
    grouped = q.group_by(InventoryTransaction.size_id, InventoryTransaction.type, positive).all()

    movements: "OrderedDict[int, dict]" = OrderedDict()
    for size_id, tx_type, is_positive, total, count in grouped:
        bucket = _movement_bucket(tx_type, bool(is_positive))
        if bucket is None:
            continue
        acc = movements.setdefault(size_id, {f"{k}_{s}": 0 for k in _MOVEMENT_KEYS for s in ("total", "count")})
        acc[f"{bucket}_total"] += abs(int(total or 0))
        acc[f"{bucket}_count"] += int(count)

    if not movements:
        return {"year": int(year), "month": int(month), "location_id": location_id, "rows": []}

    starting = dict(
        db.session.query(
            InventoryTransaction.size_id,
            func.coalesce(func.sum(InventoryTransaction.quantity_delta), 0),
        ).filter(
            InventoryTransaction.size_id.in_(list(movements.keys())),
            InventoryTransaction.occurred_at < start_dt,
        ).group_by(InventoryTransaction.size_id).all()
    )

    size_rows = db.session.query(ItemSize, Item, Location).join(Item, Item.id == ItemSize.item_id).join(
        Location, Location.id == ItemSize.location_id
    ).filter(ItemSize.id.in_(list(movements.keys()))).all()

    rows = []
    for size_row, item, location in size_rows:
        acc = movements[size_row.id]
        net = (
            acc["additions_total"] + acc["transfers_in_total"] + acc["manual_additions_total"]
            - acc["checkouts_total"] - acc["transfers_out_total"] - acc["manual_subtractions_total"]
        )
        start_qty = int(starting.get(size_row.id, 0) or 0)
        rows.append({
            "size_id": size_row.id,
            "item_id": item.id,
            "item_name": item.name,
            "size_label": size_row.size_label,
            "location_id": location.id,
            "location_name": location.name,
            "unit_type": item.unit_type,
            **acc,
            "net_change": net,
            "starting_quantity": start_qty,
            "ending_quantity": start_qty + net,
        })

    rows.sort(key=lambda r: (r["item_name"], r["size_label"], r["location_name"]))
    return {"year": int(year), "month": int(month), "location_id": location_id, "rows": rows}


def _volunteer_query(start_d, end_d, location_id):
    q = db.session.query(VolunteerSession, Location).join(Location, Location.id == VolunteerSession.location_id)
    if start_d:
        q = q.filter(VolunteerSession.session_date >= start_d)
    if end_d:
        q = q.filter(VolunteerSession.session_date <= end_d)
    if location_id is not None:
        q = q.filter(VolunteerSession.location_id == location_id)
    return q


def volunteer_hours(*, start: str | None = None, end: str | None = None, location_id: int | None = None) -> dict:
    """
    Hours and session counts by volunteer and by location.

    Sessions without hours (still active) count as sessions with 0 hours.
    average_session_length = total_hours / total_sessions.
    """
    start_d, end_d = _parse_dates(start, end)
    sessions = _volunteer_query(start_d, end_d, location_id).all()

    by_volunteer: dict[str, dict] = {}
    by_location: dict[int, dict] = {}
    for session, location in sessions:
        hours = float(session.hours_worked or 0)

        v = by_volunteer.setdefault(session.volunteer_name, {
            "volunteer_name": session.volunteer_name,
            "total_hours": 0.0,
            "total_sessions": 0,
            "last_session_date": None,
            "_locations": set(),
        })
        v["total_hours"] += hours
        v["total_sessions"] += 1
        v["_locations"].add(location.name)
        if v["last_session_date"] is None or session.session_date > v["last_session_date"]:
            v["last_session_date"] = session.session_date

        loc = by_location.setdefault(location.id, {
            "location_id": location.id,
            "location_name": location.name,
            "total_hours": 0.0,
            "total_sessions": 0,
        })
        loc["total_hours"] += hours
        loc["total_sessions"] += 1

    volunteer_rows = []
    for v in by_volunteer.values():
        locations = sorted(v.pop("_locations"))
        volunteer_rows.append({
            **v,
            "total_hours": round(v["total_hours"], 2),
            "avg_hours_per_session": round(v["total_hours"] / v["total_sessions"], 2),
            "last_session_date": to_iso_date(v["last_session_date"]),
            "locations_worked": ", ".join(locations),
        })
    volunteer_rows.sort(key=lambda r: (-r["total_hours"], r["volunteer_name"]))

    location_rows = [
        {**loc, "total_hours": round(loc["total_hours"], 2)}
        for loc in sorted(by_location.values(), key=lambda r: (-r["total_hours"], r["location_name"]))
    ]

    total_sessions = len(sessions)
    total_hours = round(sum(float(s.hours_worked or 0) for s, _ in sessions), 2)
    return {
        "start_date": to_iso_date(start_d),
        "end_date": to_iso_date(end_d),
        "location_id": location_id,
        "total_hours": total_hours,
        "total_sessions": total_sessions,
        "average_session_length": round(total_hours / total_sessions, 2) if total_sessions else 0.0,
        "by_volunteer": volunteer_rows,
        "by_location": location_rows,
    }


def daily_volunteers(*, start: str | None = None, end: str | None = None, location_id: int | None = None) -> dict:
    start_d, end_d = _parse_dates(start, end)
    q = _volunteer_query(start_d, end_d, location_id).order_by(
        VolunteerSession.session_date.desc(), VolunteerSession.start_time.desc(), VolunteerSession.id.desc()
    )
    rows = [
        {
            "session_id": session.id,
            "session_date": to_iso_date(session.session_date),
            "volunteer_name": session.volunteer_name,
            "location_name": location.name,
            "start_time": format_clock_time(session.start_time),
            "end_time": format_clock_time(session.end_time) or "",
            "hours_worked": session.hours_worked or 0,
            "tasks_performed": session.tasks_performed or "",
            "notes": session.notes or "",
        }
        for session, location in q.all()
    ]
    return {"start_date": to_iso_date(start_d), "end_date": to_iso_date(end_d), "rows": rows}


def item_master() -> dict:
    items = db.session.query(Item).order_by(Item.name.asc()).all()
    rows = []
    for item in items:
        if item.has_sizes:
            labels = list(OrderedDict.fromkeys(s.size_label for s in item.sizes))
            available = ", ".join(labels)
        else:
            available = "N/A"
        rows.append({
            "item_id": item.id,
            "code": item.code,
            "name": item.name,
            "description": item.description or "",
            "has_sizes": item.has_sizes,
            "available_sizes": available,
            "min_stock_level": item.min_stock_level,
            "unit_type": item.unit_type,
            "storage_location": item.storage_location or "",
        })
    return {"rows": rows}


def monthly_summary(*, year: int | None = None, month: int | None = None) -> dict:
    now = utcnow()
    year = year or now.year
    month = month or now.month
    start_dt, end_dt = _parse_month(year, month)
    start_d, last_d = start_dt.date(), end_dt.date()

    distributed = db.session.query(func.coalesce(func.sum(CheckoutLine.quantity), 0)).join(
        Checkout, Checkout.id == CheckoutLine.checkout_id
    ).filter(Checkout.checkout_date >= start_d, Checkout.checkout_date < last_d).scalar()

    new_items = db.session.query(func.count(Item.id)).filter(
        Item.created_at >= start_dt, Item.created_at < end_dt
    ).scalar()

    hours, volunteers = db.session.query(
        func.coalesce(func.sum(VolunteerSession.hours_worked), 0),
        func.count(func.distinct(VolunteerSession.volunteer_name)),
    ).filter(VolunteerSession.session_date >= start_d, VolunteerSession.session_date < last_d).one()

    checkout_count = func.count(Checkout.id).label("checkout_count")
    activity = db.session.query(Location.name, checkout_count).outerjoin(
        Checkout,
        (Checkout.location_id == Location.id)
        & (Checkout.checkout_date >= start_d)
        & (Checkout.checkout_date < last_d),
    ).filter(Location.is_active.is_(True)).group_by(Location.id, Location.name).order_by(
        checkout_count.desc(), Location.name.asc()
    ).all()

    quantity = func.sum(CheckoutLine.quantity).label("total_quantity")
    top = db.session.query(CheckoutLine.item_name, CheckoutLine.size_label, quantity).join(
        Checkout, Checkout.id == CheckoutLine.checkout_id
    ).filter(
        Checkout.checkout_date >= start_d, Checkout.checkout_date < last_d
    ).group_by(CheckoutLine.item_id, CheckoutLine.item_name, CheckoutLine.size_label).order_by(
        quantity.desc(), CheckoutLine.item_name.asc()
    ).limit(TOP_ITEMS_LIMIT).all()

    return {
        "year": int(year),
        "month": int(month),
        "total_items_distributed": int(distributed or 0),
        "new_items_added": int(new_items or 0),
        "total_volunteer_hours": round(float(hours or 0), 2),
        "unique_volunteers": int(volunteers or 0),
        "most_active_location": activity[0][0] if activity else "N/A",
        "least_active_location": activity[-1][0] if activity else "N/A",
        "top_items": [
            {"item_name": name, "size_label": size_label, "total_quantity": int(total or 0)}
            for name, size_label, total in top
        ],
        "generated_at": to_utc_z(now),
    }

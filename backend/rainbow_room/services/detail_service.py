# Overview: Service-layer operations for item details; encapsulates business logic and database work.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import ItemDetail, Category, Size, Location, CONDITIONS
from ..errors import ValidationError, NotFoundError
from ..validation import ModelValidationPolicy, validate_payload
from rainbow_room.time_utils import utcnow
from .concurrency import lock_for_update, run_in_transaction
from .identifier_service import generate_detail_code


DETAIL_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "category_id",
        "size_id",
        "location_id",
        "condition",
        "received_date",
        "donor_info",
        "approx_price",
    },
    required_on_create={"category_id", "location_id", "condition", "received_date"},
)

DETAIL_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "category_id",
        "size_id",
        "location_id",
        "condition",
        "received_date",
        "donor_info",
        "approx_price",
    },
)


def enforce_rules_detail(patch: dict) -> None:
    if "condition" in patch and patch["condition"] not in CONDITIONS:
        raise ValidationError(f"condition must be one of: {', '.join(CONDITIONS)}")
    if patch.get("approx_price") is not None and patch["approx_price"] < 0:
        raise ValidationError("approx_price must be >= 0")


def _check_references(patch: dict) -> None:
    if "category_id" in patch and db.session.query(Category).filter_by(id=patch["category_id"]).first() is None:
        raise NotFoundError("Category not found")
    if patch.get("size_id") is not None and db.session.query(Size).filter_by(id=patch["size_id"]).first() is None:
        raise NotFoundError("Size not found")
    if "location_id" in patch and db.session.query(Location).filter_by(id=patch["location_id"]).first() is None:
        raise NotFoundError("Location not found")


def create_detail_inner(**fields) -> ItemDetail:
    """Insert an active detail with a fresh QR value, without commit."""
    detail = ItemDetail(is_active=True, qr_code_value=generate_detail_code(), **fields)
    db.session.add(detail)
    db.session.flush()
    return detail


def create_detail(payload: dict) -> ItemDetail:
    patch = validate_payload(model=ItemDetail, payload=payload, policy=DETAIL_CREATE_POLICY, partial=False)
    enforce_rules_detail(patch)

    def _op():
        _check_references(patch)
        return create_detail_inner(**patch)

    detail = run_in_transaction(_op)
    current_app.logger.info("detail.created id=%s category=%s", detail.id, detail.category_id)
    return detail


def get_detail(detail_id: int) -> ItemDetail:
    detail = db.session.query(ItemDetail).filter_by(id=detail_id).first()
    if detail is None:
        raise NotFoundError("Item detail not found")
    return detail


def list_details(
    *,
    category_id: int | None = None,
    location_id: int | None = None,
    is_active: bool | None = None,
    limit: int = 500,
    offset: int = 0,
) -> list[ItemDetail]:
    q = db.session.query(ItemDetail)
    if category_id is not None:
        q = q.filter(ItemDetail.category_id == category_id)
    if location_id is not None:
        q = q.filter(ItemDetail.location_id == location_id)
    if is_active is not None:
        q = q.filter(ItemDetail.is_active.is_(is_active))
    return q.order_by(ItemDetail.received_date.desc(), ItemDetail.id.desc()).offset(offset).limit(limit).all()


def update_detail(detail_id: int, payload: dict) -> ItemDetail:
    """Edit an active detail. Inactive details are history and refuse edits."""
    patch = validate_payload(model=ItemDetail, payload=payload, policy=DETAIL_UPDATE_POLICY, partial=True)
    enforce_rules_detail(patch)

    def _op():
        detail = lock_for_update(db.session.query(ItemDetail).filter_by(id=detail_id)).first()
        if detail is None:
            raise NotFoundError("Item detail not found")
        if not detail.is_active:
            raise ValidationError("Inactive item details cannot be edited")
        _check_references(patch)
        for key, value in patch.items():
            setattr(detail, key, value)
        db.session.flush()
        return detail

    return run_in_transaction(_op)


def deactivate_detail(detail_id: int) -> ItemDetail:
    """Terminal transition active -> inactive. There is no reactivation."""
    def _op():
        detail = lock_for_update(db.session.query(ItemDetail).filter_by(id=detail_id)).first()
        if detail is None:
            raise NotFoundError("Item detail not found")
        if not detail.is_active:
            raise ValidationError("Item detail is already inactive")
        detail.is_active = False
        detail.deactivated_at = utcnow()
        db.session.flush()
        return detail

    detail = run_in_transaction(_op)
    current_app.logger.info("detail.deactivated id=%s", detail.id)
    return detail

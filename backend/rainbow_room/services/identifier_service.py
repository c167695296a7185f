# Overview: Service-layer operations for scannable codes; encapsulates generation and lookup.

"""
Identifier Service - QR code values and scan resolution

Three entity kinds carry a printed code:
- Item:        RR-XXXXXXXX (prefix from config, 8 uppercase hex chars)
- Category:    category-<uuid4>
- ItemDetail:  item-<uuid4>

A scanned value must resolve to exactly one entity. Generation retries until
the candidate is unused; the unique constraints on each column are the final
guard (an IntegrityError surfaces as DuplicateKeyError).
"""

from __future__ import annotations

import uuid

from flask import current_app

from ..extensions import db
from ..models import Item, Category, ItemDetail
from ..errors import NotFoundError, DuplicateKeyError, ValidationError


MAX_GENERATION_ATTEMPTS = 10

ENTITY_ITEM = "item"
ENTITY_CATEGORY = "category"
ENTITY_ITEM_DETAIL = "item_detail"


def normalize_code(value: str | None) -> str:
    return (value or "").strip()


def _unique(column, make) -> str:
    for _ in range(MAX_GENERATION_ATTEMPTS):
        candidate = make()
        exists = db.session.query(column).filter(column == candidate).first()
        if exists is None:
            return candidate
    raise DuplicateKeyError("Could not generate a unique code")


def generate_item_code() -> str:
    prefix = current_app.config.get("ITEM_CODE_PREFIX", "RR-")
    return _unique(Item.code, lambda: f"{prefix}{uuid.uuid4().hex[:8].upper()}")


def generate_category_code() -> str:
    return _unique(Category.qr_code_value, lambda: f"category-{uuid.uuid4()}")


def generate_detail_code() -> str:
    return _unique(ItemDetail.qr_code_value, lambda: f"item-{uuid.uuid4()}")


def lookup_by_code(value: str) -> tuple[str, object]:
    """
    Resolve a scanned code to (entity_type, entity).

    Raises NotFoundError when nothing matches and DuplicateKeyError when the
    value is ambiguous across entity kinds.
    """
    code = normalize_code(value)
    if not code:
        raise ValidationError("code is required")

    matches: list[tuple[str, object]] = []

    item = db.session.query(Item).filter(Item.code == code).first()
    if item is not None:
        matches.append((ENTITY_ITEM, item))

    category = db.session.query(Category).filter(Category.qr_code_value == code).first()
    if category is not None:
        matches.append((ENTITY_CATEGORY, category))

    detail = db.session.query(ItemDetail).filter(ItemDetail.qr_code_value == code).first()
    if detail is not None:
        matches.append((ENTITY_ITEM_DETAIL, detail))

    if not matches:
        raise NotFoundError(f"No item, category or item detail matches code {code}")
    if len(matches) > 1:
        kinds = ", ".join(kind for kind, _ in matches)
        raise DuplicateKeyError(f"Ambiguous code {code}: matches {kinds}")
    return matches[0]

# Overview: Service-layer operations for categories and sizes; encapsulates business logic and database work.

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Category, Size, CategorySize, ItemDetail
from ..errors import ValidationError, NotFoundError, DuplicateKeyError, ConflictError
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import lock_for_update, run_in_transaction
from .identifier_service import generate_category_code


CATEGORY_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "low_stock_threshold"},
    required_on_create={"name"},
)

CATEGORY_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "low_stock_threshold"},
)


def _category_totals() -> dict[int, int]:
    rows = db.session.query(
        ItemDetail.category_id,
        func.count(ItemDetail.id),
    ).filter(ItemDetail.is_active.is_(True)).group_by(ItemDetail.category_id).all()
    return {category_id: int(count) for category_id, count in rows}


def category_total(category_id: int) -> int:
    """Count of active item details in the category."""
    return int(
        db.session.query(func.count(ItemDetail.id))
        .filter(ItemDetail.category_id == category_id, ItemDetail.is_active.is_(True))
        .scalar()
        or 0
    )


def list_categories(*, with_totals: bool = True) -> list[dict]:
    categories = db.session.query(Category).order_by(Category.name.asc()).all()
    totals = _category_totals() if with_totals else {}
    return [
        c.to_dict(total_quantity=totals.get(c.id, 0) if with_totals else None)
        for c in categories
    ]


def get_category(category_id: int) -> Category:
    category = db.session.query(Category).filter_by(id=category_id).first()
    if category is None:
        raise NotFoundError("Category not found")
    return category


def get_category_by_name(name: str) -> Category | None:
    return db.session.query(Category).filter_by(name=name).first()


def _check_threshold(patch: dict) -> None:
    if patch.get("low_stock_threshold") is not None and patch["low_stock_threshold"] < 0:
        raise ValidationError("low_stock_threshold must be >= 0")


def create_category_inner(*, name: str, description: str | None = None, low_stock_threshold: int | None = None) -> Category:
    """Insert without commit. Shared with the import engine."""
    if get_category_by_name(name):
        raise DuplicateKeyError(f"Category {name} already exists")
    if low_stock_threshold is None:
        low_stock_threshold = current_app.config.get("DEFAULT_LOW_STOCK_THRESHOLD", 5)
    category = Category(
        name=name,
        description=description,
        low_stock_threshold=low_stock_threshold,
        qr_code_value=generate_category_code(),
    )
    db.session.add(category)
    db.session.flush()
    return category


def create_category(payload: dict) -> Category:
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_CREATE_POLICY, partial=False)
    _check_threshold(patch)
    return run_in_transaction(lambda: create_category_inner(
        name=patch["name"],
        description=patch.get("description"),
        low_stock_threshold=patch.get("low_stock_threshold"),
    ))


def update_category(category_id: int, payload: dict) -> Category:
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_UPDATE_POLICY, partial=True)
    _check_threshold(patch)

    def _op():
        category = lock_for_update(db.session.query(Category).filter_by(id=category_id)).first()
        if category is None:
            raise NotFoundError("Category not found")
        if "name" in patch and patch["name"] != category.name:
            if get_category_by_name(patch["name"]):
                raise DuplicateKeyError(f"Category {patch['name']} already exists")
        for key, value in patch.items():
            setattr(category, key, value)
        db.session.flush()
        return category

    return run_in_transaction(_op)


def delete_category(category_id: int) -> None:
    """Refused while any item detail (active or not) references the category."""
    def _op():
        category = db.session.query(Category).filter_by(id=category_id).first()
        if category is None:
            raise NotFoundError("Category not found")
        in_use = db.session.query(func.count(ItemDetail.id)).filter(ItemDetail.category_id == category_id).scalar()
        if in_use:
            raise ConflictError(f"Category {category.name} is used by {in_use} item detail(s)")
        db.session.query(CategorySize).filter_by(category_id=category_id).delete()
        db.session.delete(category)

    run_in_transaction(_op)
    current_app.logger.info("category.deleted id=%s", category_id)


# Sizes

def list_sizes() -> list[Size]:
    return db.session.query(Size).order_by(Size.name.asc()).all()


def get_size(size_id: int) -> Size:
    size = db.session.query(Size).filter_by(id=size_id).first()
    if size is None:
        raise NotFoundError("Size not found")
    return size


def get_or_create_size_inner(name: str) -> Size:
    size = db.session.query(Size).filter_by(name=name).first()
    if size is None:
        size = Size(name=name)
        db.session.add(size)
        db.session.flush()
    return size


def create_size(name: str) -> Size:
    clean = (name or "").strip()
    if not clean:
        raise ValidationError("Size name is required")
    if len(clean) > 64:
        raise ValidationError("name exceeds max length 64")

    def _op():
        if db.session.query(Size).filter_by(name=clean).first():
            raise DuplicateKeyError(f"Size {clean} already exists")
        size = Size(name=clean)
        db.session.add(size)
        db.session.flush()
        return size

    return run_in_transaction(_op)


def add_size_to_category_inner(category_id: int, size_id: int) -> tuple[CategorySize, bool]:
    """Idempotent association; returns (row, created)."""
    link = db.session.query(CategorySize).filter_by(category_id=category_id, size_id=size_id).first()
    if link is not None:
        return link, False
    link = CategorySize(category_id=category_id, size_id=size_id)
    db.session.add(link)
    db.session.flush()
    return link, True


def add_size_to_category(category_id: int, size_id: int) -> bool:
    """
    Associate a size with a category.

    Re-adding an existing pair is a no-op, not an error. Returns True when a
    new association row was written.
    """
    def _op():
        get_category(category_id)
        get_size(size_id)
        _, created = add_size_to_category_inner(category_id, size_id)
        return created

    return run_in_transaction(_op)


def remove_size_from_category(category_id: int, size_id: int) -> None:
    def _op():
        link = db.session.query(CategorySize).filter_by(category_id=category_id, size_id=size_id).first()
        if link is None:
            raise NotFoundError("Size is not associated with this category")
        db.session.delete(link)

    run_in_transaction(_op)


def list_sizes_for_category(category_id: int) -> list[Size]:
    get_category(category_id)
    return (
        db.session.query(Size)
        .join(CategorySize, CategorySize.size_id == Size.id)
        .filter(CategorySize.category_id == category_id)
        .order_by(Size.name.asc())
        .all()
    )

from __future__ import annotations

from ..extensions import db
from rainbow_room.time_utils import to_utc_z, to_iso_date


NO_SIZE_LABEL = "N/A"

CONDITION_NEW = "New"
CONDITION_GENTLY_USED = "Gently Used"
CONDITION_HEAVILY_USED = "Heavily Used"
CONDITIONS = (CONDITION_NEW, CONDITION_GENTLY_USED, CONDITION_HEAVILY_USED)


class Location(db.Model):
    """
    Physical site holding an independent stock partition.

    Deactivating a location hides it from pickers and reports but never
    deletes its stock rows or history.
    """
    __tablename__ = "locations"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(120), nullable=True)
    state = db.Column(db.String(32), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Location id={self.id} name={self.name!r} active={self.is_active}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Item(db.Model):
    """
    Item master: canonical definition of a donatable item type.

    CODE: issued once at creation (RR-XXXXXXXX) and never changed; it is
    what the printed QR label encodes.

    has_sizes decides how ItemSize rows are partitioned: by size label, or a
    single implicit "N/A" row per location.
    """
    __tablename__ = "items"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    storage_location = db.Column(db.String(255), nullable=True)
    code = db.Column(db.String(64), nullable=False, unique=True)
    has_sizes = db.Column(db.Boolean, nullable=False, default=False)
    min_stock_level = db.Column(db.Integer, nullable=False, default=5)
    unit_type = db.Column(db.String(32), nullable=False, default="each")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    sizes = db.relationship(
        "ItemSize",
        back_populates="item",
        lazy=True,
        order_by="ItemSize.sort_order",
    )

    def __repr__(self) -> str:
        return f"<Item id={self.id} code={self.code!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "storage_location": self.storage_location,
            "code": self.code,
            "has_sizes": self.has_sizes,
            "min_stock_level": self.min_stock_level,
            "unit_type": self.unit_type,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ItemSize(db.Model):
    """
    Stock Ledger row: (item, size label, location) -> current_quantity.

    INVARIANTS:
    - current_quantity >= 0 (also enforced by a CHECK constraint)
    - current_quantity == SUM(inventory_transactions.quantity_delta) for this row
    - every change to current_quantity is written together with exactly one
      InventoryTransaction in the same DB transaction (see inventory_service)

    min_stock_level is an optional per-row override of Item.min_stock_level.
    """
    __tablename__ = "item_sizes"
    __table_args__ = (
        db.UniqueConstraint("item_id", "size_label", "location_id", name="uq_item_sizes_item_size_location"),
        db.CheckConstraint("current_quantity >= 0", name="ck_item_sizes_quantity_non_negative"),
        db.Index("ix_item_sizes_location_item", "location_id", "item_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    size_label = db.Column(db.String(64), nullable=False, default=NO_SIZE_LABEL)
    current_quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    item = db.relationship("Item", back_populates="sizes")
    location = db.relationship("Location", backref=db.backref("item_sizes", lazy=True))

    @property
    def effective_min_stock_level(self) -> int:
        if self.min_stock_level is not None:
            return self.min_stock_level
        return self.item.min_stock_level

    def __repr__(self) -> str:
        return (
            f"<ItemSize id={self.id} item_id={self.item_id} size={self.size_label!r} "
            f"location_id={self.location_id} qty={self.current_quantity}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "location_id": self.location_id,
            "location_name": self.location.name if self.location else None,
            "size_label": self.size_label,
            "current_quantity": self.current_quantity,
            "min_stock_level": self.effective_min_stock_level,
            "min_stock_level_override": self.min_stock_level,
            "sort_order": self.sort_order,
        }


class CategorySize(db.Model):
    """Category <-> Size association. One row per pair; re-adding is a no-op."""
    __tablename__ = "category_sizes"
    __table_args__ = (
        db.UniqueConstraint("category_id", "size_id", name="uq_category_sizes_category_size"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    size_id = db.Column(db.Integer, db.ForeignKey("sizes.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())


class Category(db.Model):
    """
    Category taxonomy used by discrete ItemDetail units.

    Total stock of a category is the count of its active ItemDetail rows;
    it is low when that count is <= low_stock_threshold.
    """
    __tablename__ = "categories"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=5)
    qr_code_value = db.Column(db.String(64), nullable=True, unique=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    sizes = db.relationship(
        "Size",
        secondary="category_sizes",
        lazy=True,
        order_by="Size.name",
        viewonly=True,
    )

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self, total_quantity: int | None = None) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "low_stock_threshold": self.low_stock_threshold,
            "qr_code_value": self.qr_code_value,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if total_quantity is not None:
            data["total_quantity"] = total_quantity
        return data


class Size(db.Model):
    __tablename__ = "sizes"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False, unique=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Size id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }


class ItemDetail(db.Model):
    """
    One discrete physical unit under the Category taxonomy.

    LIFECYCLE: active -> inactive (terminal). Deactivation is a logical delete;
    inactive rows are kept for history and refuse further edits.
    """
    __tablename__ = "item_details"
    __table_args__ = (
        db.CheckConstraint(
            "condition IN ('New', 'Gently Used', 'Heavily Used')",
            name="ck_item_details_condition",
        ),
        db.Index("ix_item_details_category_active", "category_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True)
    size_id = db.Column(db.Integer, db.ForeignKey("sizes.id", ondelete="SET NULL"), nullable=True, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    condition = db.Column(db.String(16), nullable=False, default=CONDITION_NEW)
    received_date = db.Column(db.Date, nullable=False)
    donor_info = db.Column(db.Text, nullable=True)
    approx_price = db.Column(db.Float, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    qr_code_value = db.Column(db.String(64), nullable=False, unique=True)
    deactivated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("item_details", lazy=True))
    size = db.relationship("Size")
    location = db.relationship("Location")

    def __repr__(self) -> str:
        return f"<ItemDetail id={self.id} category_id={self.category_id} active={self.is_active}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "size_id": self.size_id,
            "size_name": self.size.name if self.size else None,
            "location_id": self.location_id,
            "location_name": self.location.name if self.location else None,
            "condition": self.condition,
            "received_date": to_iso_date(self.received_date),
            "donor_info": self.donor_info,
            "approx_price": self.approx_price,
            "is_active": self.is_active,
            "qr_code_value": self.qr_code_value,
            "deactivated_at": to_utc_z(self.deactivated_at) if self.deactivated_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

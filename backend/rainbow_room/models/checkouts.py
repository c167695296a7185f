from __future__ import annotations

import json

from ..extensions import db
from rainbow_room.time_utils import to_utc_z, to_iso_date


class Checkout(db.Model):
    """
    Case-file record for one client-services checkout.

    Lines are written in the same DB transaction as the stock decrements and
    CHECKOUT log entries; a Checkout row never exists without its lines.
    """
    __tablename__ = "checkouts"
    __table_args__ = (
        db.CheckConstraint("number_of_children BETWEEN 1 AND 5", name="ck_checkouts_children_range"),
        db.Index("ix_checkouts_location_date", "location_id", "checkout_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    checkout_date = db.Column(db.Date, nullable=False)

    worker_first_name = db.Column(db.String(120), nullable=False)
    worker_last_name = db.Column(db.String(120), nullable=False)
    department = db.Column(db.String(64), nullable=False)
    case_number = db.Column(db.String(64), nullable=False)
    # JSON-serialized list of allegation names
    allegations = db.Column(db.Text, nullable=False)

    parent_guardian_first_name = db.Column(db.String(120), nullable=False)
    parent_guardian_last_name = db.Column(db.String(120), nullable=False)
    zip_code = db.Column(db.String(10), nullable=False)
    alleged_perpetrator_first_name = db.Column(db.String(120), nullable=True)
    alleged_perpetrator_last_name = db.Column(db.String(120), nullable=True)
    number_of_children = db.Column(db.Integer, nullable=False)

    total_items = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    location = db.relationship("Location")
    lines = db.relationship(
        "CheckoutLine",
        back_populates="checkout",
        lazy=True,
        order_by="CheckoutLine.id",
        cascade="all, delete-orphan",
    )

    @property
    def allegation_list(self) -> list[str]:
        try:
            value = json.loads(self.allegations or "[]")
        except ValueError:
            return []
        return value if isinstance(value, list) else []

    @property
    def case_worker(self) -> str:
        return f"{self.worker_first_name} {self.worker_last_name}"

    def __repr__(self) -> str:
        return f"<Checkout id={self.id} case={self.case_number!r} items={self.total_items}>"

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "location_id": self.location_id,
            "location_name": self.location.name if self.location else None,
            "checkout_date": to_iso_date(self.checkout_date),
            "worker_first_name": self.worker_first_name,
            "worker_last_name": self.worker_last_name,
            "department": self.department,
            "case_number": self.case_number,
            "allegations": self.allegation_list,
            "parent_guardian_first_name": self.parent_guardian_first_name,
            "parent_guardian_last_name": self.parent_guardian_last_name,
            "zip_code": self.zip_code,
            "alleged_perpetrator_first_name": self.alleged_perpetrator_first_name,
            "alleged_perpetrator_last_name": self.alleged_perpetrator_last_name,
            "number_of_children": self.number_of_children,
            "total_items": self.total_items,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["items"] = [line.to_dict() for line in self.lines]
        return data


class CheckoutLine(db.Model):
    __tablename__ = "checkout_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_checkout_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    checkout_id = db.Column(db.Integer, db.ForeignKey("checkouts.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    size_id = db.Column(db.Integer, db.ForeignKey("item_sizes.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    # Snapshots so the case file reads the same after renames
    item_name = db.Column(db.String(255), nullable=False)
    size_label = db.Column(db.String(64), nullable=False)

    checkout = db.relationship("Checkout", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "checkout_id": self.checkout_id,
            "item_id": self.item_id,
            "size_id": self.size_id,
            "quantity": self.quantity,
            "item_name": self.item_name,
            "size_label": self.size_label,
        }

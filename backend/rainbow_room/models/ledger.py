from __future__ import annotations

from ..extensions import db
from rainbow_room.time_utils import to_utc_z


TX_CHECKOUT = "CHECKOUT"
TX_ADDITION = "ADDITION"
TX_TRANSFER_OUT = "TRANSFER_OUT"
TX_TRANSFER_IN = "TRANSFER_IN"
TX_MANUAL_ADJUSTMENT = "MANUAL_ADJUSTMENT"

TRANSACTION_TYPES = (
    TX_CHECKOUT,
    TX_ADDITION,
    TX_TRANSFER_OUT,
    TX_TRANSFER_IN,
    TX_MANUAL_ADJUSTMENT,
)


class InventoryTransaction(db.Model):
    """
    Transaction Log: append-only history of every quantity change.

    quantity_delta is signed (CHECKOUT and TRANSFER_OUT are negative).
    SUM(quantity_delta) over a size_id equals ItemSize.current_quantity.

    Transfers write two rows sharing transfer_group; each names the other
    side in counterpart_location_id.

    item_id/location_id/size_label are denormalized from the ItemSize row so
    history reads never need the live row.
    """
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        db.CheckConstraint("quantity_delta <> 0", name="ck_invtx_delta_non_zero"),
        db.Index("ix_invtx_size_occurred", "size_id", "occurred_at"),
        db.Index("ix_invtx_item_occurred", "item_id", "occurred_at"),
        db.Index("ix_invtx_type_occurred", "type", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    size_id = db.Column(db.Integer, db.ForeignKey("item_sizes.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    size_label = db.Column(db.String(64), nullable=False)

    type = db.Column(db.String(32), nullable=False, index=True)
    quantity_delta = db.Column(db.Integer, nullable=False)

    # Who/why: volunteer (ADDITION), admin (MANUAL_ADJUSTMENT), case worker (CHECKOUT)
    actor_name = db.Column(db.String(255), nullable=True)
    reason = db.Column(db.String(255), nullable=True)
    source = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    counterpart_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)
    transfer_group = db.Column(db.String(36), nullable=True, index=True)
    checkout_id = db.Column(db.Integer, db.ForeignKey("checkouts.id"), nullable=True, index=True)

    occurred_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    item = db.relationship("Item")
    size = db.relationship("ItemSize")
    location = db.relationship("Location", foreign_keys=[location_id])
    counterpart_location = db.relationship("Location", foreign_keys=[counterpart_location_id])

    def __repr__(self) -> str:
        return (
            f"<InventoryTransaction id={self.id} type={self.type} size_id={self.size_id} "
            f"delta={self.quantity_delta}>"
        )

    def to_dict(self) -> dict:
        counterpart = self.counterpart_location.name if self.counterpart_location else None
        return {
            "id": self.id,
            "item_id": self.item_id,
            "size_id": self.size_id,
            "location_id": self.location_id,
            "location_name": self.location.name if self.location else None,
            "size_label": self.size_label,
            "type": self.type,
            "quantity_delta": self.quantity_delta,
            "actor_name": self.actor_name,
            "reason": self.reason,
            "source": self.source,
            "notes": self.notes,
            "counterpart_location_id": self.counterpart_location_id,
            # Transfer direction is implied by type
            "from_location": counterpart if self.type == TX_TRANSFER_IN else None,
            "to_location": counterpart if self.type == TX_TRANSFER_OUT else None,
            "transfer_group": self.transfer_group,
            "checkout_id": self.checkout_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
        }

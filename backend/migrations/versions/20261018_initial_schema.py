"""Initial inventory schema

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated=True):
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False))
    return cols


def upgrade():
    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False, unique=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("state", sa.String(length=32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_locations_is_active", "locations", ["is_active"])

    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("storage_location", sa.String(length=255), nullable=True),
        sa.Column("code", sa.String(length=64), nullable=False, unique=True),
        sa.Column("has_sizes", sa.Boolean(), nullable=False),
        sa.Column("min_stock_level", sa.Integer(), nullable=False),
        sa.Column("unit_type", sa.String(length=32), nullable=False),
        *_timestamps(),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "item_sizes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("size_label", sa.String(length=64), nullable=False),
        sa.Column("current_quantity", sa.Integer(), nullable=False),
        sa.Column("min_stock_level", sa.Integer(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.UniqueConstraint("item_id", "size_label", "location_id", name="uq_item_sizes_item_size_location"),
        sa.CheckConstraint("current_quantity >= 0", name="ck_item_sizes_quantity_non_negative"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_item_sizes_item_id", "item_sizes", ["item_id"])
    op.create_index("ix_item_sizes_location_id", "item_sizes", ["location_id"])
    op.create_index("ix_item_sizes_location_item", "item_sizes", ["location_id", "item_id"])

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("low_stock_threshold", sa.Integer(), nullable=False),
        sa.Column("qr_code_value", sa.String(length=64), nullable=True, unique=True),
        *_timestamps(),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "sizes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=64), nullable=False, unique=True),
        *_timestamps(updated=False),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "category_sizes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id", ondelete="CASCADE"), nullable=False),
        sa.Column("size_id", sa.Integer(), sa.ForeignKey("sizes.id", ondelete="CASCADE"), nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint("category_id", "size_id", name="uq_category_sizes_category_size"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_category_sizes_category_id", "category_sizes", ["category_id"])
    op.create_index("ix_category_sizes_size_id", "category_sizes", ["size_id"])

    op.create_table(
        "item_details",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("size_id", sa.Integer(), sa.ForeignKey("sizes.id", ondelete="SET NULL"), nullable=True),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("condition", sa.String(length=16), nullable=False),
        sa.Column("received_date", sa.Date(), nullable=False),
        sa.Column("donor_info", sa.Text(), nullable=True),
        sa.Column("approx_price", sa.Float(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("qr_code_value", sa.String(length=64), nullable=False, unique=True),
        sa.Column("deactivated_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "condition IN ('New', 'Gently Used', 'Heavily Used')",
            name="ck_item_details_condition",
        ),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_item_details_category_id", "item_details", ["category_id"])
    op.create_index("ix_item_details_size_id", "item_details", ["size_id"])
    op.create_index("ix_item_details_location_id", "item_details", ["location_id"])
    op.create_index("ix_item_details_category_active", "item_details", ["category_id", "is_active"])

    op.create_table(
        "checkouts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("checkout_date", sa.Date(), nullable=False),
        sa.Column("worker_first_name", sa.String(length=120), nullable=False),
        sa.Column("worker_last_name", sa.String(length=120), nullable=False),
        sa.Column("department", sa.String(length=64), nullable=False),
        sa.Column("case_number", sa.String(length=64), nullable=False),
        sa.Column("allegations", sa.Text(), nullable=False),
        sa.Column("parent_guardian_first_name", sa.String(length=120), nullable=False),
        sa.Column("parent_guardian_last_name", sa.String(length=120), nullable=False),
        sa.Column("zip_code", sa.String(length=10), nullable=False),
        sa.Column("alleged_perpetrator_first_name", sa.String(length=120), nullable=True),
        sa.Column("alleged_perpetrator_last_name", sa.String(length=120), nullable=True),
        sa.Column("number_of_children", sa.Integer(), nullable=False),
        sa.Column("total_items", sa.Integer(), nullable=False),
        *_timestamps(updated=False),
        sa.CheckConstraint("number_of_children BETWEEN 1 AND 5", name="ck_checkouts_children_range"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_checkouts_location_id", "checkouts", ["location_id"])
    op.create_index("ix_checkouts_location_date", "checkouts", ["location_id", "checkout_date"])

    op.create_table(
        "checkout_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("checkout_id", sa.Integer(), sa.ForeignKey("checkouts.id"), nullable=False),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("size_id", sa.Integer(), sa.ForeignKey("item_sizes.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("item_name", sa.String(length=255), nullable=False),
        sa.Column("size_label", sa.String(length=64), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_checkout_lines_quantity_positive"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_checkout_lines_checkout_id", "checkout_lines", ["checkout_id"])
    op.create_index("ix_checkout_lines_item_id", "checkout_lines", ["item_id"])

    op.create_table(
        "inventory_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("size_id", sa.Integer(), sa.ForeignKey("item_sizes.id"), nullable=False),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("size_label", sa.String(length=64), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("quantity_delta", sa.Integer(), nullable=False),
        sa.Column("actor_name", sa.String(length=255), nullable=True),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.Column("source", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("counterpart_location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=True),
        sa.Column("transfer_group", sa.String(length=36), nullable=True),
        sa.Column("checkout_id", sa.Integer(), sa.ForeignKey("checkouts.id"), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(updated=False),
        sa.CheckConstraint("quantity_delta <> 0", name="ck_invtx_delta_non_zero"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_inventory_transactions_item_id", "inventory_transactions", ["item_id"])
    op.create_index("ix_inventory_transactions_size_id", "inventory_transactions", ["size_id"])
    op.create_index("ix_inventory_transactions_location_id", "inventory_transactions", ["location_id"])
    op.create_index("ix_inventory_transactions_type", "inventory_transactions", ["type"])
    op.create_index("ix_inventory_transactions_transfer_group", "inventory_transactions", ["transfer_group"])
    op.create_index("ix_inventory_transactions_checkout_id", "inventory_transactions", ["checkout_id"])
    op.create_index("ix_inventory_transactions_occurred_at", "inventory_transactions", ["occurred_at"])
    op.create_index("ix_invtx_size_occurred", "inventory_transactions", ["size_id", "occurred_at"])
    op.create_index("ix_invtx_item_occurred", "inventory_transactions", ["item_id", "occurred_at"])
    op.create_index("ix_invtx_type_occurred", "inventory_transactions", ["type", "occurred_at"])

    op.create_table(
        "volunteer_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("volunteer_name", sa.String(length=255), nullable=False),
        sa.Column("session_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("hours_worked", sa.Float(), nullable=True),
        sa.Column("tasks_performed", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_volunteer_sessions_location_id", "volunteer_sessions", ["location_id"])
    op.create_index("ix_volunteer_sessions_location_date", "volunteer_sessions", ["location_id", "session_date"])
    op.create_index("ix_volunteer_sessions_name", "volunteer_sessions", ["volunteer_name"])


def downgrade():
    op.drop_table("volunteer_sessions")
    op.drop_table("inventory_transactions")
    op.drop_table("checkout_lines")
    op.drop_table("checkouts")
    op.drop_table("item_details")
    op.drop_table("category_sizes")
    op.drop_table("sizes")
    op.drop_table("categories")
    op.drop_table("item_sizes")
    op.drop_table("items")
    op.drop_table("locations")

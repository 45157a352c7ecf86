"""Vehicle inventory with vendor tracking columns.

Revision ID: 0001_vendor_inventory
Revises: None
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_vendor_inventory"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "vehicles",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("vin", sa.String(length=17), nullable=True),
        sa.Column("stock_number", sa.Text(), nullable=True),
        sa.Column("make", sa.Text(), nullable=False),
        sa.Column("model", sa.Text(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("odometer", sa.Integer(), nullable=True, server_default=sa.text("0")),
        sa.Column("description", sa.Text(), nullable=True, server_default=""),
        sa.Column("body_type", sa.Text(), nullable=True),
        sa.Column("color", sa.Text(), nullable=True),
        sa.Column("fuel_type", sa.Text(), nullable=True),
        sa.Column("transmission", sa.Text(), nullable=True),
        sa.Column("drivetrain", sa.Text(), nullable=True),
        sa.Column("vendor_url", sa.Text(), nullable=True),
        sa.Column("images", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default="[]"),
        sa.Column("vendor_id", sa.Text(), nullable=False, server_default="internal"),
        sa.Column("vendor_name", sa.Text(), nullable=True),
        sa.Column("vendor_status", sa.Text(), nullable=False, server_default="active"),
        sa.Column("sync_status", sa.Text(), nullable=False, server_default="synced"),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_sold", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("last_seen_from_vendor", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("vin"),
    )
    op.create_index("idx_vehicles_vendor_status", "vehicles", ["vendor_id", "vendor_status"])


def downgrade() -> None:
    op.drop_index("idx_vehicles_vendor_status", table_name="vehicles")
    op.drop_table("vehicles")

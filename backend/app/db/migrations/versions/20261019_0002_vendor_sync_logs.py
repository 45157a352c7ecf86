"""Audit trail of vendor reconciliation runs.

Revision ID: 0002_vendor_sync_logs
Revises: 0001_vendor_inventory
Create Date: 2026-10-19 00:10:00
"""

from alembic import op
import sqlalchemy as sa


revision = "0002_vendor_sync_logs"
down_revision = "0001_vendor_inventory"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "vendor_sync_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("vendor_id", sa.Text(), nullable=False),
        sa.Column("vendor_name", sa.Text(), nullable=True),
        sa.Column("sync_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("vehicles_found", sa.Integer(), server_default=sa.text("0")),
        sa.Column("new_vehicles", sa.Integer(), server_default=sa.text("0")),
        sa.Column("updated_vehicles", sa.Integer(), server_default=sa.text("0")),
        sa.Column("unlisted_vehicles", sa.Integer(), server_default=sa.text("0")),
        sa.Column("removed_vehicles", sa.Integer(), server_default=sa.text("0")),
        sa.Column("skipped_vehicles", sa.Integer(), server_default=sa.text("0")),
        sa.Column("image_processing_triggered", sa.Boolean(), server_default=sa.text("false")),
        sa.Column("image_job_id", sa.Text(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
    )
    op.create_index("idx_vendor_sync_logs_vendor_date", "vendor_sync_logs", ["vendor_id", "sync_date"])


def downgrade() -> None:
    op.drop_index("idx_vendor_sync_logs_vendor_date", table_name="vendor_sync_logs")
    op.drop_table("vendor_sync_logs")

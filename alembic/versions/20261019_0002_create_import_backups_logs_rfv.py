"""create data_import_backups, data_import_logs, rfv_customers

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 09:30:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "data_import_backups",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("backup_name", sa.String(length=120), nullable=False),
        sa.Column("backup_type", sa.String(length=32), nullable=False, comment="vendas, executado, both, daily"),
        sa.Column("revenue_records_count", sa.Integer(), nullable=False),
        sa.Column("executed_records_count", sa.Integer(), nullable=False),
        sa.Column(
            "backup_data",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="{'revenue_records': [...], 'executed_records': [...]}",
        ),
        sa.Column("tables_backed_up", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_data_import_backups_created_at", "data_import_backups", ["created_at"], unique=False)
    op.create_index("ix_data_import_backups_backup_name", "data_import_backups", ["backup_name"], unique=False)

    op.create_table(
        "data_import_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("backup_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("file_type", sa.String(length=32), nullable=False, comment="vendas, executado, both"),
        sa.Column("file_name", sa.String(length=255), nullable=True),
        sa.Column("period_start", sa.Date(), nullable=True),
        sa.Column("period_end", sa.Date(), nullable=True),
        sa.Column("total_rows", sa.Integer(), nullable=False),
        sa.Column("imported_rows", sa.Integer(), nullable=False),
        sa.Column("duplicate_rows", sa.Integer(), nullable=False),
        sa.Column("error_rows", sa.Integer(), nullable=False),
        sa.Column("errors", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("duplicates_removed", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("validation_warnings", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column(
            "failed_phase",
            sa.String(length=32),
            nullable=True,
            comment="backup, validate, clear, import, rfv",
        ),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("duration_seconds", sa.Float(), nullable=False),
        sa.Column("rfv_recalculated", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_data_import_logs_created_at", "data_import_logs", ["created_at"], unique=False)
    op.create_index("ix_data_import_logs_status", "data_import_logs", ["status"], unique=False)
    op.create_index(
        "ix_data_import_logs_file_type_status",
        "data_import_logs",
        ["file_type", "status"],
        unique=False,
    )

    op.create_table(
        "rfv_customers",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("recency_days", sa.Integer(), nullable=False),
        sa.Column("frequency", sa.Integer(), nullable=False),
        sa.Column("monetary_value", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("rfv_score", sa.Integer(), nullable=False),
        sa.Column("segment", sa.String(length=32), nullable=False),
        sa.Column("last_purchase_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("customer_name", name="uq_rfv_customers_customer_name"),
    )
    op.create_index("ix_rfv_customers_segment", "rfv_customers", ["segment"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_rfv_customers_segment", table_name="rfv_customers")
    op.drop_table("rfv_customers")
    op.drop_index("ix_data_import_logs_file_type_status", table_name="data_import_logs")
    op.drop_index("ix_data_import_logs_status", table_name="data_import_logs")
    op.drop_index("ix_data_import_logs_created_at", table_name="data_import_logs")
    op.drop_table("data_import_logs")
    op.drop_index("ix_data_import_backups_backup_name", table_name="data_import_backups")
    op.drop_index("ix_data_import_backups_created_at", table_name="data_import_backups")
    op.drop_table("data_import_backups")

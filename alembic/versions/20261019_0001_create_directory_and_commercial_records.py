"""create teams, profiles, user_name_mappings, revenue_records, executed_records

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _commercial_record_columns() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("patient_name", sa.String(length=255), nullable=True),
        sa.Column("procedure_name", sa.String(length=255), nullable=True),
        sa.Column("department", sa.String(length=120), nullable=True),
        sa.Column("amount", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("team_id", sa.String(length=64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "upload_id",
            postgresql.UUID(as_uuid=True),
            nullable=True,
            comment="Backup id of the import run that created the row",
        ),
        sa.Column("registered_by_admin", sa.Boolean(), nullable=False),
        sa.Column(
            "dedupe_key",
            sa.String(length=600),
            nullable=True,
            comment="date|customer|procedure|amount; NULL for rows created outside imports",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    # ---------------------------------------------------------------------------
    # User directory
    # ---------------------------------------------------------------------------
    op.create_table(
        "teams",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("team_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "user_name_mappings",
        sa.Column("external_name", sa.String(length=255), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("external_name"),
    )

    # ---------------------------------------------------------------------------
    # Commercial records
    # dedupe_key is unique so a concurrent second writer of the same row is rejected.
    # ---------------------------------------------------------------------------
    op.create_table(
        "revenue_records",
        *_commercial_record_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_revenue_records_date", "revenue_records", ["date"], unique=False)
    op.create_index("uq_revenue_records_dedupe_key", "revenue_records", ["dedupe_key"], unique=True)

    op.create_table(
        "executed_records",
        *_commercial_record_columns(),
        sa.Column("patient_phone", sa.String(length=64), nullable=True),
        sa.Column("patient_email", sa.String(length=255), nullable=True),
        sa.Column("origin", sa.String(length=120), nullable=True),
        sa.Column("referral_name", sa.String(length=255), nullable=True),
        sa.Column("executor_name", sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_executed_records_date", "executed_records", ["date"], unique=False)
    op.create_index("ix_executed_records_patient_name", "executed_records", ["patient_name"], unique=False)
    op.create_index("uq_executed_records_dedupe_key", "executed_records", ["dedupe_key"], unique=True)


def downgrade() -> None:
    op.drop_index("uq_executed_records_dedupe_key", table_name="executed_records")
    op.drop_index("ix_executed_records_patient_name", table_name="executed_records")
    op.drop_index("ix_executed_records_date", table_name="executed_records")
    op.drop_table("executed_records")
    op.drop_index("uq_revenue_records_dedupe_key", table_name="revenue_records")
    op.drop_index("ix_revenue_records_date", table_name="revenue_records")
    op.drop_table("revenue_records")
    op.drop_table("user_name_mappings")
    op.drop_table("profiles")
    op.drop_table("teams")

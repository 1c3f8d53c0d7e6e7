"""create_billing_tables

Revision ID: 5e1f0c2a7b34
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "5e1f0c2a7b34"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create billing schedule, dunning tracker and merchant session tables."""
    op.create_table(
        "billing_schedules",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("merchant_key", sa.String(255), nullable=False, unique=True),
        sa.Column("timezone", sa.String(64), nullable=False),
        sa.Column("hour", sa.Integer(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_billing_schedules_active", "billing_schedules", ["active"])

    op.create_table(
        "dunning_trackers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("merchant_key", sa.String(255), nullable=False),
        sa.Column("contract_id", sa.String(255), nullable=False),
        sa.Column("billing_cycle_index", sa.Integer(), nullable=False),
        sa.Column("failure_reason", sa.String(255), nullable=False),
        sa.Column("attempts_handled", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "merchant_key",
            "contract_id",
            "billing_cycle_index",
            "failure_reason",
            name="uq_dunning_tracker_cycle_reason",
        ),
    )
    op.create_index("ix_dunning_trackers_merchant_key", "dunning_trackers", ["merchant_key"])

    op.create_table(
        "merchant_sessions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("merchant_key", sa.String(255), nullable=False),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("scope", sa.String(1024), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_merchant_sessions_merchant_key", "merchant_sessions", ["merchant_key"])


def downgrade() -> None:
    """Drop the billing tables."""
    op.drop_index("ix_merchant_sessions_merchant_key", table_name="merchant_sessions")
    op.drop_table("merchant_sessions")
    op.drop_index("ix_dunning_trackers_merchant_key", table_name="dunning_trackers")
    op.drop_table("dunning_trackers")
    op.drop_index("ix_billing_schedules_active", table_name="billing_schedules")
    op.drop_table("billing_schedules")

"""Credit accounts and audit trail.

Revision ID: 001_credit_accounts
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_credit_accounts"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "credit_accounts",
        sa.Column("user_id", sa.Text(), primary_key=True),
        sa.Column("balance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tier", sa.Text(), nullable=False, server_default="free"),
        sa.Column("cycle_anchor", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("secondary_counters", sa.JSON(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("balance >= 0", name="ck_credit_accounts_balance_non_negative"),
        sa.CheckConstraint(
            "tier IN ('free', 'starter', 'creator', 'pro')",
            name="ck_credit_accounts_tier",
        ),
    )
    op.create_index("ix_credit_accounts_cycle_anchor", "credit_accounts", ["cycle_anchor"])

    op.create_table(
        "credit_audit",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("user_id", sa.Text(), sa.ForeignKey("credit_accounts.user_id"), nullable=False),
        sa.Column("kind", sa.Text(), nullable=False),
        sa.Column("operation", sa.Text(), nullable=True),
        sa.Column("counter", sa.Text(), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("context", sa.JSON(), nullable=False, server_default="{}"),
        sa.Column("occurred_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "kind IN ('deduct', 'grant', 'reset', 'counter')",
            name="ck_credit_audit_kind",
        ),
    )
    op.create_index("ix_credit_audit_user_id_occurred_at", "credit_audit", ["user_id", "occurred_at"])


def downgrade() -> None:
    op.drop_table("credit_audit")
    op.drop_table("credit_accounts")

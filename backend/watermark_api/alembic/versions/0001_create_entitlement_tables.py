"""Create entitlements and iap_transactions tables

Revision ID: 0001_entitlements
Revises:
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_entitlements"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "entitlements",
        sa.Column("install_id", sa.String(length=128), primary_key=True),
        sa.Column("is_pro", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("free_used_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("credits", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("free_used_count >= 0", name="ck_entitlements_free_used_count"),
        sa.CheckConstraint("credits >= 0", name="ck_entitlements_credits"),
    )

    op.create_table(
        "iap_transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("transaction_id", sa.String(length=128), nullable=False),
        sa.Column("original_transaction_id", sa.String(length=128), nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        sa.Column("install_id", sa.String(length=128), nullable=False),
        sa.Column("purchased_at", sa.String(length=64), nullable=True),
        sa.Column("raw_receipt_excerpt", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_iap_transactions_transaction_id", "iap_transactions", ["transaction_id"], unique=True
    )
    op.create_index("ix_iap_transactions_install_id", "iap_transactions", ["install_id"])


def downgrade() -> None:
    op.drop_index("ix_iap_transactions_install_id", table_name="iap_transactions")
    op.drop_index("ix_iap_transactions_transaction_id", table_name="iap_transactions")
    op.drop_table("iap_transactions")
    op.drop_table("entitlements")

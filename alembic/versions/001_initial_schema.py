"""Initial schema: users, subscription_packages, user_subscriptions.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.Numeric(12, 2), nullable=True)
    return sa.Column(name, sa.Numeric(12, 2), server_default="0", nullable=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("name", sa.String(128), nullable=True),
        sa.Column("role", sa.String(16), server_default="User", nullable=False),
        sa.Column("is_admin", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("city", sa.String(64), nullable=True),
        sa.Column("business_name", sa.String(128), nullable=True),
        sa.Column("instagram_handle", sa.String(64), nullable=True),
        sa.Column("photo_url", sa.String(512), nullable=True),
        sa.Column("subscription_id", sa.String(64), nullable=True),
        sa.Column("subscription_status", sa.String(16), nullable=True),
        sa.Column("subscription_package", sa.String(64), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    # --- subscription_packages ---
    op.create_table(
        "subscription_packages",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(128), nullable=False),
        sa.Column("type", sa.String(16), server_default="Business", nullable=False),
        _money("price"),
        _money("monthly_price", nullable=True),
        _money("setup_fee"),
        sa.Column("duration_months", sa.Integer(), server_default="12", nullable=False),
        sa.Column("billing_cycle", sa.String(16), nullable=True),
        sa.Column("payment_type", sa.String(16), server_default="recurring", nullable=False),
        sa.Column("advance_payment_months", sa.Integer(), server_default="0", nullable=False),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.Column("dashboard_sections", sa.JSON(), nullable=False),
        sa.Column("short_description", sa.String(255), server_default="", nullable=False),
        sa.Column("full_description", sa.Text(), server_default="", nullable=False),
        sa.Column("terms_and_conditions", sa.Text(), server_default="", nullable=False),
        sa.Column("popular", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_subscription_packages_type", "subscription_packages", ["type"])

    # --- user_subscriptions ---
    op.create_table(
        "user_subscriptions",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("package_id", sa.String(64), nullable=False),
        sa.Column("package_name", sa.String(128), server_default="", nullable=False),
        sa.Column("status", sa.String(16), server_default="active", nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_billing_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_type", sa.String(16), server_default="recurring", nullable=False),
        sa.Column("billing_cycle", sa.String(16), nullable=True),
        _money("amount"),
        _money("recurring_amount"),
        _money("signup_fee"),
        sa.Column("advance_payment_months", sa.Integer(), server_default="0", nullable=False),
        sa.Column("auto_pay_enabled", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("is_paused", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("paused_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paused_by", sa.String(64), nullable=True),
        sa.Column("resumed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resumed_by", sa.String(64), nullable=True),
        sa.Column("is_pausable", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("is_user_cancellable", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancel_reason", sa.Text(), nullable=True),
        sa.Column("assigned_by", sa.String(64), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_method", sa.String(32), nullable=True),
        sa.Column("transaction_id", sa.String(64), nullable=True),
        sa.Column("invoice_ids", sa.JSON(), nullable=False),
        sa.Column("razorpay_order_id", sa.String(64), nullable=True),
        sa.Column("razorpay_subscription_id", sa.String(64), nullable=True),
        sa.Column("razorpay_customer_id", sa.String(64), nullable=True),
        sa.Column("razorpay_token_id", sa.String(64), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("razorpay_order_id"),
    )
    op.create_index("ix_user_subscriptions_user_id", "user_subscriptions", ["user_id"])
    op.create_index("ix_user_subscriptions_package_id", "user_subscriptions", ["package_id"])
    op.create_index("ix_user_subscriptions_status", "user_subscriptions", ["status"])
    op.create_index("ix_user_subscriptions_next_billing_date", "user_subscriptions", ["next_billing_date"])
    op.create_index(
        "ix_user_subscriptions_razorpay_subscription_id", "user_subscriptions", ["razorpay_subscription_id"]
    )


def downgrade() -> None:
    op.drop_table("user_subscriptions")
    op.drop_table("subscription_packages")
    op.drop_table("users")

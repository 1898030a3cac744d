"""Subscription model: one user's relationship to one package over time."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, JSON, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing.constants import PAYMENT_ONE_TIME, PAYMENT_RECURRING, STATUS_ACTIVE
from billing.utils import now_utc
from .base import Base


class Subscription(Base):
    __tablename__ = "user_subscriptions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    # Soft reference: packages may be deactivated, never cascaded
    package_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    package_name: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_ACTIVE, index=True)

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    next_billing_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    payment_type: Mapped[str] = mapped_column(String(16), nullable=False, default=PAYMENT_RECURRING)
    billing_cycle: Mapped[str | None] = mapped_column(String(16), nullable=True)
    amount: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    recurring_amount: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    signup_fee: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    advance_payment_months: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    auto_pay_enabled: Mapped[bool] = mapped_column(Boolean, default=False)

    is_paused: Mapped[bool] = mapped_column(Boolean, default=False)
    paused_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paused_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    resumed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resumed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_pausable: Mapped[bool] = mapped_column(Boolean, default=False)
    is_user_cancellable: Mapped[bool] = mapped_column(Boolean, default=False)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancel_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    assigned_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    payment_method: Mapped[str | None] = mapped_column(String(32), nullable=True)
    transaction_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    invoice_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    razorpay_order_id: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)
    razorpay_subscription_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    razorpay_customer_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    razorpay_token_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    user: Mapped["User"] = relationship(back_populates="subscriptions")

    @property
    def is_one_time(self) -> bool:
        return self.payment_type == PAYMENT_ONE_TIME

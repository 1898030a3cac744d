"""SubscriptionPackage model: the catalog of offering tiers."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, JSON, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from billing.constants import DEFAULT_DURATION_MONTHS, PAYMENT_ONE_TIME, PAYMENT_RECURRING
from billing.utils import now_utc
from .base import Base


class SubscriptionPackage(Base):
    __tablename__ = "subscription_packages"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="Business", index=True)
    price: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    monthly_price: Mapped[float | None] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)
    setup_fee: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    duration_months: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_DURATION_MONTHS)
    billing_cycle: Mapped[str | None] = mapped_column(String(16), nullable=True)
    payment_type: Mapped[str] = mapped_column(String(16), nullable=False, default=PAYMENT_RECURRING)
    advance_payment_months: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    features: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    dashboard_sections: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    short_description: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    full_description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    terms_and_conditions: Mapped[str] = mapped_column(Text, nullable=False, default="")
    popular: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    @property
    def is_one_time(self) -> bool:
        return self.payment_type == PAYMENT_ONE_TIME

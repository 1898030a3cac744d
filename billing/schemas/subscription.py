"""Subscription-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from billing.constants import PAYMENT_RECURRING, STATUS_ACTIVE

Status = Literal["active", "cancelled", "paused"]


class SubscriptionCreate(BaseModel):
    """Fields accepted when recording a new subscription.

    ``is_pausable`` / ``is_user_cancellable`` left unset default to the
    payment type: recurring subscriptions may pause and cancel, one-time
    subscriptions never can.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str | None = None
    user_id: str | None = None
    package_id: str | None = None
    package_name: str = ""
    status: Status = STATUS_ACTIVE
    start_date: datetime | None = None
    end_date: datetime | None = None
    actual_start_date: datetime | None = None
    next_billing_date: datetime | None = None
    payment_type: Literal["one-time", "recurring"] = PAYMENT_RECURRING
    billing_cycle: Literal["monthly", "yearly"] | None = None
    amount: float = 0
    recurring_amount: float = 0
    signup_fee: float = 0
    advance_payment_months: int = 0
    auto_pay_enabled: bool = False
    is_pausable: bool | None = None
    is_user_cancellable: bool | None = None
    assigned_by: str | None = None
    assigned_at: datetime | None = None
    payment_method: str | None = None
    transaction_id: str | None = None
    invoice_ids: list[str] = Field(default_factory=list)
    razorpay_order_id: str | None = None
    razorpay_subscription_id: str | None = None
    razorpay_customer_id: str | None = None
    razorpay_token_id: str | None = None


class SubscriptionUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    package_id: str | None = None
    package_name: str | None = None
    status: Status | None = None
    end_date: datetime | None = None
    next_billing_date: datetime | None = None
    payment_type: Literal["one-time", "recurring"] | None = None
    billing_cycle: Literal["monthly", "yearly"] | None = None
    amount: float | None = None
    recurring_amount: float | None = None
    auto_pay_enabled: bool | None = None
    is_pausable: bool | None = None
    is_user_cancellable: bool | None = None
    invoice_ids: list[str] | None = None
    razorpay_customer_id: str | None = None
    razorpay_token_id: str | None = None


class SubscriptionOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    user_id: str
    package_id: str
    package_name: str
    status: str
    start_date: datetime | None = None
    end_date: datetime | None = None
    actual_start_date: datetime | None = None
    next_billing_date: datetime | None = None
    payment_type: str
    billing_cycle: str | None = None
    amount: float
    recurring_amount: float
    signup_fee: float
    advance_payment_months: int
    auto_pay_enabled: bool
    is_paused: bool
    is_pausable: bool
    is_user_cancellable: bool
    cancelled_at: datetime | None = None
    cancel_reason: str | None = None
    assigned_by: str | None = None
    assigned_at: datetime | None = None
    payment_method: str | None = None
    transaction_id: str | None = None
    invoice_ids: list[str] = Field(default_factory=list)


class CancelRequest(BaseModel):
    reason: str = Field("user_requested", max_length=500)


class AdminAssignRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str
    package_id: str
    payment_id: str | None = None
    razorpay_subscription_id: str | None = None

"""Payment authorization and checkout schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from billing.schemas.package import PackageData


class CustomerData(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None

    def cleaned(self) -> dict[str, str]:
        """Non-empty customer fields only."""
        return {k: v for k, v in self.model_dump().items() if v}


class AuthorizationRequest(BaseModel):
    """Body of the authorization function (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    package_data: PackageData | None = None
    customer_data: CustomerData | None = None
    user_id: str | None = None
    use_one_time_preferred: bool = True
    enable_auto_pay: bool = True


class OrderInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    amount: int
    currency: str


class AuthorizationResult(BaseModel):
    """Trusted payment configuration returned to the client.

    ``amount`` and the ``*_paise`` fields are minor units; the others are
    rupees for display.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    key: str
    amount: int
    currency: str
    name: str
    description: str
    notes: dict[str, str]
    is_one_time: bool
    is_subscription: bool
    enable_auto_pay: bool
    setup_fee: float
    total_amount: float
    remaining_amount: float
    remaining_amount_paise: int
    recurring_amount: float
    recurring_count: int
    order: OrderInfo
    transaction_id: str = Field(alias="transaction_id")
    customer_id: str | None = None


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    package_id: str
    customer: CustomerData | None = None
    use_one_time_preferred: bool = True
    enable_auto_pay: bool = True
    callback_url: str | None = None


class PaymentVerification(BaseModel):
    """Fields posted back from the widget's success handler."""

    razorpay_payment_id: str
    razorpay_order_id: str
    razorpay_signature: str
    package_id: str


class ConfirmedPayment(BaseModel):
    """A checkout payment whose order the gateway has confirmed.

    Every field is read back from Razorpay; nothing here comes from the
    browser except the ids the signature already binds.
    """

    payment_id: str
    order_id: str
    amount: float
    enable_auto_pay: bool = False
    transaction_id: str | None = None
    customer_id: str | None = None
    token_id: str | None = None


class DismissNotice(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    order_id: str | None = None
    package_id: str | None = None
    reason: str | None = None


class WebhookEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    event: str
    payload: dict[str, Any] = Field(default_factory=dict)

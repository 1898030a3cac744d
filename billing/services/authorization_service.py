"""Server-side payment authorization.

Computes the amount due for a package, opens a gateway order for it and
returns the trusted configuration the checkout widget is built from. Every
call is independent; a retry gets a fresh order and transaction id.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from billing.config import Settings
from billing.constants import (
    CYCLE_MONTHLY,
    CYCLE_YEARLY,
    PAYMENT_ONE_TIME,
    PAYMENT_RECURRING,
    REFUND_POLICY,
    REFUND_STATUS,
)
from billing.errors import InvalidSubscriptionError, PaymentAlreadyRecordedError, PaymentMismatchError
from billing.models.subscription import Subscription
from billing.notes import clean_notes
from billing.schemas.payments import (
    AuthorizationRequest,
    AuthorizationResult,
    ConfirmedPayment,
    CustomerData,
    OrderInfo,
    PaymentVerification,
)
from billing.services import package_service, pricing, subscription_service
from billing.services.gateway import RazorpayGateway
from billing.utils import add_months, generate_transaction_id, now_utc

logger = logging.getLogger(__name__)


def resolve_one_time(payment_type: str, use_one_time_preferred: bool, enable_auto_pay: bool) -> bool:
    """A payment is one-time unless the package is recurring, autopay is on and the
    caller did not ask for a single payment."""
    is_recurring = payment_type == PAYMENT_RECURRING and enable_auto_pay
    return payment_type == PAYMENT_ONE_TIME or use_one_time_preferred or not is_recurring


async def authorize(
    request: AuthorizationRequest,
    gateway: RazorpayGateway,
    settings: Settings,
) -> AuthorizationResult:
    if request.package_data is None or not request.user_id:
        raise InvalidSubscriptionError("Missing required fields: packageData and userId")

    package = request.package_data
    is_one_time = resolve_one_time(
        package.payment_type, request.use_one_time_preferred, request.enable_auto_pay
    )
    enable_auto_pay = request.enable_auto_pay and not is_one_time
    logger.info(
        f"Authorizing {'one-time' if is_one_time else 'recurring'} payment for user {request.user_id} "
        f"package {package.id} (autopay={enable_auto_pay})"
    )

    price = pricing.quote(package, request.enable_auto_pay)
    amount = pricing.to_minor_units(price.initial_amount)
    remaining_paise = pricing.to_minor_units(price.remaining_amount)
    transaction_id = generate_transaction_id()

    customer_id = None
    mandate = None
    if enable_auto_pay and remaining_paise > 0:
        customer_id = await _mandate_customer(request.customer_data, gateway)
        if customer_id:
            mandate = {
                "max_amount": remaining_paise,
                "expire_at": int(add_months(now_utc(), package.duration_months).timestamp()),
                "frequency": package.billing_cycle or CYCLE_YEARLY,
            }
        else:
            logger.warning(f"No customer details for user {request.user_id}; autopay mandate not requested")

    notes = {
        "isNonRefundable": "true",
        "refundStatus": REFUND_STATUS,
        "refundPolicy": REFUND_POLICY,
        "transaction_id": transaction_id,
        "packageId": package.id,
        "userId": request.user_id,
        "enableAutoPay": enable_auto_pay,
        "packageName": package.title,
        "paymentType": package.payment_type,
    }
    order = await gateway.create_order(
        amount=amount,
        currency=settings.currency,
        receipt=f"rcpt_{transaction_id}",
        notes=notes,
        customer_id=customer_id,
        token=mandate,
    )

    description = package.title
    if price.setup_fee > 0:
        description = f"{description} (includes setup fee)"

    return AuthorizationResult(
        key=gateway.key_id,
        amount=amount,
        currency=settings.currency,
        name=settings.merchant_name,
        description=description,
        notes=clean_notes(notes),
        is_one_time=is_one_time,
        is_subscription=not is_one_time,
        enable_auto_pay=enable_auto_pay,
        setup_fee=price.setup_fee,
        total_amount=price.total_amount,
        remaining_amount=price.remaining_amount,
        remaining_amount_paise=remaining_paise,
        recurring_amount=price.recurring_amount,
        recurring_count=price.recurring_count,
        order=OrderInfo.model_validate(order),
        transaction_id=transaction_id,
        customer_id=customer_id,
    )


async def _mandate_customer(customer: CustomerData | None, gateway: RazorpayGateway) -> str | None:
    """Gateway customer the autopay token will be saved against."""
    details = customer.cleaned() if customer else {}
    if not details.get("email") and not details.get("phone"):
        return None
    found = await gateway.create_or_find_customer(details.get("name"), details.get("email"), details.get("phone"))
    return found.get("id")


async def confirm_payment(
    db: AsyncSession,
    user_id: str,
    verification: PaymentVerification,
    gateway: RazorpayGateway,
) -> Subscription:
    """Record a checkout payment once Razorpay confirms what was paid for.

    The signature binds the order to the payment; the order itself, read back
    from the gateway, decides the package, user, amount and autopay terms.
    """
    order_id = verification.razorpay_order_id
    payment_id = verification.razorpay_payment_id
    gateway.verify_payment_signature(order_id, payment_id, verification.razorpay_signature)

    if await subscription_service.find_recorded_payment(db, order_id, payment_id):
        logger.warning(f"Replayed verification for order {order_id} payment {payment_id} by user {user_id}")
        raise PaymentAlreadyRecordedError(f"Payment {payment_id} has already been recorded")

    package = await package_service.get_package(db, verification.package_id)
    order = await gateway.fetch_order(order_id)
    notes = order.get("notes") or {}
    if notes.get("packageId") != package.id or notes.get("userId") != user_id:
        logger.warning(
            f"Order {order_id} was opened for package {notes.get('packageId')} user {notes.get('userId')}, "
            f"claimed as {package.id} by {user_id}"
        )
        raise PaymentMismatchError("Payment does not match the requested package")

    expected = pricing.to_minor_units(pricing.calculate_initial_payment(package))
    if order.get("amount") != expected:
        logger.warning(f"Order {order_id} amount {order.get('amount')} does not match {expected} for {package.id}")
        raise PaymentMismatchError("Paid amount does not match the package price")

    enable_auto_pay = notes.get("enableAutoPay") == "true"
    customer_id = token_id = None
    if enable_auto_pay:
        payment = await gateway.fetch_payment(payment_id)
        customer_id = payment.get("customer_id")
        token_id = payment.get("token_id")
        if not token_id:
            logger.warning(f"Payment {payment_id} carries no mandate token; autopay will skip it")

    return await subscription_service.record_successful_payment(
        db,
        user_id,
        package,
        ConfirmedPayment(
            payment_id=payment_id,
            order_id=order_id,
            amount=pricing.from_minor_units(order["amount"]),
            enable_auto_pay=enable_auto_pay,
            transaction_id=notes.get("transaction_id"),
            customer_id=customer_id,
            token_id=token_id,
        ),
    )


@dataclass(frozen=True)
class RecurringCharge:
    amount: int
    cycles_left: int
    notes: dict[str, str]


def recurring_charge(sub: Subscription, cycles_paid: int) -> RecurringCharge:
    """Amount (paise) for the next mandate charge on ``sub``.

    ``cycles_paid`` counts recurring charges already collected, which the
    record store tracks as invoices after the checkout payment.
    """
    if sub.payment_type != PAYMENT_RECURRING:
        raise InvalidSubscriptionError(f"Subscription {sub.id} is not recurring")
    amount = pricing.to_minor_units(sub.recurring_amount or 0)
    if amount <= 0:
        raise InvalidSubscriptionError(f"Subscription {sub.id} has no recurring amount")

    total_cycles = pricing.calculate_recurring_payment_count(_SubscriptionTerms(sub))
    return RecurringCharge(
        amount=amount,
        cycles_left=max(total_cycles - cycles_paid - 1, 0),
        notes={
            "isNonRefundable": "true",
            "refundStatus": REFUND_STATUS,
            "refundPolicy": REFUND_POLICY,
            "transaction_id": generate_transaction_id(),
            "packageId": sub.package_id,
            "userId": sub.user_id,
            "subscriptionId": sub.id,
        },
    )


class _SubscriptionTerms:
    """Price fields of a subscription, shaped like a package for the pricing module."""

    def __init__(self, sub: Subscription):
        self.price = sub.recurring_amount * 12 if sub.billing_cycle == CYCLE_MONTHLY else sub.recurring_amount
        self.monthly_price = sub.recurring_amount if sub.billing_cycle == CYCLE_MONTHLY else None
        self.setup_fee = sub.signup_fee or 0
        self.billing_cycle = sub.billing_cycle
        self.payment_type = sub.payment_type
        self.advance_payment_months = sub.advance_payment_months or 0
        self.duration_months = _months_between(sub)


def _months_between(sub: Subscription) -> int:
    if not sub.start_date or not sub.end_date:
        return 12
    months = (sub.end_date.year - sub.start_date.year) * 12 + (sub.end_date.month - sub.start_date.month)
    return max(months, 1)

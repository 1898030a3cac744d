"""Subscription record store: create, read, transition.

One-time subscriptions are never pausable or user-cancellable. Every write
path re-applies that rule, whatever flags the caller passed.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import String, cast, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from billing.config import get_settings
from billing.constants import (
    CYCLE_MONTHLY,
    PAYMENT_METHOD_RAZORPAY,
    PAYMENT_ONE_TIME,
    PAYMENT_RECURRING,
    STATUS_ACTIVE,
    STATUS_CANCELLED,
    STATUS_PAUSED,
)
from billing.errors import (
    InvalidSubscriptionError,
    InvalidTransitionError,
    SubscriptionNotCancellableError,
    SubscriptionNotFoundError,
    SubscriptionNotPausableError,
)
from billing.models.subscription import Subscription
from billing.models.subscription_package import SubscriptionPackage
from billing.schemas.payments import ConfirmedPayment
from billing.schemas.subscription import SubscriptionCreate, SubscriptionUpdate
from billing.services import pricing
from billing.services.user_service import set_subscription_pointer
from billing.utils import add_months, ensure_utc, generate_id, now_utc

logger = logging.getLogger(__name__)


def _enforce_one_time_rules(sub: Subscription) -> None:
    if sub.payment_type == PAYMENT_ONE_TIME:
        sub.is_pausable = False
        sub.is_user_cancellable = False


def _cycle_months(billing_cycle: str | None) -> int:
    return 1 if billing_cycle == CYCLE_MONTHLY else 12


def first_billing_date(package: pricing.PricedPackage, start: datetime) -> datetime | None:
    """When autopay should first charge, given the advance already paid."""
    if pricing.calculate_recurring_payment_count(package) == 0:
        return None
    advance = package.advance_payment_months or 0
    if package.billing_cycle == CYCLE_MONTHLY:
        return add_months(start, advance)
    return add_months(start, 12 if advance > 0 else 0)


async def _sync_user_pointer(db: AsyncSession, sub: Subscription) -> None:
    """Best-effort mirror onto the user row; failures are logged, not raised."""
    try:
        await set_subscription_pointer(db, sub.user_id, sub.id, sub.status, sub.package_id)
    except SQLAlchemyError as e:
        await db.rollback()
        await db.refresh(sub)
        logger.warning(f"Subscription {sub.id} saved but user pointer update failed: {e}")


async def create_subscription(db: AsyncSession, data: SubscriptionCreate) -> Subscription:
    """Write a new subscription row and point the user at it."""
    if not data.user_id or not data.package_id:
        raise InvalidSubscriptionError("Subscription requires user_id and package_id")

    is_one_time = data.payment_type == PAYMENT_ONE_TIME
    start = data.start_date or now_utc()
    values = data.model_dump(
        exclude={"id", "start_date", "actual_start_date", "is_pausable", "is_user_cancellable"}
    )
    sub = Subscription(
        id=data.id or generate_id("sub"),
        start_date=start,
        actual_start_date=data.actual_start_date or start,
        is_pausable=(not is_one_time) if data.is_pausable is None else data.is_pausable,
        is_user_cancellable=(not is_one_time) if data.is_user_cancellable is None else data.is_user_cancellable,
        **values,
    )
    _enforce_one_time_rules(sub)

    db.add(sub)
    await db.commit()
    await db.refresh(sub)
    logger.info(f"Created {sub.payment_type} subscription {sub.id} for user {sub.user_id} ({sub.package_id})")

    await _sync_user_pointer(db, sub)
    return sub


async def get_subscription(db: AsyncSession, subscription_id: str) -> Subscription:
    result = await db.execute(select(Subscription).where(Subscription.id == subscription_id))
    sub = result.scalar_one_or_none()
    if not sub:
        raise SubscriptionNotFoundError(f"Subscription with ID {subscription_id} not found")
    return sub


async def get_user_subscriptions(db: AsyncSession, user_id: str) -> list[Subscription]:
    result = await db.execute(
        select(Subscription)
        .where(Subscription.user_id == user_id)
        .order_by(Subscription.start_date.desc())
    )
    return list(result.scalars().all())


async def get_active_user_subscription(db: AsyncSession, user_id: str) -> Subscription | None:
    """Most recent active subscription, or None when the user has none.

    Database errors propagate; only "no row" maps to None.
    """
    result = await db.execute(
        select(Subscription)
        .where(Subscription.user_id == user_id, Subscription.status == STATUS_ACTIVE)
        .order_by(Subscription.start_date.desc())
        .limit(1)
    )
    return result.scalars().first()


async def get_by_razorpay_subscription_id(db: AsyncSession, razorpay_subscription_id: str) -> Subscription | None:
    result = await db.execute(
        select(Subscription).where(Subscription.razorpay_subscription_id == razorpay_subscription_id)
    )
    return result.scalars().first()


async def is_subscription_active(db: AsyncSession, user_id: str) -> bool:
    """Active, or cancelled but still inside the paid period plus grace days."""
    result = await db.execute(
        select(Subscription)
        .where(Subscription.user_id == user_id)
        .order_by(Subscription.start_date.desc())
    )
    grace = timedelta(days=get_settings().grace_period_days)
    now = now_utc()
    for sub in result.scalars().all():
        if sub.status == STATUS_ACTIVE:
            return True
        end_date = ensure_utc(sub.end_date)
        if sub.status == STATUS_CANCELLED and end_date and end_date + grace > now:
            return True
    return False


async def update_subscription(
    db: AsyncSession, subscription_id: str, changes: SubscriptionUpdate
) -> Subscription:
    """Apply partial changes; one-time subscriptions stay non-pausable and non-cancellable."""
    sub = await get_subscription(db, subscription_id)
    for key, value in changes.model_dump(exclude_unset=True).items():
        setattr(sub, key, value)
    _enforce_one_time_rules(sub)
    await db.commit()
    await db.refresh(sub)
    return sub


async def cancel_subscription(
    db: AsyncSession, subscription_id: str, reason: str = "user_requested"
) -> Subscription:
    """User-initiated cancel. Refuses one-time and non-cancellable subscriptions."""
    sub = await get_subscription(db, subscription_id)
    if sub.payment_type == PAYMENT_ONE_TIME or not sub.is_user_cancellable:
        logger.warning(f"Refused cancel of subscription {sub.id} (payment_type={sub.payment_type})")
        raise SubscriptionNotCancellableError(
            "This subscription cannot be cancelled. One-time payments are non-refundable."
        )
    if sub.status == STATUS_CANCELLED:
        return sub

    return await _mark_cancelled(db, sub, reason)


async def admin_cancel_subscription(db: AsyncSession, subscription_id: str) -> Subscription:
    """Admin override: cancels regardless of the user-cancellable flag."""
    sub = await get_subscription(db, subscription_id)
    if sub.status == STATUS_CANCELLED:
        return sub
    return await _mark_cancelled(db, sub, "admin_cancelled")


async def gateway_cancel_subscription(db: AsyncSession, sub: Subscription) -> Subscription:
    """The gateway ended the mandate; mirror it without the user-cancel checks."""
    if sub.status == STATUS_CANCELLED:
        return sub
    return await _mark_cancelled(db, sub, "gateway_cancelled")


async def _mark_cancelled(db: AsyncSession, sub: Subscription, reason: str) -> Subscription:
    sub.status = STATUS_CANCELLED
    sub.cancelled_at = now_utc()
    sub.cancel_reason = reason
    sub.next_billing_date = None
    await db.commit()
    await db.refresh(sub)
    logger.info(f"Subscription {sub.id} cancelled ({reason})")
    await _sync_user_pointer(db, sub)
    return sub


async def pause_subscription(db: AsyncSession, subscription_id: str, paused_by: str) -> Subscription:
    sub = await get_subscription(db, subscription_id)
    if sub.payment_type == PAYMENT_ONE_TIME or not sub.is_pausable:
        raise SubscriptionNotPausableError("This subscription cannot be paused")
    if sub.status != STATUS_ACTIVE:
        raise InvalidTransitionError(f"Cannot pause a {sub.status} subscription")

    sub.status = STATUS_PAUSED
    sub.is_paused = True
    sub.paused_at = now_utc()
    sub.paused_by = paused_by
    await db.commit()
    await db.refresh(sub)
    await _sync_user_pointer(db, sub)
    return sub


async def resume_subscription(db: AsyncSession, subscription_id: str, resumed_by: str) -> Subscription:
    sub = await get_subscription(db, subscription_id)
    if sub.status != STATUS_PAUSED:
        raise InvalidTransitionError(f"Cannot resume a {sub.status} subscription")

    sub.status = STATUS_ACTIVE
    sub.is_paused = False
    sub.resumed_at = now_utc()
    sub.resumed_by = resumed_by
    await db.commit()
    await db.refresh(sub)
    await _sync_user_pointer(db, sub)
    return sub


async def renew_subscription(db: AsyncSession, subscription_id: str) -> Subscription:
    """Extend the paid period by one billing cycle."""
    sub = await get_subscription(db, subscription_id)
    months = _cycle_months(sub.billing_cycle)
    sub.end_date = add_months(ensure_utc(sub.end_date) or now_utc(), months)
    if sub.next_billing_date:
        sub.next_billing_date = add_months(ensure_utc(sub.next_billing_date), months)
    await db.commit()
    await db.refresh(sub)
    logger.info(f"Subscription {sub.id} renewed until {sub.end_date.isoformat()}")
    return sub


async def admin_assign_subscription(
    db: AsyncSession,
    user_id: str,
    package: SubscriptionPackage,
    payment_id: str | None = None,
    razorpay_subscription_id: str | None = None,
    assigned_by: str = "admin",
) -> Subscription:
    """Assign a package to a user without checkout."""
    now = now_utc()
    data = SubscriptionCreate(
        user_id=user_id,
        package_id=package.id,
        package_name=package.title,
        start_date=now,
        end_date=add_months(now, package.duration_months or 12),
        payment_type=package.payment_type,
        billing_cycle=package.billing_cycle,
        amount=package.price,
        recurring_amount=pricing.calculate_recurring_payment_amount(package),
        signup_fee=package.setup_fee or 0,
        advance_payment_months=package.advance_payment_months or 0,
        assigned_by=assigned_by,
        assigned_at=now,
    )
    if payment_id or razorpay_subscription_id:
        data.payment_method = PAYMENT_METHOD_RAZORPAY
        data.transaction_id = payment_id
        data.razorpay_subscription_id = razorpay_subscription_id
    return await create_subscription(db, data)


async def find_recorded_payment(db: AsyncSession, order_id: str, payment_id: str) -> Subscription | None:
    """The subscription already holding this checkout order or payment, if any."""
    result = await db.execute(
        select(Subscription)
        .where(
            or_(
                Subscription.razorpay_order_id == order_id,
                cast(Subscription.invoice_ids, String).contains(f'"{payment_id}"', autoescape=True),
            )
        )
        .limit(1)
    )
    return result.scalars().first()


async def record_successful_payment(
    db: AsyncSession,
    user_id: str,
    package: SubscriptionPackage,
    payment: ConfirmedPayment,
) -> Subscription:
    """Persist the subscription bought through a confirmed checkout payment."""
    now = now_utc()
    is_recurring = package.payment_type == PAYMENT_RECURRING
    auto_pay = payment.enable_auto_pay and is_recurring
    data = SubscriptionCreate(
        user_id=user_id,
        package_id=package.id,
        package_name=package.title,
        start_date=now,
        end_date=add_months(now, package.duration_months or 12),
        next_billing_date=first_billing_date(package, now) if auto_pay else None,
        payment_type=package.payment_type,
        billing_cycle=package.billing_cycle,
        amount=payment.amount,
        recurring_amount=pricing.calculate_recurring_payment_amount(package),
        signup_fee=package.setup_fee or 0,
        advance_payment_months=package.advance_payment_months or 0,
        auto_pay_enabled=auto_pay,
        assigned_by="system",
        assigned_at=now,
        payment_method=PAYMENT_METHOD_RAZORPAY,
        transaction_id=payment.transaction_id or payment.payment_id,
        invoice_ids=[payment.payment_id],
        razorpay_order_id=payment.order_id,
        razorpay_customer_id=payment.customer_id,
        razorpay_token_id=payment.token_id,
    )
    return await create_subscription(db, data)


async def list_due_subscriptions(db: AsyncSession, now: datetime | None = None) -> list[Subscription]:
    """Active recurring autopay subscriptions whose next billing date has passed."""
    now = now or now_utc()
    result = await db.execute(
        select(Subscription).where(
            Subscription.status == STATUS_ACTIVE,
            Subscription.payment_type == PAYMENT_RECURRING,
            Subscription.auto_pay_enabled == True,
            Subscription.is_paused == False,
            Subscription.next_billing_date.is_not(None),
            Subscription.next_billing_date <= now,
        )
    )
    return list(result.scalars().all())


async def record_recurring_charge(db: AsyncSession, sub: Subscription, payment_id: str, cycles_left: int) -> Subscription:
    """Append the charge and move the next billing date forward one cycle."""
    sub.invoice_ids = [*(sub.invoice_ids or []), payment_id]
    if cycles_left > 0:
        sub.next_billing_date = add_months(ensure_utc(sub.next_billing_date) or now_utc(), _cycle_months(sub.billing_cycle))
    else:
        sub.next_billing_date = None
    await db.commit()
    await db.refresh(sub)
    return sub

"""Tests for the subscription record store."""

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from billing.errors import (
    InvalidSubscriptionError,
    InvalidTransitionError,
    SubscriptionNotCancellableError,
    SubscriptionNotFoundError,
    SubscriptionNotPausableError,
)
from billing.schemas.payments import ConfirmedPayment
from billing.schemas.subscription import SubscriptionCreate, SubscriptionUpdate
from billing.services import subscription_service
from billing.services.user_service import get_user
from billing.utils import add_months, ensure_utc, now_utc


def _create(**kwargs) -> SubscriptionCreate:
    values = {"user_id": "user_1", "package_id": "pkg_growth", "package_name": "Business Growth"}
    values.update(kwargs)
    return SubscriptionCreate(**values)


async def test_one_time_subscription_is_never_pausable_or_cancellable(db, user):
    sub = await subscription_service.create_subscription(
        db, _create(payment_type="one-time", is_pausable=True, is_user_cancellable=True)
    )
    assert sub.id.startswith("sub_")
    assert sub.is_pausable is False
    assert sub.is_user_cancellable is False


async def test_recurring_subscription_defaults_to_pausable_and_cancellable(db, user):
    sub = await subscription_service.create_subscription(db, _create(payment_type="recurring"))
    assert sub.is_pausable is True
    assert sub.is_user_cancellable is True


async def test_missing_user_or_package_is_rejected(db):
    with pytest.raises(InvalidSubscriptionError):
        await subscription_service.create_subscription(db, SubscriptionCreate(package_id="pkg_growth"))
    with pytest.raises(InvalidSubscriptionError):
        await subscription_service.create_subscription(db, SubscriptionCreate(user_id="user_1"))


async def test_create_updates_user_pointer(db, user):
    sub = await subscription_service.create_subscription(db, _create())
    await db.refresh(user)
    assert user.subscription_id == sub.id
    assert user.subscription_status == "active"
    assert user.subscription_package == "pkg_growth"


async def test_create_survives_unknown_user_pointer(db):
    # No user row: the subscription is still written, the pointer update is skipped
    sub = await subscription_service.create_subscription(db, _create(user_id="ghost"))
    assert (await subscription_service.get_subscription(db, sub.id)).user_id == "ghost"
    assert await get_user(db, "ghost") is None


async def test_cancel_one_time_subscription_raises(db, user):
    sub = await subscription_service.create_subscription(db, _create(payment_type="one-time"))
    with pytest.raises(SubscriptionNotCancellableError):
        await subscription_service.cancel_subscription(db, sub.id)


async def test_cancel_non_cancellable_recurring_raises(db, user):
    sub = await subscription_service.create_subscription(db, _create(is_user_cancellable=False))
    with pytest.raises(SubscriptionNotCancellableError):
        await subscription_service.cancel_subscription(db, sub.id)


async def test_cancel_recurring_subscription(db, user):
    sub = await subscription_service.create_subscription(db, _create())
    cancelled = await subscription_service.cancel_subscription(db, sub.id, "too expensive")

    assert cancelled.status == "cancelled"
    assert cancelled.cancel_reason == "too expensive"
    assert cancelled.cancelled_at is not None
    await db.refresh(user)
    assert user.subscription_status == "cancelled"

    again = await subscription_service.cancel_subscription(db, sub.id)
    assert again.cancel_reason == "too expensive"


async def test_admin_cancel_overrides_user_flag(db, user):
    sub = await subscription_service.create_subscription(db, _create(payment_type="one-time"))
    cancelled = await subscription_service.admin_cancel_subscription(db, sub.id)
    assert cancelled.status == "cancelled"
    assert cancelled.cancel_reason == "admin_cancelled"


async def test_update_reapplies_one_time_rule(db, user):
    sub = await subscription_service.create_subscription(db, _create(payment_type="one-time"))
    updated = await subscription_service.update_subscription(
        db, sub.id, SubscriptionUpdate(is_pausable=True, is_user_cancellable=True)
    )
    assert updated.is_pausable is False
    assert updated.is_user_cancellable is False


async def test_pause_and_resume(db, user):
    sub = await subscription_service.create_subscription(db, _create())
    paused = await subscription_service.pause_subscription(db, sub.id, paused_by="user_1")
    assert paused.status == "paused"
    assert paused.is_paused is True

    with pytest.raises(InvalidTransitionError):
        await subscription_service.pause_subscription(db, sub.id, paused_by="user_1")

    resumed = await subscription_service.resume_subscription(db, sub.id, resumed_by="user_1")
    assert resumed.status == "active"
    assert resumed.is_paused is False
    assert resumed.resumed_by == "user_1"


async def test_one_time_subscription_cannot_pause(db, user):
    sub = await subscription_service.create_subscription(db, _create(payment_type="one-time"))
    with pytest.raises(SubscriptionNotPausableError):
        await subscription_service.pause_subscription(db, sub.id, paused_by="user_1")


async def test_resume_requires_paused(db, user):
    sub = await subscription_service.create_subscription(db, _create())
    with pytest.raises(InvalidTransitionError):
        await subscription_service.resume_subscription(db, sub.id, resumed_by="user_1")


async def test_get_missing_subscription_raises(db):
    with pytest.raises(SubscriptionNotFoundError):
        await subscription_service.get_subscription(db, "sub_missing")


async def test_user_subscriptions_newest_first(db, user):
    now = now_utc()
    old = await subscription_service.create_subscription(db, _create(start_date=now - timedelta(days=400)))
    new = await subscription_service.create_subscription(db, _create(start_date=now))

    subs = await subscription_service.get_user_subscriptions(db, "user_1")
    assert [s.id for s in subs] == [new.id, old.id]

    active = await subscription_service.get_active_user_subscription(db, "user_1")
    assert active.id == new.id


async def test_active_subscription_none_when_absent(db, user):
    assert await subscription_service.get_active_user_subscription(db, "user_1") is None


async def test_active_subscription_propagates_database_errors(db, engine):
    async with engine.begin() as conn:
        await conn.exec_driver_sql("DROP TABLE user_subscriptions")
    with pytest.raises(OperationalError):
        await subscription_service.get_active_user_subscription(db, "user_1")


async def test_cancelled_subscription_active_within_grace_period(db, user):
    now = now_utc()
    sub = await subscription_service.create_subscription(db, _create(end_date=now - timedelta(days=3)))
    await subscription_service.cancel_subscription(db, sub.id)
    assert await subscription_service.is_subscription_active(db, "user_1") is True

    await subscription_service.update_subscription(
        db, sub.id, SubscriptionUpdate(end_date=now - timedelta(days=30))
    )
    assert await subscription_service.is_subscription_active(db, "user_1") is False


async def test_renew_extends_by_one_cycle(db, user):
    now = now_utc()
    sub = await subscription_service.create_subscription(
        db, _create(billing_cycle="monthly", end_date=now, next_billing_date=now)
    )
    renewed = await subscription_service.renew_subscription(db, sub.id)
    assert ensure_utc(renewed.end_date) == add_months(now, 1)
    assert ensure_utc(renewed.next_billing_date) == add_months(now, 1)


async def test_admin_assign_applies_package_terms(db, user, one_time_package):
    sub = await subscription_service.admin_assign_subscription(
        db, "user_1", one_time_package, payment_id="pay_manual", assigned_by="admin_1"
    )
    assert sub.payment_type == "one-time"
    assert sub.is_pausable is False
    assert sub.is_user_cancellable is False
    assert sub.assigned_by == "admin_1"
    assert sub.payment_method == "razorpay"
    assert sub.transaction_id == "pay_manual"
    assert ensure_utc(sub.end_date) == add_months(ensure_utc(sub.start_date), 12)


async def test_record_successful_payment_schedules_autopay(db, user, monthly_package):
    payment = ConfirmedPayment(
        payment_id="pay_1",
        order_id="order_1",
        amount=699,
        enable_auto_pay=True,
        customer_id="cust_1",
        token_id="token_1",
    )
    sub = await subscription_service.record_successful_payment(db, "user_1", monthly_package, payment)

    assert sub.amount == 699
    assert sub.recurring_amount == 499
    assert sub.auto_pay_enabled is True
    assert sub.invoice_ids == ["pay_1"]
    assert ensure_utc(sub.next_billing_date) == add_months(ensure_utc(sub.start_date), 1)
    assert sub.is_user_cancellable is True


async def test_recorded_payment_is_found_by_order_or_invoice(db, user, monthly_package):
    payment = ConfirmedPayment(payment_id="pay_1", order_id="order_1", amount=699)
    sub = await subscription_service.record_successful_payment(db, "user_1", monthly_package, payment)
    sub.invoice_ids = ["pay_1", "pay_rec_0001"]
    await db.commit()

    assert (await subscription_service.find_recorded_payment(db, "order_1", "pay_x")).id == sub.id
    assert (await subscription_service.find_recorded_payment(db, "order_9", "pay_rec_0001")).id == sub.id
    assert await subscription_service.find_recorded_payment(db, "order_9", "pay_rec_000") is None

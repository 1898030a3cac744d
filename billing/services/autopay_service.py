"""Autopay poller: charges due recurring subscriptions against stored mandates."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from billing.config import get_settings
from billing.constants import PAYMENT_RECURRING, STATUS_ACTIVE
from billing.errors import BillingError, InvalidTransitionError
from billing.models.subscription import Subscription
from billing.services import authorization_service, subscription_service
from billing.services.gateway import RazorpayGateway
from billing.services.user_service import get_user
from billing.utils import ensure_utc, now_utc

logger = logging.getLogger(__name__)


@dataclass
class AutopayReport:
    charged: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


async def charge_subscription(
    db: AsyncSession, sub: Subscription, gateway: RazorpayGateway, currency: str
) -> Subscription:
    """Collect one cycle on ``sub`` through its mandate token."""
    # First invoice is the checkout payment itself
    cycles_paid = max(len(sub.invoice_ids or []) - 1, 0)
    charge = authorization_service.recurring_charge(sub, cycles_paid)

    order = await gateway.create_order(
        amount=charge.amount,
        currency=currency,
        receipt=f"rcpt_{charge.notes['transaction_id']}",
        notes=charge.notes,
    )
    user = await get_user(db, sub.user_id)
    payment = await gateway.create_recurring_payment(
        amount=charge.amount,
        currency=currency,
        order_id=order["id"],
        customer_id=sub.razorpay_customer_id,
        token_id=sub.razorpay_token_id,
        email=user.email if user else None,
        contact=user.phone if user else None,
        notes=charge.notes,
    )
    payment_id = payment.get("razorpay_payment_id") or payment.get("id") or order["id"]
    logger.info(f"Charged {charge.amount} {currency} on subscription {sub.id} ({payment_id})")
    return await subscription_service.record_recurring_charge(db, sub, payment_id, charge.cycles_left)


def ensure_chargeable(sub: Subscription, now: datetime | None = None) -> None:
    """Raise InvalidTransitionError unless ``sub`` is due for a mandate charge.

    Mirrors the due-subscription query plus the mandate check, for charges
    that arrive by id instead of through the poller.
    """
    now = now or now_utc()
    due_at = ensure_utc(sub.next_billing_date)
    if sub.status != STATUS_ACTIVE or sub.is_paused:
        raise InvalidTransitionError(f"Cannot charge a {sub.status} subscription")
    if sub.payment_type != PAYMENT_RECURRING or not sub.auto_pay_enabled:
        raise InvalidTransitionError(f"Subscription {sub.id} is not on autopay")
    if due_at is None or due_at > now:
        raise InvalidTransitionError(f"Subscription {sub.id} is not due for billing")
    if not sub.razorpay_token_id or not sub.razorpay_customer_id:
        raise InvalidTransitionError(f"Subscription {sub.id} has no mandate token")


async def charge_subscription_by_id(
    db: AsyncSession, subscription_id: str, gateway: RazorpayGateway, currency: str
) -> Subscription:
    sub = await subscription_service.get_subscription(db, subscription_id)
    ensure_chargeable(sub)
    return await charge_subscription(db, sub, gateway, currency)


async def charge_due_subscriptions(
    session_factory: async_sessionmaker[AsyncSession],
    gateway: RazorpayGateway,
    in_flight: set[str] | None = None,
) -> AutopayReport:
    """One poller pass over every subscription whose billing date has passed.

    Each charge runs in its own session. A failure on one subscription is
    logged, its session rolled back, and the pass moves on.
    """
    in_flight = in_flight if in_flight is not None else set()
    currency = get_settings().currency
    report = AutopayReport()

    async with session_factory() as db:
        due = await subscription_service.list_due_subscriptions(db)
    logger.info(f"Autopay pass: {len(due)} subscription(s) due")

    for sub in due:
        if sub.id in in_flight:
            logger.debug(f"Subscription {sub.id} already being charged, skipping")
            report.skipped.append(sub.id)
            continue
        if not sub.razorpay_token_id or not sub.razorpay_customer_id:
            logger.warning(f"Subscription {sub.id} has no mandate token, skipping autopay")
            report.skipped.append(sub.id)
            continue

        in_flight.add(sub.id)
        async with session_factory() as db:
            try:
                await charge_subscription_by_id(db, sub.id, gateway, currency)
                report.charged.append(sub.id)
            except BillingError as e:
                await db.rollback()
                logger.error(f"Autopay charge failed for subscription {sub.id}: {e.message}")
                report.failed.append(sub.id)
            except Exception:
                await db.rollback()
                logger.exception(f"Autopay charge crashed for subscription {sub.id}")
                report.failed.append(sub.id)
            finally:
                in_flight.discard(sub.id)

    return report


class AutopayService:
    """Owns the single background polling task for this process."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        gateway: RazorpayGateway,
        interval_seconds: int | None = None,
    ):
        self._session_factory = session_factory
        self._gateway = gateway
        self._interval = interval_seconds or get_settings().autopay_interval_seconds
        self._task: asyncio.Task | None = None
        self._in_flight: set[str] = set()
        self.is_running = False

    def start(self) -> None:
        if self.is_running:
            logger.info("Autopay service already running")
            return
        self.is_running = True
        self._task = asyncio.create_task(self._run(), name="autopay-poller")
        logger.info(f"Autopay service started (every {self._interval}s)")

    async def stop(self) -> None:
        self.is_running = False
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Autopay service stopped")

    async def check_immediately(self) -> AutopayReport:
        return await charge_due_subscriptions(self._session_factory, self._gateway, self._in_flight)

    def get_status(self) -> dict:
        return {"is_running": self.is_running, "has_task": self._task is not None}

    async def _run(self) -> None:
        while self.is_running:
            try:
                await self.check_immediately()
            except Exception as e:
                # keep polling
                logger.exception(f"Autopay pass failed: {e}")
            await asyncio.sleep(self._interval)

"""Webhook routes: Razorpay."""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from billing.db.session import get_db
from billing.errors import PaymentVerificationError
from billing.schemas.payments import WebhookEvent
from billing.services import subscription_service
from billing.services.gateway import RazorpayGateway, get_gateway

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _entity(event: WebhookEvent, name: str) -> dict:
    return (event.payload.get(name) or {}).get("entity") or {}


async def handle_subscription_charged(event: WebhookEvent, db: AsyncSession) -> None:
    entity = _entity(event, "subscription")
    sub = await subscription_service.get_by_razorpay_subscription_id(db, entity.get("id", ""))
    if not sub:
        logger.warning(f"subscription.charged for unknown Razorpay subscription {entity.get('id')}")
        return
    payment_id = _entity(event, "payment").get("id")
    if payment_id and payment_id not in (sub.invoice_ids or []):
        sub.invoice_ids = [*(sub.invoice_ids or []), payment_id]
    await subscription_service.renew_subscription(db, sub.id)


async def handle_subscription_cancelled(event: WebhookEvent, db: AsyncSession) -> None:
    entity = _entity(event, "subscription")
    sub = await subscription_service.get_by_razorpay_subscription_id(db, entity.get("id", ""))
    if not sub:
        logger.warning(f"subscription.cancelled for unknown Razorpay subscription {entity.get('id')}")
        return
    await subscription_service.gateway_cancel_subscription(db, sub)


@router.post("/razorpay")
async def razorpay_webhook(
    request: Request,
    razorpay_signature: str = Header(alias="x-razorpay-signature"),
    db: AsyncSession = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_gateway),
):
    payload = (await request.body()).decode("utf-8", errors="replace")

    try:
        gateway.verify_webhook_signature(payload, razorpay_signature)
    except PaymentVerificationError:
        raise HTTPException(status_code=400, detail="Invalid signature")

    try:
        event = WebhookEvent.model_validate_json(payload)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid webhook payload")
    logger.info(f"Razorpay webhook: {event.event}")

    if event.event == "subscription.charged":
        await handle_subscription_charged(event, db)
    elif event.event == "subscription.cancelled":
        await handle_subscription_cancelled(event, db)
    elif event.event == "payment.failed":
        payment = _entity(event, "payment")
        logger.warning(
            f"Payment {payment.get('id')} failed: {payment.get('error_description') or 'no reason given'}"
        )

    return {"status": "ok"}

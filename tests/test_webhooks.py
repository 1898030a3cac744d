import json
from datetime import timedelta

from billing.schemas.subscription import SubscriptionCreate
from billing.services import subscription_service
from billing.utils import add_months, ensure_utc, now_utc


def _event(name: str, subscription_id: str, payment_id: str | None = None) -> bytes:
    payload = {"subscription": {"entity": {"id": subscription_id, "status": "active"}}}
    if payment_id:
        payload["payment"] = {"entity": {"id": payment_id}}
    return json.dumps({"event": name, "payload": payload}).encode()


async def _gateway_subscription(db, end_date):
    return await subscription_service.create_subscription(
        db,
        SubscriptionCreate(
            user_id="user_1",
            package_id="pkg_influencer",
            billing_cycle="yearly",
            end_date=end_date,
            razorpay_subscription_id="sub_rzp_1",
        ),
    )


async def test_bad_signature_is_rejected(client):
    resp = await client.post(
        "/webhooks/razorpay",
        content=_event("subscription.charged", "sub_rzp_1"),
        headers={"X-Razorpay-Signature": "forged"},
    )
    assert resp.status_code == 400


async def test_subscription_charged_renews(client, db, session_factory, user):
    end = now_utc() + timedelta(days=5)
    sub = await _gateway_subscription(db, end)

    resp = await client.post(
        "/webhooks/razorpay",
        content=_event("subscription.charged", "sub_rzp_1", "pay_renewal"),
        headers={"X-Razorpay-Signature": "valid_signature"},
    )
    assert resp.json() == {"status": "ok"}

    async with session_factory() as fresh:
        renewed = await subscription_service.get_subscription(fresh, sub.id)
    assert ensure_utc(renewed.end_date) == add_months(end, 12)
    assert renewed.invoice_ids == ["pay_renewal"]


async def test_subscription_cancelled_by_gateway(client, db, session_factory, user):
    sub = await _gateway_subscription(db, now_utc())

    await client.post(
        "/webhooks/razorpay",
        content=_event("subscription.cancelled", "sub_rzp_1"),
        headers={"X-Razorpay-Signature": "valid_signature"},
    )

    async with session_factory() as fresh:
        cancelled = await subscription_service.get_subscription(fresh, sub.id)
    assert cancelled.status == "cancelled"
    assert cancelled.cancel_reason == "gateway_cancelled"


async def test_unknown_events_are_ignored(client):
    resp = await client.post(
        "/webhooks/razorpay",
        content=json.dumps({"event": "order.paid", "payload": {}}).encode(),
        headers={"X-Razorpay-Signature": "valid_signature"},
    )
    assert resp.json() == {"status": "ok"}


async def test_signed_body_that_is_not_json_is_400(client):
    resp = await client.post(
        "/webhooks/razorpay",
        content=b"{not json",
        headers={"X-Razorpay-Signature": "valid_signature"},
    )
    assert resp.status_code == 400


async def test_event_without_name_is_400(client):
    resp = await client.post(
        "/webhooks/razorpay",
        content=json.dumps({"payload": {}}).encode(),
        headers={"X-Razorpay-Signature": "valid_signature"},
    )
    assert resp.status_code == 400

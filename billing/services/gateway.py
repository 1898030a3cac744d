"""Razorpay gateway wrapper and checkout-options factory.

All widget options go through ``create_checkout``, which always stamps the
no-refund metadata and enforces the notes limit. Nothing patches the
widget at runtime.
"""

import asyncio
import copy
import logging
from functools import lru_cache
from typing import Any, Callable

import httpx
import razorpay
import requests
from razorpay.errors import BadRequestError, GatewayError, ServerError, SignatureVerificationError
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from billing.config import get_settings
from billing.constants import (
    GATEWAY_BACKOFF_FACTOR,
    GATEWAY_BACKOFF_MAX,
    GATEWAY_MAX_RETRIES,
    GATEWAY_RETRY_STATUSES,
    RAZORPAY_API_URL,
    REFUND_POLICY,
    REFUND_STATUS,
)
from billing.errors import (
    CheckoutConfigurationError,
    GatewayRateLimitedError,
    PaymentGatewayError,
    PaymentVerificationError,
)
from billing.http_client import get_http_client
from billing.notes import clean_notes, truncate_notes
from billing.utils import generate_transaction_id, validate_url

logger = logging.getLogger(__name__)


def _requests_session() -> requests.Session:
    """SDK session that backs off and retries when Razorpay answers 429."""
    session = requests.Session()
    retries = Retry(
        total=GATEWAY_MAX_RETRIES,
        connect=0,
        read=0,
        status_forcelist=GATEWAY_RETRY_STATUSES,
        allowed_methods=frozenset(["GET", "POST", "PATCH", "PUT", "DELETE"]),
        backoff_factor=GATEWAY_BACKOFF_FACTOR,
        backoff_max=GATEWAY_BACKOFF_MAX,
    )
    adapter = HTTPAdapter(max_retries=retries)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def _error_message(exc: Exception) -> str:
    return str(exc.args[0]) if exc.args else str(exc)


class RazorpayGateway:
    """Async facade over the synchronous ``razorpay.Client``."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        webhook_secret: str = "",
        client: razorpay.Client | None = None,
    ):
        self.key_id = key_id
        self.webhook_secret = webhook_secret
        self._client = client or razorpay.Client(session=_requests_session(), auth=(key_id, key_secret))

    async def _call(self, operation: str, func: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking SDK call in a thread and map its failures to billing errors."""
        try:
            return await asyncio.to_thread(func, *args)
        except requests.exceptions.RetryError as e:
            logger.warning(f"Razorpay still rate limited after {GATEWAY_MAX_RETRIES} retries during {operation}")
            raise GatewayRateLimitedError(
                "Payment service is currently busy. Please try again in a few minutes."
            ) from e
        except BadRequestError as e:
            raise PaymentGatewayError(f"{operation} failed: {_error_message(e)}") from e
        except (ServerError, GatewayError) as e:
            raise PaymentGatewayError(f"Razorpay server error during {operation}: {_error_message(e)}") from e
        except (requests.RequestException, ConnectionError, TimeoutError) as e:
            raise PaymentGatewayError(f"Razorpay unreachable during {operation}: {e}") from e

    async def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict[str, Any] | None = None,
        customer_id: str | None = None,
        token: dict[str, Any] | None = None,
    ) -> dict:
        """Create an order for ``amount`` paise.

        ``customer_id`` and ``token`` register a mandate on the order so the
        checkout payment leaves a reusable token behind.
        """
        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt[:40],
            "notes": truncate_notes(notes),
        }
        if customer_id:
            payload["customer_id"] = customer_id
        if token:
            payload["token"] = token
        order = await self._call("order create", self._client.order.create, payload)
        if "id" not in order:
            raise PaymentGatewayError("Razorpay returned an order without an id")
        logger.info(f"Razorpay order {order['id']} created for {amount} {currency}")
        return order

    async def fetch_order(self, order_id: str) -> dict:
        return await self._call("order fetch", self._client.order.fetch, order_id)

    async def fetch_payment(self, payment_id: str) -> dict:
        return await self._call("payment fetch", self._client.payment.fetch, payment_id)

    async def create_or_find_customer(self, name: str | None, email: str | None, contact: str | None) -> dict:
        """Create the gateway customer, or return the existing one for these details."""
        payload = {"name": name or "", "email": email or "", "contact": contact or "", "fail_existing": "0"}
        customer = await self._call("customer create", self._client.customer.create, payload)
        logger.info(f"Razorpay customer {customer.get('id')} ready")
        return customer

    async def create_recurring_payment(
        self,
        *,
        amount: int,
        currency: str,
        order_id: str,
        customer_id: str,
        token_id: str,
        email: str | None,
        contact: str | None,
        notes: dict[str, Any] | None = None,
    ) -> dict:
        """Charge a stored mandate token for an existing order."""
        payload = {
            "amount": amount,
            "currency": currency,
            "order_id": order_id,
            "customer_id": customer_id,
            "token": token_id,
            "recurring": "1",
            "email": email or "",
            "contact": contact or "",
            "notes": truncate_notes(notes),
        }
        return await self._call("recurring payment", self._client.payment.createRecurring, payload)

    def verify_payment_signature(self, order_id: str, payment_id: str, signature: str) -> None:
        """Raise PaymentVerificationError unless the checkout signature matches."""
        try:
            self._client.utility.verify_payment_signature(
                {
                    "razorpay_order_id": order_id,
                    "razorpay_payment_id": payment_id,
                    "razorpay_signature": signature,
                }
            )
        except SignatureVerificationError as e:
            raise PaymentVerificationError("Invalid payment signature") from e

    def verify_webhook_signature(self, body: str, signature: str) -> None:
        if not self.webhook_secret:
            raise CheckoutConfigurationError("Webhook secret not configured")
        try:
            self._client.utility.verify_webhook_signature(body, signature, self.webhook_secret)
        except SignatureVerificationError as e:
            raise PaymentVerificationError("Invalid webhook signature") from e

    async def is_reachable(self) -> bool:
        """Probe the Razorpay API with the configured credentials."""
        client = get_http_client()
        try:
            response = await client.get(f"{RAZORPAY_API_URL}/orders", params={"count": 1}, auth=self._client.auth)
        except httpx.HTTPError as e:
            logger.warning(f"Razorpay health check failed: {e}")
            return False
        return response.status_code == 200


@lru_cache
def get_gateway() -> RazorpayGateway:
    """Return the process-wide gateway (also used as a FastAPI dependency)."""
    settings = get_settings()
    if not settings.razorpay_key_id or not settings.razorpay_key_secret:
        logger.warning("Razorpay keys not configured; gateway calls will fail")
    return RazorpayGateway(
        key_id=settings.razorpay_key_id,
        key_secret=settings.razorpay_key_secret,
        webhook_secret=settings.razorpay_webhook_secret,
    )


# --- Checkout options factory ---


def enhance_checkout_options(options: dict[str, Any]) -> dict[str, Any]:
    """Stamp no-refund metadata and a transaction id into ``options['notes']``.

    Idempotent: an existing transaction id is kept, repeated calls return
    the same notes.
    """
    notes = clean_notes(options.get("notes"))
    notes["isNonRefundable"] = "true"
    notes["refundStatus"] = REFUND_STATUS
    notes["refundPolicy"] = REFUND_POLICY
    notes.setdefault("transaction_id", str(options.get("transaction_id") or generate_transaction_id()))
    options["notes"] = truncate_notes(notes)
    return options


def clean_checkout_options(options: dict[str, Any]) -> dict[str, Any]:
    """Drop values the widget rejects or that conflict with order-based checkout."""
    for key in [k for k, v in options.items() if v is None or v == ""]:
        del options[key]

    if not options.get("key"):
        options["key"] = get_settings().razorpay_key_id

    prefill = options.get("prefill")
    if prefill is not None:
        prefill = {k: v for k, v in prefill.items() if v}
        if prefill:
            options["prefill"] = prefill
        else:
            del options["prefill"]

    if "notes" in options:
        notes = clean_notes(options["notes"])
        if notes:
            options["notes"] = notes
        else:
            del options["notes"]

    order_id = options.get("order_id")
    if options.get("subscription_id") and order_id:
        logger.warning("Both subscription_id and order_id present, removing subscription_id")
        del options["subscription_id"]
    if options.get("recurring") is True and not options.get("subscription_id"):
        logger.warning("Recurring flag present without subscription_id, removing recurring flag")
        del options["recurring"]
    if order_id and str(order_id).startswith("order_"):
        # Amount and currency are already bound to the order
        for key in ("recurring", "subscription_id", "amount", "currency"):
            options.pop(key, None)
    elif order_id and "amount" in options:
        del options["amount"]

    callback_url = options.get("callback_url")
    if callback_url and not validate_url(callback_url):
        logger.warning("Invalid callback_url, removing it")
        del options["callback_url"]

    return options


def create_checkout(options: dict[str, Any]) -> dict[str, Any]:
    """Return widget-ready options: a cleaned, enhanced deep copy of ``options``."""
    safe = copy.deepcopy(options)
    clean_checkout_options(safe)
    enhance_checkout_options(safe)

    if not safe.get("key") or not safe.get("order_id"):
        logger.error(f"Missing required Razorpay parameters: key={bool(safe.get('key'))} order_id={safe.get('order_id')}")
        raise CheckoutConfigurationError(
            "Required parameters missing: key and order_id are mandatory for Razorpay checkout"
        )
    return safe

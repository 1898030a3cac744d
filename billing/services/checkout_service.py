"""Shape checkout widget options from an authorization result.

No amounts are computed here: everything monetary is echoed from the
``AuthorizationResult`` the authorization service produced.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from billing.config import Settings
from billing.errors import CheckoutConfigurationError
from billing.schemas.package import PackageData
from billing.schemas.payments import AuthorizationResult, CustomerData
from billing.services.gateway import create_checkout

logger = logging.getLogger(__name__)

SuccessCallback = Callable[[dict[str, Any]], Any]
DismissCallback = Callable[[], Any]


@dataclass
class CheckoutSession:
    """Widget options plus the callbacks that never get serialized."""

    options: dict[str, Any]
    on_success: SuccessCallback | None = field(default=None, repr=False)
    on_dismiss: DismissCallback | None = field(default=None, repr=False)

    def success(self, response: dict[str, Any]) -> Any:
        """Forward a widget success response, enriched with the order context."""
        if self.on_success is None:
            return None
        return self.on_success(
            {
                **response,
                "orderId": self.options.get("order_id"),
                "enableAutoPay": self.options.get("notes", {}).get("enableAutoPay") == "true",
            }
        )

    def dismiss(self) -> Any:
        if self.on_dismiss is None:
            return None
        return self.on_dismiss()


def build_prefill(customer: CustomerData | None) -> dict[str, str]:
    if customer is None:
        return {}
    cleaned = customer.cleaned()
    prefill = {}
    if cleaned.get("name"):
        prefill["name"] = cleaned["name"]
    if cleaned.get("email"):
        prefill["email"] = cleaned["email"]
    if cleaned.get("phone"):
        prefill["contact"] = cleaned["phone"]
    return prefill


def build_checkout_options(
    user_id: str,
    package: PackageData,
    customer: CustomerData | None,
    authorization: AuthorizationResult,
    settings: Settings,
    callback_url: str | None = None,
    on_success: SuccessCallback | None = None,
    on_dismiss: DismissCallback | None = None,
) -> CheckoutSession:
    """Build the checkout session for an authorized payment.

    Raises CheckoutConfigurationError when the authorization carries no order.
    """
    order_id = authorization.order.id if authorization.order else None
    if not order_id:
        logger.error(f"Authorization for user {user_id} returned no order")
        raise CheckoutConfigurationError("Invalid response from server: missing order information")

    enable_auto_pay = authorization.enable_auto_pay
    options: dict[str, Any] = {
        "key": authorization.key,
        "order_id": order_id,
        "name": authorization.name or settings.merchant_name,
        "description": f"Payment for {package.title}",
        "image": settings.merchant_logo_url,
        "prefill": build_prefill(customer),
        "customer_id": authorization.customer_id,
        "notes": {
            **authorization.notes,
            "packageId": package.id,
            "userId": user_id,
            "enableAutoPay": enable_auto_pay,
        },
        "theme": {"color": settings.theme_color},
        "modal": {"escape": False, "backdropclose": False},
        "callback_url": callback_url,
        "redirect": False,
        "transaction_id": authorization.transaction_id,
    }

    if enable_auto_pay and authorization.remaining_amount_paise > 0:
        # Mandate ceiling is the authorized remainder, never recomputed client-side
        options["recurring_token"] = {"max_amount": authorization.remaining_amount_paise}

    options = create_checkout(options)
    options.pop("transaction_id", None)
    logger.info(f"Checkout options ready for order {order_id} (autopay={enable_auto_pay})")
    return CheckoutSession(options=options, on_success=on_success, on_dismiss=on_dismiss)

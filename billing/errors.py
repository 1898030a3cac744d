"""Typed errors for the billing domain.

Each error carries the HTTP status the API layer should answer with, so
callers branch on the exception class instead of matching message text.
"""


class BillingError(Exception):
    """Base class for all billing errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidSubscriptionError(BillingError, ValueError):
    """Subscription data is missing required fields."""


class SubscriptionNotFoundError(BillingError, LookupError):
    status_code = 404


class PackageNotFoundError(BillingError, LookupError):
    status_code = 404


class SubscriptionNotCancellableError(BillingError):
    """The subscription is one-time or marked non-cancellable."""

    status_code = 409


class SubscriptionNotPausableError(BillingError):
    status_code = 409


class InvalidTransitionError(BillingError):
    """Requested status change is not allowed from the current status."""

    status_code = 409


class CheckoutConfigurationError(BillingError):
    """Checkout options cannot be built (e.g. missing order id or key)."""

    status_code = 502


class PaymentGatewayError(BillingError):
    """The payment gateway rejected or failed a request."""

    status_code = 502


class GatewayRateLimitedError(PaymentGatewayError):
    status_code = 503


class PaymentVerificationError(BillingError):
    """Payment or webhook could not be verified."""

    status_code = 400


class PaymentMismatchError(PaymentVerificationError):
    """The paid order was opened for another package, user or amount."""


class PaymentAlreadyRecordedError(BillingError):
    status_code = 409

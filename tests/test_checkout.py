"""Tests for the checkout options builder."""

import pytest

from billing.config import get_settings
from billing.errors import CheckoutConfigurationError
from billing.schemas.package import PackageData
from billing.schemas.payments import AuthorizationResult, CustomerData, OrderInfo
from billing.services.authorization_service import resolve_one_time
from billing.services.checkout_service import build_checkout_options, build_prefill

PACKAGE = PackageData(id="pkg_growth", title="Business Growth", payment_type="recurring", billing_cycle="monthly")


def _authorization(order_id: str = "order_000001", enable_auto_pay: bool = True) -> AuthorizationResult:
    return AuthorizationResult(
        key="rzp_test_key",
        amount=69900,
        currency="INR",
        name="Grow Bharat Vyapaar",
        description="Business Growth (includes setup fee)",
        notes={
            "isNonRefundable": "true",
            "refundStatus": "no_refund_allowed",
            "refundPolicy": "no_refunds",
            "transaction_id": "TXN_fixed",
        },
        is_one_time=not enable_auto_pay,
        is_subscription=enable_auto_pay,
        enable_auto_pay=enable_auto_pay,
        setup_fee=200,
        total_amount=6188,
        remaining_amount=5489,
        remaining_amount_paise=548900,
        recurring_amount=499,
        recurring_count=11,
        order=OrderInfo(id=order_id, amount=69900, currency="INR"),
        transaction_id="TXN_fixed",
    )


def test_options_echo_the_authorization():
    session = build_checkout_options(
        "user_1", PACKAGE, CustomerData(name="Asha", phone="98765"), _authorization(), get_settings()
    )
    options = session.options

    assert options["order_id"] == "order_000001"
    assert options["key"] == "rzp_test_key"
    assert options["description"] == "Payment for Business Growth"
    assert options["prefill"] == {"name": "Asha", "contact": "98765"}
    assert options["recurring_token"] == {"max_amount": 548900}
    assert options["notes"]["transaction_id"] == "TXN_fixed"
    assert options["notes"]["userId"] == "user_1"
    assert "transaction_id" not in options
    assert "image" not in options


def test_no_mandate_without_autopay():
    session = build_checkout_options("user_1", PACKAGE, None, _authorization(enable_auto_pay=False), get_settings())
    assert "recurring_token" not in session.options
    assert "prefill" not in session.options
    assert session.options["notes"]["enableAutoPay"] == "false"


def test_missing_order_is_refused():
    with pytest.raises(CheckoutConfigurationError):
        build_checkout_options("user_1", PACKAGE, None, _authorization(order_id=""), get_settings())


def test_callbacks_stay_out_of_options():
    received = []
    session = build_checkout_options(
        "user_1",
        PACKAGE,
        None,
        _authorization(),
        get_settings(),
        on_success=received.append,
        on_dismiss=lambda: received.append("dismissed"),
    )
    assert all(not callable(v) for v in session.options.values())

    session.success({"razorpay_payment_id": "pay_1"})
    session.dismiss()
    assert received[0]["orderId"] == "order_000001"
    assert received[0]["enableAutoPay"] is True
    assert received[1] == "dismissed"


def test_prefill_maps_phone_to_contact():
    assert build_prefill(CustomerData(email="a@b.c", phone="123")) == {"email": "a@b.c", "contact": "123"}
    assert build_prefill(None) == {}


@pytest.mark.parametrize(
    "payment_type,preferred,auto_pay,expected",
    [
        ("one-time", False, True, True),
        ("recurring", True, True, True),
        ("recurring", False, False, True),
        ("recurring", False, True, False),
    ],
)
def test_resolve_one_time(payment_type, preferred, auto_pay, expected):
    assert resolve_one_time(payment_type, preferred, auto_pay) is expected

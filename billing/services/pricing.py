"""Amount math for subscription packages.

Pure functions over a package's price fields. The authorization service is
the only caller that turns these into charges; everything else echoes what
it returned.
"""

import logging
import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN
from typing import Protocol

from billing.constants import CYCLE_MONTHLY, PAYMENT_ONE_TIME

logger = logging.getLogger(__name__)


class PricedPackage(Protocol):
    """Anything carrying package price fields (ORM row or PackageData)."""

    price: float
    monthly_price: float | None
    setup_fee: float
    duration_months: int
    billing_cycle: str | None
    payment_type: str
    advance_payment_months: int


@dataclass(frozen=True)
class PriceQuote:
    initial_amount: float
    total_amount: float
    remaining_amount: float
    recurring_amount: float
    recurring_count: int
    setup_fee: float
    is_one_time: bool


def _is_one_time(package: PricedPackage) -> bool:
    return package.payment_type == PAYMENT_ONE_TIME


def _is_monthly(package: PricedPackage) -> bool:
    return package.billing_cycle == CYCLE_MONTHLY


def _duration(package: PricedPackage) -> int:
    return package.duration_months or 12


def calculate_initial_payment(package: PricedPackage, enable_auto_pay: bool = True) -> float:
    """Amount due at checkout.

    One-time packages pay ``price + setup_fee``. Recurring packages pay the
    setup fee plus any advance: ``advance_months * monthly_price`` on monthly
    billing, otherwise one full ``price``. Autopay does not change what is due
    now; it only decides whether the remainder is collected by mandate later.
    """
    setup_fee = package.setup_fee or 0
    if _is_one_time(package):
        total = (package.price or 0) + setup_fee
        logger.debug(f"One-time payment: {package.price} + {setup_fee} (setup fee) = {total}")
        return total

    initial = setup_fee
    advance_months = package.advance_payment_months or 0
    if advance_months > 0:
        if _is_monthly(package) and package.monthly_price:
            initial += package.monthly_price * advance_months
        else:
            initial += package.price or 0

    logger.debug(
        f"Recurring initial payment: {setup_fee} (setup fee) + {initial - setup_fee} (advance) "
        f"= {initial} (autopay={enable_auto_pay})"
    )
    return initial


def calculate_recurring_payment_amount(package: PricedPackage) -> float:
    """Charge per billing cycle after the initial payment."""
    if _is_one_time(package):
        return 0
    if _is_monthly(package):
        return package.monthly_price or (package.price or 0) / 12
    return package.price or 0


def calculate_recurring_payment_count(package: PricedPackage) -> int:
    """Number of cycles still to be charged once the advance is paid."""
    if _is_one_time(package):
        return 0
    advance_months = package.advance_payment_months or 0
    if _is_monthly(package):
        count = _duration(package) - advance_months
    else:
        count = math.ceil(_duration(package) / 12) - (1 if advance_months > 0 else 0)
    return max(count, 0)


def calculate_total_package_price(package: PricedPackage) -> float:
    """Everything the subscriber pays over the full package duration."""
    setup_fee = package.setup_fee or 0
    if _is_one_time(package):
        return (package.price or 0) + setup_fee
    if _is_monthly(package):
        per_cycle = package.monthly_price or (package.price or 0) / 12
        return setup_fee + per_cycle * _duration(package)
    return setup_fee + (package.price or 0) * math.ceil(_duration(package) / 12)


def calculate_remaining_amount(package: PricedPackage) -> float:
    """What is left to collect after the initial payment."""
    remaining = calculate_total_package_price(package) - calculate_initial_payment(package)
    return max(remaining, 0)


def to_minor_units(amount: float) -> int:
    """Convert rupees to integer paise, truncating any fraction of a paisa."""
    value = Decimal(str(amount)) * 100
    return int(value.to_integral_value(rounding=ROUND_DOWN))


def from_minor_units(amount: int) -> float:
    """Convert integer paise back to rupees."""
    return float(Decimal(int(amount)) / 100)


def quote(package: PricedPackage, enable_auto_pay: bool = True) -> PriceQuote:
    return PriceQuote(
        initial_amount=calculate_initial_payment(package, enable_auto_pay),
        total_amount=calculate_total_package_price(package),
        remaining_amount=calculate_remaining_amount(package),
        recurring_amount=calculate_recurring_payment_amount(package),
        recurring_count=calculate_recurring_payment_count(package),
        setup_fee=package.setup_fee or 0,
        is_one_time=_is_one_time(package),
    )

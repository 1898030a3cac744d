"""Checkout notes policy.

Razorpay accepts at most 15 note entries per checkout. Notes are kept in a
fixed priority order and everything else is dropped past the limit.
"""

from collections.abc import Mapping
from typing import Any

from billing.constants import RAZORPAY_MAX_NOTES

# Anti-refund keys first: they must survive every truncation
PROTECTED_KEYS = ("isNonRefundable", "refundStatus", "refundPolicy", "transaction_id")

PRIORITY_KEYS = PROTECTED_KEYS + (
    "packageId",
    "userId",
    "enableAutoPay",
    "packageName",
    "paymentType",
)


def clean_notes(notes: Mapping[str, Any] | None) -> dict[str, str]:
    """Stringify values and drop ``None`` entries, preserving order."""
    if not notes:
        return {}
    return {str(key): _stringify(value) for key, value in notes.items() if value is not None}


def truncate_notes(notes: Mapping[str, Any] | None, limit: int = RAZORPAY_MAX_NOTES) -> dict[str, str]:
    """Return at most ``limit`` notes, priority keys first then insertion order."""
    cleaned = clean_notes(notes)
    if len(cleaned) <= limit:
        return cleaned

    kept: dict[str, str] = {}
    for key in PRIORITY_KEYS:
        if key in cleaned and len(kept) < limit:
            kept[key] = cleaned[key]
    for key, value in cleaned.items():
        if len(kept) >= limit:
            break
        kept.setdefault(key, value)
    return kept


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)

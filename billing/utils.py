"""Shared utility functions for the billing service."""

import logging
import secrets
import time
from datetime import datetime, UTC
from urllib.parse import urlparse

from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)


def now_utc() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round-trip)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def add_months(value: datetime, months: int) -> datetime:
    """Shift a datetime by calendar months; Jan 31 + 1 month is the last day of February."""
    return value + relativedelta(months=months)


def generate_id(prefix: str) -> str:
    """Generate a short unique identifier such as ``sub_3f9a1c0d2b7e4a15``."""
    return f"{prefix}_{secrets.token_hex(8)}"


def generate_transaction_id() -> str:
    """Generate a transaction id in the ``TXN_<base36 time><random>`` format."""
    stamp = _base36(int(time.time() * 1000))
    return f"TXN_{stamp}{secrets.token_hex(3)}"


def _base36(number: int) -> str:
    alphabet = "0123456789abcdefghijklmnopqrstuvwxyz"
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(alphabet[rem])
    return "".join(reversed(digits))


def setup_logging(verbose: bool = False) -> None:
    """
    Configure logging for the application.

    Args:
        verbose: If True, set DEBUG level; otherwise INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def validate_url(url: str) -> bool:
    """
    Validate that a URL is well-formed and uses http/https.

    Args:
        url: URL string to validate.

    Returns:
        True if valid, False otherwise.
    """
    try:
        result = urlparse(url)
        return all([result.scheme in ("http", "https"), result.netloc])
    except (TypeError, ValueError, AttributeError):
        return False

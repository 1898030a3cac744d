"""Subscription package schemas."""

import json
import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from billing.constants import DEFAULT_DURATION_MONTHS, PACKAGE_TYPES, PAYMENT_ONE_TIME, PAYMENT_RECURRING

_FEATURE_SPLIT_RE = re.compile(r"[\n,]")


class PackageData(BaseModel):
    """A catalog entry as exchanged with clients (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str | None = None
    title: str = ""
    type: str = "Business"
    price: float = 0
    monthly_price: float | None = None
    setup_fee: float = 0
    duration_months: int = DEFAULT_DURATION_MONTHS
    billing_cycle: Literal["monthly", "yearly"] | None = None
    payment_type: Literal["one-time", "recurring"] = PAYMENT_RECURRING
    advance_payment_months: int = Field(0, ge=0)
    features: list[str] = Field(default_factory=list)
    dashboard_sections: list[str] = Field(default_factory=list)
    short_description: str = ""
    full_description: str = ""
    terms_and_conditions: str = ""
    popular: bool = False
    is_active: bool = True

    @field_validator("price", "setup_fee", "advance_payment_months", mode="before")
    @classmethod
    def _none_to_zero(cls, v):
        return 0 if v is None else v

    @field_validator("duration_months", mode="before")
    @classmethod
    def _default_duration(cls, v):
        return v or DEFAULT_DURATION_MONTHS

    @field_validator("type", mode="before")
    @classmethod
    def _known_type(cls, v):
        if v is None or v == "":
            return PACKAGE_TYPES[0]
        for known in PACKAGE_TYPES:
            if str(v).lower() == known.lower():
                return known
        raise ValueError(f"type must be one of {', '.join(PACKAGE_TYPES)}")

    @field_validator("payment_type", mode="before")
    @classmethod
    def _coerce_payment_type(cls, v):
        return PAYMENT_ONE_TIME if str(v or "").lower() == PAYMENT_ONE_TIME else PAYMENT_RECURRING

    @field_validator("billing_cycle", mode="before")
    @classmethod
    def _coerce_billing_cycle(cls, v):
        cycle = str(v or "").lower()
        return cycle if cycle in ("monthly", "yearly") else None

    @field_validator("features", "dashboard_sections", mode="before")
    @classmethod
    def _parse_string_list(cls, v):
        """Accept a list, a JSON list string, or a newline/comma separated string."""
        if v is None:
            return []
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
            except ValueError:
                parsed = _FEATURE_SPLIT_RE.split(v)
            if not isinstance(parsed, list):
                parsed = [v]
            v = parsed
        return [str(item).strip() for item in v if item is not None and str(item).strip()]

    @property
    def is_one_time(self) -> bool:
        return self.payment_type == PAYMENT_ONE_TIME

    def normalized(self) -> "PackageData":
        """Return a copy with payment-type dependent fields made consistent.

        One-time packages carry no monthly price, setup fee, billing cycle or
        advance months; recurring packages default to yearly billing.
        """
        if self.is_one_time:
            return self.model_copy(
                update={
                    "monthly_price": None,
                    "setup_fee": 0,
                    "billing_cycle": None,
                    "advance_payment_months": 0,
                }
            )
        if self.billing_cycle is None:
            return self.model_copy(update={"billing_cycle": "yearly"})
        return self

"""Canonical user profile and the adapters for both backend field shapes.

The document store keeps camelCase fields (``instagramHandle``,
``photoURL``, ``subscriptionStatus``); the relational store keeps
snake_case columns. Both parse into ``UserProfile`` here and nowhere else.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator

Role = Literal["User", "Business", "Influencer", "Admin", "staff"]

_ROLE_ALIASES = {
    "user": "User",
    "business": "Business",
    "influencer": "Influencer",
    "admin": "Admin",
    "staff": "staff",
}

# canonical field -> document-store field
_DOCUMENT_FIELDS = {
    "id": "id",
    "email": "email",
    "name": "name",
    "role": "role",
    "is_admin": "isAdmin",
    "phone": "phone",
    "city": "city",
    "business_name": "businessName",
    "instagram_handle": "instagramHandle",
    "photo_url": "photoURL",
    "subscription_id": "subscriptionId",
    "subscription_status": "subscriptionStatus",
    "subscription_package": "subscriptionPackage",
}


class UserProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str | None = None
    name: str | None = None
    role: Role = "User"
    is_admin: bool = False
    phone: str | None = None
    city: str | None = None
    business_name: str | None = None
    instagram_handle: str | None = None
    photo_url: str | None = None
    subscription_id: str | None = None
    subscription_status: str | None = None
    subscription_package: str | None = None

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, v):
        if v is None:
            return "User"
        return _ROLE_ALIASES.get(str(v).lower(), v)

    @property
    def is_admin_user(self) -> bool:
        return self.is_admin or self.role == "Admin"

    # --- Adapters ---

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "UserProfile":
        """Parse a document-store (camelCase) user."""
        values = {field: data[doc_key] for field, doc_key in _DOCUMENT_FIELDS.items() if doc_key in data}
        # Older documents embed the whole subscription object
        embedded = data.get("subscription")
        if isinstance(embedded, dict):
            values.setdefault("subscription_id", embedded.get("id"))
            values.setdefault("subscription_status", embedded.get("status"))
            values.setdefault("subscription_package", embedded.get("packageId"))
        elif isinstance(embedded, str):
            values.setdefault("subscription_id", embedded)
        return cls.model_validate(values)

    @classmethod
    def from_row(cls, data: dict[str, Any]) -> "UserProfile":
        """Parse a relational (snake_case) user row."""
        values = {field: data[field] for field in _DOCUMENT_FIELDS if field in data}
        return cls.model_validate(values)

    def to_document(self) -> dict[str, Any]:
        dumped = self.model_dump()
        return {doc_key: dumped[field] for field, doc_key in _DOCUMENT_FIELDS.items()}

    def to_row(self) -> dict[str, Any]:
        return self.model_dump()

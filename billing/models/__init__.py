"""SQLAlchemy models for the billing service."""

from .base import Base
from .user import User
from .subscription_package import SubscriptionPackage
from .subscription import Subscription

__all__ = [
    "Base",
    "User",
    "SubscriptionPackage",
    "Subscription",
]

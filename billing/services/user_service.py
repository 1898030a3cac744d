"""User CRUD operations and the denormalized subscription pointer."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from billing.models.user import User
from billing.schemas.user import UserProfile

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: str) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def upsert_user(db: AsyncSession, profile: UserProfile) -> User:
    """Create or update a user from a canonical profile."""
    user = await get_user(db, profile.id)
    values = profile.to_row()
    if user is None:
        user = User(**values)
        db.add(user)
    else:
        for key, value in values.items():
            setattr(user, key, value)
    await db.commit()
    await db.refresh(user)
    return user


async def set_subscription_pointer(
    db: AsyncSession,
    user_id: str,
    subscription_id: str | None,
    status: str | None,
    package_id: str | None,
) -> bool:
    """Mirror the current subscription onto the user row. Returns False if no such user."""
    user = await get_user(db, user_id)
    if not user:
        logger.warning(f"Cannot update subscription pointer: user {user_id} not found")
        return False

    user.subscription_id = subscription_id
    user.subscription_status = status
    user.subscription_package = package_id
    await db.commit()
    return True

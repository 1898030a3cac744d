"""Subscriber-facing subscription routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from billing.db.session import get_db
from billing.errors import SubscriptionNotFoundError
from billing.models.subscription import Subscription
from billing.models.user import User
from billing.schemas.subscription import CancelRequest, SubscriptionOut
from billing.services import subscription_service
from billing.services.auth_service import get_current_user

router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


async def _owned_subscription(db: AsyncSession, subscription_id: str, user: User) -> Subscription:
    sub = await subscription_service.get_subscription(db, subscription_id)
    if sub.user_id != user.id and not user.is_admin_user:
        # Foreign ids answer 404
        raise SubscriptionNotFoundError(f"Subscription with ID {subscription_id} not found")
    return sub


@router.get("", response_model=list[SubscriptionOut])
async def list_my_subscriptions(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await subscription_service.get_user_subscriptions(db, user.id)


@router.get("/active", response_model=SubscriptionOut | None)
async def my_active_subscription(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await subscription_service.get_active_user_subscription(db, user.id)


@router.get("/status")
async def my_subscription_status(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return {"active": await subscription_service.is_subscription_active(db, user.id)}


@router.get("/{subscription_id}", response_model=SubscriptionOut)
async def get_subscription(
    subscription_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _owned_subscription(db, subscription_id, user)


@router.post("/{subscription_id}/cancel", response_model=SubscriptionOut)
async def cancel_subscription(
    subscription_id: str,
    body: CancelRequest | None = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _owned_subscription(db, subscription_id, user)
    reason = body.reason if body else "user_requested"
    return await subscription_service.cancel_subscription(db, subscription_id, reason)


@router.post("/{subscription_id}/pause", response_model=SubscriptionOut)
async def pause_subscription(
    subscription_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _owned_subscription(db, subscription_id, user)
    return await subscription_service.pause_subscription(db, subscription_id, paused_by=user.id)


@router.post("/{subscription_id}/resume", response_model=SubscriptionOut)
async def resume_subscription(
    subscription_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _owned_subscription(db, subscription_id, user)
    return await subscription_service.resume_subscription(db, subscription_id, resumed_by=user.id)

"""Admin routes: subscription assignment, package management, autopay control."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from billing.db.session import async_session_factory, get_db
from billing.errors import InvalidSubscriptionError
from billing.models.user import User
from billing.schemas.package import PackageData
from billing.schemas.subscription import AdminAssignRequest, SubscriptionOut
from billing.services import package_service, subscription_service
from billing.services.auth_service import require_admin
from billing.services.autopay_service import AutopayService
from billing.services.gateway import get_gateway
from billing.services.user_service import get_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin", tags=["admin"])


def get_autopay_service(request: Request) -> AutopayService:
    """The process-wide poller stored on app state, created on first use."""
    service = getattr(request.app.state, "autopay", None)
    if service is None:
        service = AutopayService(async_session_factory, get_gateway())
        request.app.state.autopay = service
    return service


# --- Subscriptions ---


@router.post("/subscriptions/assign", response_model=SubscriptionOut)
async def assign_subscription(
    body: AdminAssignRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    if not await get_user(db, body.user_id):
        raise InvalidSubscriptionError(f"User {body.user_id} does not exist")
    package = await package_service.get_package(db, body.package_id)
    sub = await subscription_service.admin_assign_subscription(
        db,
        body.user_id,
        package,
        payment_id=body.payment_id,
        razorpay_subscription_id=body.razorpay_subscription_id,
        assigned_by=admin.id,
    )
    logger.info(f"Admin {admin.id} assigned package {package.id} to user {body.user_id}")
    return sub


@router.post("/subscriptions/{subscription_id}/cancel", response_model=SubscriptionOut)
async def cancel_subscription(
    subscription_id: str,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    logger.info(f"Admin {admin.id} cancelling subscription {subscription_id}")
    return await subscription_service.admin_cancel_subscription(db, subscription_id)


@router.get("/users/{user_id}/subscriptions", response_model=list[SubscriptionOut])
async def user_subscriptions(
    user_id: str,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await subscription_service.get_user_subscriptions(db, user_id)


# --- Packages ---


@router.get("/packages", response_model=list[PackageData])
async def all_packages(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await package_service.list_packages(db, include_inactive=True)


@router.post("/packages", response_model=PackageData)
async def save_package(
    body: PackageData,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await package_service.save_package(db, body)


@router.delete("/packages/{package_id}", response_model=PackageData)
async def deactivate_package(
    package_id: str,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await package_service.deactivate_package(db, package_id)


# --- Autopay ---


@router.get("/autopay")
async def autopay_status(
    admin: User = Depends(require_admin),
    autopay: AutopayService = Depends(get_autopay_service),
):
    return autopay.get_status()


@router.post("/autopay/run")
async def autopay_run(
    admin: User = Depends(require_admin),
    autopay: AutopayService = Depends(get_autopay_service),
):
    report = await autopay.check_immediately()
    return {"charged": report.charged, "skipped": report.skipped, "failed": report.failed}

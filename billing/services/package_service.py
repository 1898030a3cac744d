"""Subscription package catalog: read by every flow, written by admins."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from billing.errors import PackageNotFoundError
from billing.models.subscription_package import SubscriptionPackage
from billing.schemas.package import PackageData
from billing.utils import generate_id

logger = logging.getLogger(__name__)


async def list_packages(
    db: AsyncSession,
    package_type: str | None = None,
    include_inactive: bool = False,
) -> list[SubscriptionPackage]:
    query = select(SubscriptionPackage).order_by(SubscriptionPackage.price.asc())
    if package_type:
        query = query.where(SubscriptionPackage.type == package_type)
    if not include_inactive:
        query = query.where(SubscriptionPackage.is_active == True)
    result = await db.execute(query)
    packages = list(result.scalars().all())
    if not packages:
        logger.warning(f"No subscription packages found (type={package_type})")
    return packages


async def get_package(db: AsyncSession, package_id: str) -> SubscriptionPackage:
    result = await db.execute(
        select(SubscriptionPackage).where(SubscriptionPackage.id == package_id)
    )
    package = result.scalar_one_or_none()
    if not package:
        raise PackageNotFoundError(f"Subscription package {package_id} not found")
    return package


async def save_package(db: AsyncSession, data: PackageData) -> SubscriptionPackage:
    """Create or update a package after payment-type normalization."""
    data = data.normalized()
    values = data.model_dump(exclude={"id"})

    package = None
    if data.id:
        result = await db.execute(
            select(SubscriptionPackage).where(SubscriptionPackage.id == data.id)
        )
        package = result.scalar_one_or_none()

    if package is None:
        package = SubscriptionPackage(id=data.id or generate_id("pkg"), **values)
        db.add(package)
        logger.info(f"Created subscription package {package.id} ({package.title})")
    else:
        for key, value in values.items():
            setattr(package, key, value)
        logger.info(f"Updated subscription package {package.id}")

    await db.commit()
    await db.refresh(package)
    return package


async def deactivate_package(db: AsyncSession, package_id: str) -> SubscriptionPackage:
    """Hide a package from the catalog; existing subscriptions keep their reference."""
    package = await get_package(db, package_id)
    package.is_active = False
    await db.commit()
    return package

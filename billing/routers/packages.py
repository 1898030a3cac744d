"""Public package catalog routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from billing.db.session import get_db
from billing.schemas.package import PackageData
from billing.services import package_service

router = APIRouter(prefix="/api/packages", tags=["packages"])


@router.get("", response_model=list[PackageData])
async def list_packages(
    package_type: str | None = Query(None, alias="type"),
    db: AsyncSession = Depends(get_db),
):
    return await package_service.list_packages(db, package_type)


@router.get("/{package_id}", response_model=PackageData)
async def get_package(package_id: str, db: AsyncSession = Depends(get_db)):
    return await package_service.get_package(db, package_id)

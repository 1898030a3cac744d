"""Payment routes: authorization function, checkout, verification."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from billing.config import get_settings
from billing.db.session import get_db
from billing.models.user import User
from billing.schemas.package import PackageData
from billing.schemas.payments import (
    AuthorizationRequest,
    CheckoutRequest,
    CustomerData,
    DismissNotice,
    PaymentVerification,
)
from billing.schemas.subscription import SubscriptionOut
from billing.services import authorization_service, package_service
from billing.services.auth_service import get_current_user
from billing.services.checkout_service import build_checkout_options
from billing.services.gateway import RazorpayGateway, get_gateway

logger = logging.getLogger(__name__)

functions_router = APIRouter(prefix="/functions", tags=["functions"])
router = APIRouter(prefix="/api/payments", tags=["payments"])


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@functions_router.post("/razorpay-integration")
async def razorpay_integration(
    request: Request,
    gateway: RazorpayGateway = Depends(get_gateway),
):
    """Authorize a payment: compute the amount and open a gateway order."""
    try:
        body = await request.json()
    except ValueError:
        return _error("Invalid request body", 400)

    try:
        auth_request = AuthorizationRequest.model_validate(body)
    except ValidationError as e:
        logger.warning(f"Rejected authorization request: {e.error_count()} validation error(s)")
        return _error("Invalid request body", 400)

    if auth_request.package_data is None or not auth_request.user_id:
        return _error("Missing required fields: packageData and userId", 400)

    try:
        result = await authorization_service.authorize(auth_request, gateway, get_settings())
    except Exception as e:
        logger.exception(f"Authorization failed for user {auth_request.user_id}")
        return _error(str(e) or "Internal server error", 500)

    return result.model_dump(by_alias=True)


@router.post("/checkout")
async def checkout(
    body: CheckoutRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_gateway),
):
    """Authorize and return widget-ready checkout options for the current user."""
    settings = get_settings()
    package = PackageData.model_validate(await package_service.get_package(db, body.package_id))
    customer = body.customer or CustomerData(name=user.name, email=user.email, phone=user.phone)

    authorization = await authorization_service.authorize(
        AuthorizationRequest(
            package_data=package,
            customer_data=customer,
            user_id=user.id,
            use_one_time_preferred=body.use_one_time_preferred,
            enable_auto_pay=body.enable_auto_pay,
        ),
        gateway,
        settings,
    )
    session = build_checkout_options(
        user.id,
        package,
        customer,
        authorization,
        settings,
        callback_url=body.callback_url,
    )
    return {
        "options": session.options,
        "authorization": authorization.model_dump(by_alias=True),
    }


@router.post("/verify", response_model=SubscriptionOut)
async def verify_payment(
    body: PaymentVerification,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_gateway),
):
    """Check the widget's signature and the paid order, then record the subscription."""
    sub = await authorization_service.confirm_payment(db, user.id, body, gateway)
    logger.info(f"Payment {body.razorpay_payment_id} verified for user {user.id}, subscription {sub.id}")
    return sub


@router.post("/dismiss")
async def dismiss_checkout(body: DismissNotice):
    logger.info(f"Checkout dismissed (order={body.order_id}, package={body.package_id}, reason={body.reason})")
    return {"status": "dismissed"}

"""Liveness and gateway reachability checks."""

from fastapi import APIRouter, Depends

from billing.services.gateway import RazorpayGateway, get_gateway

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/health/gateway")
async def gateway_health(gateway: RazorpayGateway = Depends(get_gateway)):
    reachable = await gateway.is_reachable()
    return {"status": "ok" if reachable else "unreachable", "gateway": "razorpay"}

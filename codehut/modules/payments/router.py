from typing import Any, Optional
from fastapi import APIRouter, Depends, Header, Request

from codehut.core import deps
from codehut.core.config import Settings
from codehut.modules.auth.models import User
from codehut.modules.payments import schemas, service, webhooks
from codehut.modules.payments.gateway import RazorpayGateway
from codehut.store.base import MarketplaceStore

router = APIRouter()

@router.post("/create-order")
async def create_order(
    payload: schemas.CreateOrderRequest,
    buyer_id: str = Depends(deps.get_payment_buyer),
    store: MarketplaceStore = Depends(deps.get_store),
    gateway: RazorpayGateway = Depends(deps.get_gateway),
    settings: Settings = Depends(deps.get_settings),
) -> Any:
    return await service.create_order(store, gateway, settings, buyer_id, payload.snippetId)

# Older clients still post here
router.add_api_route("/purchase", create_order, methods=["POST"], include_in_schema=False)

@router.post("/verify-payment")
async def verify_payment(
    payload: schemas.VerifyPaymentRequest,
    buyer_id: str = Depends(deps.get_payment_buyer),
    store: MarketplaceStore = Depends(deps.get_store),
    gateway: RazorpayGateway = Depends(deps.get_gateway),
) -> Any:
    return await service.verify_payment(
        store, gateway, buyer_id,
        payload.razorpay_order_id, payload.razorpay_payment_id, payload.razorpay_signature,
    )

@router.post("/cancel")
async def cancel_order(
    payload: schemas.CancelOrderRequest,
    current_user: User = Depends(deps.get_current_user),
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    """Client-reported checkout failure or dismissal."""
    return await service.cancel_order(store, current_user.id, payload.razorpay_order_id)

@router.post("/webhook")
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: Optional[str] = Header(None),
    store: MarketplaceStore = Depends(deps.get_store),
    gateway: RazorpayGateway = Depends(deps.get_gateway),
) -> Any:
    # Signature covers the exact bytes Razorpay sent
    body = await request.body()
    return await webhooks.handle_webhook(store, gateway, body, x_razorpay_signature)

@router.get("/download/{snippet_id}")
async def download_snippet(
    snippet_id: str,
    current_user: User = Depends(deps.get_current_user),
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.download_snippet(store, current_user, snippet_id)

@router.get("/orders")
async def list_orders(
    current_user: User = Depends(deps.get_current_user),
    store: MarketplaceStore = Depends(deps.get_store),
) -> Any:
    return await service.list_orders(store, current_user.id)

import logging
import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple

from fastapi import HTTPException

from codehut.core.config import Settings
from codehut.core.db import as_utc, new_id, utcnow
from codehut.core.errors import PaymentGatewayError
from codehut.modules.auth.models import User
from codehut.modules.payments.gateway import RazorpayGateway
from codehut.modules.payments.models import Order, OrderStatus, PaymentTransaction, TransactionStatus
from codehut.modules.purchases.access import is_free
from codehut.modules.snippets.models import Snippet
from codehut.store.base import MarketplaceStore

logger = logging.getLogger(__name__)

DEMO_KEY_ID = "rzp_test_DEMO"
_MINOR = Decimal(100)


def to_minor_units(amount) -> int:
    return int((Decimal(amount) * _MINOR).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    return (Decimal(amount) / _MINOR).quantize(Decimal("0.01"))


def split_amount(amount: int, rate) -> Tuple[int, int]:
    """Platform commission and seller earning, in minor units. Always sums to ``amount``."""
    commission = int((Decimal(amount) * Decimal(str(rate))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return commission, amount - commission


def _checkout_summary(order_id: str, amount: int, commission: int, earning: int, settings: Settings,
                      snippet: Optional[Snippet], seller: Optional[User], db_order_id: Optional[str]) -> dict:
    return {
        "orderId": order_id,
        "amount": amount,
        "currency": settings.PAYMENT_CURRENCY,
        "key": settings.RAZORPAY_KEY_ID or DEMO_KEY_ID,
        "snippet": {
            "id": snippet.id if snippet else None,
            "title": snippet.title if snippet else None,
            "price": float(snippet.price) if snippet else None,
            "author": snippet.author_username if snippet else None,
        },
        "seller": {
            "id": seller.id if seller else (snippet.author_id if snippet else None),
            "username": seller.username if seller else (snippet.author_username if snippet else None),
            "earning": earning,
        },
        "platform": {"commission": commission},
        "dbOrderId": db_order_id,
    }


async def create_order(store: MarketplaceStore, gateway: RazorpayGateway, settings: Settings,
                       buyer_id: str, snippet_id: Optional[str]) -> dict:
    if not snippet_id:
        raise HTTPException(status_code=400, detail="Snippet ID is required")

    snippet = await store.get_snippet(snippet_id)
    if snippet is not None and snippet.author_id == buyer_id:
        raise HTTPException(status_code=400, detail="You cannot purchase your own snippet")

    if gateway.is_demo:
        # Nothing leaves the process and nothing is stored
        price = Decimal(snippet.price) if snippet is not None and not is_free(snippet) else Decimal(1)
        amount = to_minor_units(price)
        commission, earning = split_amount(amount, settings.PLATFORM_COMMISSION_RATE)
        seller = await store.get_user(snippet.author_id) if snippet is not None else None
        order_id = f"order_demo_{int(time.time() * 1000)}"
        logger.info(f"[Payments] Demo order {order_id} for {snippet_id} by {buyer_id}")
        summary = _checkout_summary(order_id, amount, commission, earning, settings, snippet, seller, None)
        summary["demo"] = True
        return summary

    if snippet is None:
        raise HTTPException(status_code=404, detail="Snippet not found")
    seller = await store.get_user(snippet.author_id)
    if seller is None:
        raise HTTPException(status_code=404, detail="Seller not found")
    if is_free(snippet):
        raise HTTPException(status_code=400, detail="Snippet is free, no purchase needed")
    if await store.get_purchase(buyer_id, snippet.id):
        raise HTTPException(status_code=409, detail="You have already purchased this snippet")

    amount = to_minor_units(snippet.price)
    commission, earning = split_amount(amount, settings.PLATFORM_COMMISSION_RATE)
    notes = {
        "buyer_id": buyer_id,
        "seller_id": seller.id,
        "snippet_id": snippet.id,
        "snippet_title": snippet.title[:100],
        "platform_commission": str(commission),
        "seller_earning": str(earning),
    }
    transfers = None
    if seller.razorpay_account_id:
        # Razorpay Route pays the seller share straight to their linked account
        transfers = [{
            "account": seller.razorpay_account_id,
            "amount": earning,
            "currency": settings.PAYMENT_CURRENCY,
            "notes": {"snippet_id": snippet.id, "seller_id": seller.id},
            "on_hold": 0,
        }]

    try:
        remote = await gateway.create_order(
            amount=amount,
            currency=settings.PAYMENT_CURRENCY,
            receipt=f"receipt_{int(time.time() * 1000)}",
            notes=notes,
            transfers=transfers,
        )
    except PaymentGatewayError as e:
        raise HTTPException(status_code=502, detail=f"Payment provider error: {e}")

    now = utcnow()
    order = Order(
        id=new_id("order"),
        buyer_id=buyer_id,
        seller_id=seller.id,
        snippet_id=snippet.id,
        amount=from_minor_units(amount),
        commission=from_minor_units(commission),
        seller_earning=from_minor_units(earning),
        currency=settings.PAYMENT_CURRENCY,
        status=OrderStatus.CREATED,
        razorpay_order_id=remote["id"],
        razorpay_payment_id=None,
        created_at=now,
        updated_at=now,
    )
    transaction = PaymentTransaction(
        id=new_id("txn"),
        order_id=order.id,
        user_id=buyer_id,
        razorpay_payment_id=None,
        razorpay_signature=None,
        status=TransactionStatus.PENDING,
        created_at=now,
        updated_at=now,
    )
    await store.add_order(order, transaction)
    logger.info(
        f"[Payments] Order {order.razorpay_order_id} created: {snippet.id} for {buyer_id}, "
        f"amount={amount} commission={commission} earning={earning}"
    )
    return _checkout_summary(remote["id"], amount, commission, earning, settings, snippet, seller, order.id)


async def verify_payment(store: MarketplaceStore, gateway: RazorpayGateway, buyer_id: str,
                         order_id: Optional[str], payment_id: Optional[str], signature: Optional[str]) -> dict:
    if not order_id or not payment_id or not signature:
        raise HTTPException(status_code=400, detail="Missing payment verification fields")

    if gateway.is_demo:
        logger.warning(f"[Payments] Demo mode, accepting payment {payment_id} for {order_id} unchecked")
        return {
            "success": True,
            "status": "success",
            "message": "Payment verified (demo mode)",
            "orderId": order_id,
            "paymentId": payment_id,
            "payment": {"id": payment_id, "order_id": order_id, "status": "captured", "buyer_id": buyer_id},
        }

    if not gateway.verify_payment_signature(order_id, payment_id, signature):
        logger.warning(f"[Payments] Signature mismatch for order {order_id}")
        raise HTTPException(status_code=400, detail="Invalid payment signature")

    order = await store.get_order(order_id, buyer_id=buyer_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")

    purchase = await store.complete_order(order.id, payment_id, signature, utcnow())
    logger.info(f"[Payments] Order {order_id} paid by {buyer_id}, purchase {purchase.id}")
    return {
        "success": True,
        "message": "Payment verified successfully",
        "purchase_id": purchase.id,
        "order_id": order.razorpay_order_id,
    }


async def cancel_order(store: MarketplaceStore, buyer_id: str, order_id: Optional[str]) -> dict:
    if not order_id:
        raise HTTPException(status_code=400, detail="Order ID is required")
    order = await store.get_order(order_id, buyer_id=buyer_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    if order.status == OrderStatus.PAID:
        raise HTTPException(status_code=409, detail="Order is already paid")

    await store.set_order_status(order_id, OrderStatus.FAILED)
    logger.info(f"[Payments] Order {order_id} cancelled by {buyer_id}")
    return {"success": True, "orderId": order_id, "status": OrderStatus.FAILED.value}


async def download_snippet(store: MarketplaceStore, user: User, snippet_id: str) -> dict:
    snippet = await store.get_snippet(snippet_id)
    if snippet is None:
        raise HTTPException(status_code=404, detail="Snippet not found")

    if not is_free(snippet) and snippet.author_id != user.id:
        purchase = await store.get_purchase(user.id, snippet.id)
        if purchase is None:
            raise HTTPException(status_code=403, detail="Purchase required to download this snippet")
        if purchase.order_id:
            order = await store.get_order_by_id(purchase.order_id)
            if order is None or order.status != OrderStatus.PAID:
                raise HTTPException(status_code=403, detail="Payment not completed for this snippet")

    return {
        "id": snippet.id,
        "title": snippet.title,
        "description": snippet.description,
        "code": snippet.code,
        "language": snippet.language,
        "framework": snippet.framework,
        "author": snippet.author_username,
        "downloadedAt": utcnow().isoformat(),
    }


async def list_orders(store: MarketplaceStore, buyer_id: str) -> dict:
    rows = []
    for order in await store.orders_for_buyer(buyer_id):
        snippet = await store.get_snippet(order.snippet_id)
        rows.append({
            "id": order.id,
            "orderId": order.razorpay_order_id,
            "paymentId": order.razorpay_payment_id,
            "amount": float(order.amount),
            "commission": float(order.commission),
            "sellerEarning": float(order.seller_earning),
            "currency": order.currency,
            "status": order.status.value,
            "createdAt": as_utc(order.created_at).isoformat() if order.created_at else None,
            "snippet": {
                "id": order.snippet_id,
                "title": snippet.title if snippet else None,
                "author": snippet.author_username if snippet else None,
            },
        })
    return {"orders": rows, "total": len(rows)}

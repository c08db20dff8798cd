"""Razorpay webhook dispatch.

Deliveries are not deduplicated. Every handler assigns state rather than
incrementing it, so a replayed event lands on the same result.
"""
import json
import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException

from codehut.core.db import utcnow
from codehut.modules.payments.gateway import RazorpayGateway
from codehut.modules.payments.models import OrderStatus
from codehut.store.base import MarketplaceStore

logger = logging.getLogger(__name__)


def _entity(payload: Dict[str, Any], name: str) -> Dict[str, Any]:
    return ((payload.get(name) or {}).get("entity")) or {}


async def _mark_paid(store: MarketplaceStore, razorpay_order_id: Optional[str], payment_id: Optional[str]) -> None:
    order = await store.get_order(razorpay_order_id) if razorpay_order_id else None
    if order is None:
        logger.warning(f"[Webhook] No local order for {razorpay_order_id}")
        return
    purchase = await store.complete_order(order.id, payment_id or order.razorpay_payment_id, None, utcnow())
    logger.info(f"[Webhook] Order {razorpay_order_id} paid, purchase {purchase.id}")


async def on_payment_captured(store: MarketplaceStore, payload: Dict[str, Any]) -> None:
    payment = _entity(payload, "payment")
    await _mark_paid(store, payment.get("order_id"), payment.get("id"))


async def on_order_paid(store: MarketplaceStore, payload: Dict[str, Any]) -> None:
    order = _entity(payload, "order")
    payment = _entity(payload, "payment")
    await _mark_paid(store, order.get("id") or payment.get("order_id"), payment.get("id"))


async def on_payment_failed(store: MarketplaceStore, payload: Dict[str, Any]) -> None:
    payment = _entity(payload, "payment")
    razorpay_order_id = payment.get("order_id")
    order = await store.set_order_status(razorpay_order_id, OrderStatus.FAILED, payment.get("id")) if razorpay_order_id else None
    if order is None:
        logger.warning(f"[Webhook] No local order for failed payment {payment.get('id')}")
        return
    logger.info(f"[Webhook] Payment {payment.get('id')} failed ({payment.get('error_description')}), order now {order.status.value}")


async def on_transfer_processed(store: MarketplaceStore, payload: Dict[str, Any]) -> None:
    transfer = _entity(payload, "transfer")
    logger.info(f"[Webhook] Transfer {transfer.get('id')} of {transfer.get('amount')} to {transfer.get('recipient')} processed")


async def on_transfer_failed(store: MarketplaceStore, payload: Dict[str, Any]) -> None:
    transfer = _entity(payload, "transfer")
    logger.error(f"[Webhook] Transfer {transfer.get('id')} to {transfer.get('recipient')} failed")


HANDLERS = {
    "payment.captured": on_payment_captured,
    "payment.failed": on_payment_failed,
    "order.paid": on_order_paid,
    "transfer.processed": on_transfer_processed,
    "transfer.failed": on_transfer_failed,
}


async def handle_webhook(store: MarketplaceStore, gateway: RazorpayGateway, body: bytes,
                         signature: Optional[str]) -> dict:
    if not signature:
        raise HTTPException(status_code=400, detail="Missing webhook signature")
    if not gateway.webhook_secret:
        logger.error("[Webhook] RAZORPAY_WEBHOOK_SECRET is not configured, rejecting delivery")
        raise HTTPException(status_code=400, detail="Webhook secret not configured")
    if not gateway.verify_webhook_signature(body, signature):
        logger.warning("[Webhook] Signature mismatch, delivery rejected")
        raise HTTPException(status_code=400, detail="Invalid webhook signature")

    try:
        event = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid webhook payload")
    if not isinstance(event, dict):
        raise HTTPException(status_code=400, detail="Invalid webhook payload")

    name = event.get("event")
    handler = HANDLERS.get(name)
    if handler is None:
        logger.info(f"[Webhook] Ignoring unhandled event {name}")
    else:
        logger.info(f"[Webhook] Received {name}")
        await handler(store, event.get("payload") or {})
    return {"status": "ok"}

import asyncio
import logging
from typing import Any, Dict, List, Optional

import razorpay
from razorpay.errors import SignatureVerificationError

from codehut.core.config import Settings
from codehut.core.errors import PaymentGatewayError

logger = logging.getLogger(__name__)


class RazorpayGateway:
    """Thin wrapper over the Razorpay SDK.

    Without a key pair the gateway runs in demo mode: no client is built and
    callers are expected to short-circuit before reaching the provider.
    """

    def __init__(self, key_id: Optional[str], key_secret: Optional[str], webhook_secret: Optional[str] = None):
        self.key_id = key_id
        self.key_secret = key_secret
        self.webhook_secret = webhook_secret
        self.client = None
        self.is_demo = not (key_id and key_secret)

        if self.is_demo:
            logger.warning("[Payments] Razorpay credentials missing, payments run in demo mode.")
        else:
            self.client = razorpay.Client(auth=(key_id, key_secret))

    @classmethod
    def from_settings(cls, settings: Settings) -> "RazorpayGateway":
        return cls(settings.RAZORPAY_KEY_ID, settings.razorpay_secret, settings.RAZORPAY_WEBHOOK_SECRET)

    def _create_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.order.create(data=payload)

    async def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: Dict[str, str],
        transfers: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """Creates a remote order. ``amount`` is in minor units (paise)."""
        if self.is_demo:
            raise PaymentGatewayError("Payment gateway is not configured")

        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
        }
        if transfers:
            payload["transfers"] = transfers

        # The SDK is blocking (requests)
        loop = asyncio.get_running_loop()
        try:
            order = await loop.run_in_executor(None, lambda: self._create_order(payload))
        except Exception as e:
            logger.error(f"[Payments] Razorpay order creation failed: {e}")
            raise PaymentGatewayError(str(e)) from e
        logger.info(f"[Payments] Razorpay order {order.get('id')} created for {amount} {currency}")
        return order

    def verify_payment_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """HMAC-SHA256 of ``order_id|payment_id`` keyed with the key secret."""
        if not self.key_secret or not signature or not signature.isascii():
            return False
        client = self.client or razorpay.Client(auth=(self.key_id or "", self.key_secret))
        try:
            client.utility.verify_payment_signature({
                "razorpay_order_id": order_id,
                "razorpay_payment_id": payment_id,
                "razorpay_signature": signature,
            })
        except SignatureVerificationError:
            return False
        return True

    def verify_webhook_signature(self, body: bytes, signature: Optional[str]) -> bool:
        """HMAC-SHA256 of the raw request body keyed with the webhook secret."""
        if not self.webhook_secret or not signature or not signature.isascii():
            return False
        client = self.client or razorpay.Client(auth=(self.key_id or "", self.key_secret or ""))
        try:
            payload = body.decode("utf-8")
        except UnicodeDecodeError:
            return False
        try:
            client.utility.verify_webhook_signature(payload, signature, self.webhook_secret)
        except SignatureVerificationError:
            return False
        return True

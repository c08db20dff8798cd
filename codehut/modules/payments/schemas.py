from typing import Optional
from pydantic import BaseModel

class CreateOrderRequest(BaseModel):
    snippetId: Optional[str] = None

class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None

class CancelOrderRequest(BaseModel):
    razorpay_order_id: Optional[str] = None

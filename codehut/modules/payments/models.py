import enum
from sqlalchemy import Column, String, DateTime, Numeric, Enum, ForeignKey
from codehut.core.db import Base, utcnow

class OrderStatus(str, enum.Enum):
    CREATED = "created"
    PAID = "paid"
    FAILED = "failed"

class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"

class Order(Base):
    __tablename__ = "orders"

    id = Column(String(64), primary_key=True)
    # No FK: anonymous checkouts are recorded against synthetic buyer ids
    buyer_id = Column(String(64), index=True, nullable=True)
    seller_id = Column(String(64), nullable=False)
    snippet_id = Column(String(64), ForeignKey("snippets.id"), nullable=False)

    # Decimal currency units; minor units only exist at the gateway boundary
    amount = Column(Numeric(10, 2), nullable=False)
    commission = Column(Numeric(10, 2), nullable=False)
    seller_earning = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), default="INR", nullable=False)

    status = Column(Enum(OrderStatus), default=OrderStatus.CREATED, nullable=False)
    razorpay_order_id = Column(String(64), unique=True, index=True, nullable=False)
    razorpay_payment_id = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"

    id = Column(String(64), primary_key=True)
    order_id = Column(String(64), ForeignKey("orders.id"), unique=True, index=True, nullable=False)
    user_id = Column(String(64), nullable=True)
    razorpay_payment_id = Column(String(64), nullable=True)
    razorpay_signature = Column(String(128), nullable=True)
    status = Column(Enum(TransactionStatus), default=TransactionStatus.PENDING, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

from sqlalchemy import Column, String, DateTime, Numeric, ForeignKey, UniqueConstraint
from codehut.core.db import Base, utcnow

class Purchase(Base):
    """Entitlement record: its presence is what unlocks a paid snippet."""
    __tablename__ = "purchases"
    __table_args__ = (
        UniqueConstraint("user_id", "snippet_id", name="uq_purchase_user_snippet"),
    )

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), ForeignKey("users.id"), index=True, nullable=False)
    snippet_id = Column(String(64), ForeignKey("snippets.id"), index=True, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    purchase_date = Column(DateTime(timezone=True), default=utcnow)

    # Set when the entitlement came out of a Razorpay checkout
    order_id = Column(String(64), nullable=True)

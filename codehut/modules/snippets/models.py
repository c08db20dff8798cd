from sqlalchemy import Column, String, Text, DateTime, Integer, Float, Numeric, JSON, ForeignKey
from codehut.core.db import Base, utcnow

SNIPPET_APPROVED = "approved"

class Snippet(Base):
    __tablename__ = "snippets"

    id = Column(String(64), primary_key=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    code = Column(Text, nullable=False)
    price = Column(Numeric(10, 2), default=0, nullable=False)
    rating = Column(Float, default=0.0, nullable=False)

    author_id = Column(String(64), ForeignKey("users.id"), index=True, nullable=False)
    author_username = Column(String(20), nullable=False)

    tags = Column(JSON, default=list, nullable=False)
    language = Column(String(50), index=True, nullable=False)
    framework = Column(String(50), nullable=True)

    downloads = Column(Integer, default=0, nullable=False)
    # Uploads are published immediately, there is no review queue
    status = Column(String(20), default=SNIPPET_APPROVED, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

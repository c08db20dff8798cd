import enum
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Float, Enum
from codehut.core.db import Base, utcnow

class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"
    MODERATOR = "moderator"

class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    username = Column(String(20), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=True)

    # Profile
    bio = Column(String, nullable=True)
    avatar = Column(String, nullable=True)
    role = Column(Enum(UserRole), default=UserRole.USER, nullable=False)

    # Aggregates maintained on upload and on verified purchase
    total_snippets = Column(Integer, default=0, nullable=False)
    total_downloads = Column(Integer, default=0, nullable=False)
    rating = Column(Float, default=0.0, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)

    # Razorpay Route linked account, receives the seller share
    razorpay_account_id = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

class UserSession(Base):
    __tablename__ = "user_sessions"

    id = Column(String(64), primary_key=True)
    # One session per user; a new login replaces the previous one
    user_id = Column(String(64), unique=True, index=True, nullable=False)
    refresh_token = Column(String, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    last_activity = Column(DateTime(timezone=True), default=utcnow)

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = "CodeHut Marketplace API"
    API_PREFIX: str = "/api"
    PING_MESSAGE: Optional[str] = None
    LOG_LEVEL: str = "INFO"

    BACKEND_CORS_ORIGINS: List[str] = ["*"]

    # Database. Leave unset to run on the in-memory store.
    DATABASE_URL: Optional[str] = None
    SEED_SAMPLE_DATA: bool = True

    @property
    def database_enabled(self) -> bool:
        return bool(self.DATABASE_URL)

    @property
    def async_database_url(self) -> Optional[str]:
        url = self.DATABASE_URL
        if not url:
            return None
        # Hosted Postgres hands out libpq style URLs
        if url.startswith("postgres://"):
            return "postgresql+asyncpg://" + url[len("postgres://"):]
        if url.startswith("postgresql://"):
            return "postgresql+asyncpg://" + url[len("postgresql://"):]
        return url

    # JWT
    JWT_SECRET: str = "demo-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_IN: str = "7d"
    REFRESH_TOKEN_EXPIRES_IN: str = "30d"
    JWT_ISSUER: str = "codehut-marketplace"
    JWT_AUDIENCE: str = "codehut-users"
    BCRYPT_ROUNDS: int = 12

    # Razorpay
    RAZORPAY_KEY_ID: Optional[str] = None
    RAZORPAY_KEY_SECRET: Optional[str] = None
    RAZORPAY_SECRET: Optional[str] = None # Older deployments use this name
    RAZORPAY_WEBHOOK_SECRET: Optional[str] = None
    PAYMENT_CURRENCY: str = "INR"
    PLATFORM_COMMISSION_RATE: float = 0.10

    @property
    def razorpay_secret(self) -> Optional[str]:
        return self.RAZORPAY_KEY_SECRET or self.RAZORPAY_SECRET

    @property
    def payments_enabled(self) -> bool:
        return bool(self.RAZORPAY_KEY_ID and self.razorpay_secret)

settings = Settings()

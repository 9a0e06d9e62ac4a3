import os
from dataclasses import dataclass
from typing import List
from dotenv import load_dotenv

# grab env vars from .env file
load_dotenv()


@dataclass(frozen=True)
class PaymentsConfig:
    """explicit config handed to payment components; never read from env inside them."""

    key_id: str = ""
    key_secret: str = ""
    database_url: str = ""
    api_base: str = "https://api.razorpay.com/v1"
    timeout_seconds: float = 10.0
    period_days: int = 30


class Settings:
    # app settings
    APP_ENV: str = os.getenv("APP_ENV", "dev")
    APP_HOST: str = os.getenv("APP_HOST", "0.0.0.0")
    APP_PORT: int = int(os.getenv("APP_PORT", "8000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # CORS stuff
    _origins_raw: str = os.getenv("ALLOWED_ORIGINS", "*")
    ALLOWED_ORIGINS: List[str] = [o.strip() for o in _origins_raw.split(",") if o.strip()] if _origins_raw else ["*"]

    # supabase postgres, separate creds so the service credential never lives in code
    DB_HOST: str = os.getenv("DB_HOST", "localhost")
    DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
    DB_NAME: str = os.getenv("DB_NAME", "postgres")
    DB_USER: str = os.getenv("DB_USER", "postgres")
    DB_PASSWORD: str = os.getenv("DB_PASSWORD", "")
    DB_SSL_MODE: str = os.getenv("DB_SSL_MODE", "require")
    DB_CONNECTION_TIMEOUT: int = int(os.getenv("DB_CONNECTION_TIMEOUT", "30"))
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "5"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))

    @property
    def DATABASE_URL(self) -> str:
        """build DATABASE_URL from individual components or use explicit override"""
        explicit_url = os.getenv("DATABASE_URL")
        if explicit_url:
            return explicit_url

        return (
            f"postgresql+psycopg://{self.DB_USER}:{self.DB_PASSWORD}@"
            f"{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
            f"?sslmode={self.DB_SSL_MODE}&connect_timeout={self.DB_CONNECTION_TIMEOUT}"
        )

    # supabase auth
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_JWT_SECRET: str | None = os.getenv("SUPABASE_JWT_SECRET")
    SUPABASE_JWT_AUDIENCE: str = os.getenv("SUPABASE_JWT_AUDIENCE", "authenticated")

    # admin emails (razorpay connectivity test etc)
    ADMIN_EMAILS: List[str] = [e.strip().lower() for e in os.getenv("ADMIN_EMAILS", "").split(",") if e.strip()]

    # razorpay
    PAYMENTS_PROVIDER: str = os.getenv("PAYMENTS_PROVIDER", "razorpay").lower()
    RAZORPAY_KEY_ID: str = os.getenv("RAZORPAY_KEY_ID", "")
    RAZORPAY_KEY_SECRET: str = os.getenv("RAZORPAY_KEY_SECRET", "")
    RAZORPAY_API_BASE: str = os.getenv("RAZORPAY_API_BASE", "https://api.razorpay.com/v1")
    RAZORPAY_TIMEOUT_SECONDS: float = float(os.getenv("RAZORPAY_TIMEOUT_SECONDS", "10"))

    # fixed billing period, no calendar-month handling
    SUBSCRIPTION_PERIOD_DAYS: int = int(os.getenv("SUBSCRIPTION_PERIOD_DAYS", "30"))

    def payments_config(self) -> PaymentsConfig:
        return PaymentsConfig(
            key_id=self.RAZORPAY_KEY_ID.strip(),
            key_secret=self.RAZORPAY_KEY_SECRET.strip(),
            database_url=self.DATABASE_URL,
            api_base=self.RAZORPAY_API_BASE.rstrip("/"),
            timeout_seconds=self.RAZORPAY_TIMEOUT_SECONDS,
            period_days=self.SUBSCRIPTION_PERIOD_DAYS,
        )


settings = Settings()

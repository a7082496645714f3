"""
Application configuration using pydantic-settings.
Loads from environment variables / .env file.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "society-app"
    society_name: str = "Society Management App"
    app_env: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    secret_key: str
    access_token_expire_minutes: int = 60
    cors_origins: List[str] = []

    # API Server
    host: str = "0.0.0.0"
    port: int = 5001

    # Postgres
    database_url: str = ""
    db_connect_attempts: int = 5
    db_retry_backoff_seconds: float = 5.0
    db_retry_backoff_max_seconds: float = 60.0
    db_health_check_interval_seconds: float = 30.0

    # Razorpay
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    razorpay_webhook_secret: str = ""
    payment_currency: str = "INR"
    gateway_timeout_seconds: float = 10.0

    # Cloudinary
    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    receipts_folder: str = "receipts"
    reports_folder: str = "reports"

    # Transactional email (Brevo SMTP relay API)
    email_api_url: str = "https://api.brevo.com/v3/smtp/email"
    email_api_key: str = ""
    email_from_address: str = "noreply@society.app"
    email_from_name: str = "Society App"

    # Post-payment receipt / email tasks
    side_effect_timeout_seconds: float = 30.0

    # Pagination
    default_page_size: int = 10
    max_page_size: int = 100

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()

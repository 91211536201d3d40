"""Storefront Configuration"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment"""

    model_config = SettingsConfigDict(
        env_file="config/.env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Storefront Orders"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 5000

    # Backend base URL used by the checkout client
    server_url: str = "http://localhost:5000"
    http_timeout: float = 30.0

    # PayPal
    paypal_client_id: Optional[str] = None
    paypal_client_secret: Optional[str] = None
    paypal_api_base: str = "https://api-m.sandbox.paypal.com"
    paypal_sdk_url: str = "https://www.paypal.com/sdk/js"
    currency: str = "USD"

    # Stripe
    stripe_publishable_key: Optional[str] = None
    stripe_secret_key: Optional[str] = None

    # Auth
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"

    # Client-side durable storage
    cart_storage_dir: str = ".storefront"

    @property
    def paypal_configured(self) -> bool:
        """Check if PayPal credentials are configured"""
        return all([self.paypal_client_id, self.paypal_client_secret])

    @property
    def stripe_configured(self) -> bool:
        """Check if Stripe keys are configured"""
        return all([self.stripe_publishable_key, self.stripe_secret_key])


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()

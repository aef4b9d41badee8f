"""
Settings module - Pydantic env configuration
"""
from decimal import Decimal
from pydantic_settings import BaseSettings
from pydantic import PostgresDsn
from typing import Optional


class Settings(BaseSettings):
    """Application settings from environment variables"""

    # Shopify (from env)
    shopify_webhook_secret: Optional[str] = None

    # Database - in-memory store when unset
    database_url: Optional[PostgresDsn] = None

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # App
    app_name: str = "PromoLink"
    debug: bool = False
    environment: str = "development"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    # Host creators share affiliate links on
    public_base_url: str = "http://localhost:8000"

    # Marketplace
    default_commission_rate: Decimal = Decimal("20")
    store_timeout_seconds: float = 5.0
    redirect_cache_ttl: int = 3600

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore"
    }


settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency returning the process settings"""
    return settings

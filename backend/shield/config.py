"""Application configuration from environment variables."""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Database (local check-in cache + accounts)
    database_url: str = "sqlite:///./shield.db"

    # Auth
    secret_key: str = "dev-secret-key-change-in-prod"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Remote document store (cross-device mirror); empty = local-only
    remote_store_url: str = ""
    remote_store_api_key: str = ""
    remote_timeout_seconds: float = 5.0

    # RevenueCat
    revenuecat_api_key: str = ""
    revenuecat_entitlement_id: str = "premium"

    # Entitlements
    welcome_window_hours: int = 24

    # Users
    default_timezone: str = "UTC"
    support_email: str = "support@hangovershield.co"

    # Frontend
    frontend_url: str = "http://localhost:8081"

    # App settings
    app_name: str = "Hangover Shield"
    debug: bool = True
    log_dir: str = "logs"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""
Settings and configuration for the Mercado Livre integration
"""
import os
import logging
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class MeliSettings(BaseSettings):
    """Mercado Livre API configuration"""

    # Credentials
    meli_client_id: str = os.getenv("MELI_CLIENT_ID", "")
    meli_client_secret: str = os.getenv("MELI_CLIENT_SECRET", "")
    meli_redirect_uri: str = os.getenv("MELI_REDIRECT_URI", "http://localhost:3000/api/auth/callback")

    # Marketplace
    meli_site_id: str = os.getenv("MELI_SITE_ID", "MLB")
    meli_currency_id: str = os.getenv("MELI_CURRENCY_ID", "BRL")
    meli_seller_id: Optional[str] = os.getenv("MELI_SELLER_ID", None)  # Overrides the user id stored with the token

    # Endpoints
    meli_api_base_url: str = os.getenv("MELI_API_BASE_URL", "https://api.mercadolibre.com")
    meli_auth_base_url: str = os.getenv("MELI_AUTH_BASE_URL", "https://auth.mercadolivre.com.br")

    # Every outbound call is bounded by this timeout (seconds)
    meli_request_timeout: float = float(os.getenv("MELI_REQUEST_TIMEOUT", "30"))

    # Storage
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///data/meli.db")

    class Config:
        env_file = ".env"
        extra = "ignore"  # Ignore extra environment variables not defined in this class

    @field_validator("meli_request_timeout", mode="after")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Timeouts must be positive."""
        if v <= 0:
            raise ValueError("MELI_REQUEST_TIMEOUT must be greater than zero")
        return v

    def get_api_base_url(self) -> str:
        """Get Mercado Livre API base URL"""
        return self.meli_api_base_url.rstrip("/")

    def get_oauth_base_url(self) -> str:
        """Get Mercado Livre authorization base URL (site specific)"""
        return self.meli_auth_base_url.rstrip("/")

    def validate(self) -> None:
        """Validate settings and log warnings."""
        if not self.meli_client_id or not self.meli_client_secret:
            logger.warning("MELI_CLIENT_ID / MELI_CLIENT_SECRET are not configured; OAuth will be unavailable")


# Global settings instance
meli_settings = MeliSettings()

meli_settings.validate()

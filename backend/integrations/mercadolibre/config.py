"""
Mercado Livre OAuth Configuration - Loads and validates OAuth settings.
"""

import logging
from urllib.parse import urlencode
from settings import MeliSettings, meli_settings

logger = logging.getLogger(__name__)


class OAuthConfig:
    """Mercado Livre OAuth configuration with validation."""

    def __init__(self, settings: MeliSettings = None):
        """Initialize OAuth config from settings."""
        self.settings = settings or meli_settings
        self._validate()

    def _validate(self) -> None:
        """Validate required configuration."""
        if not self.settings.meli_client_id:
            raise ValueError("MELI_CLIENT_ID is required")
        if not self.settings.meli_client_secret:
            raise ValueError("MELI_CLIENT_SECRET is required")
        if not self.settings.meli_redirect_uri:
            raise ValueError("MELI_REDIRECT_URI is required")

    @property
    def client_id(self) -> str:
        """OAuth client ID."""
        return self.settings.meli_client_id

    @property
    def client_secret(self) -> str:
        """OAuth client secret."""
        return self.settings.meli_client_secret

    @property
    def redirect_uri(self) -> str:
        """OAuth redirect URI."""
        return self.settings.meli_redirect_uri

    def get_oauth_base_url(self) -> str:
        """Get the authorization (browser) base URL."""
        return self.settings.get_oauth_base_url()

    def get_token_url(self) -> str:
        """Token exchange/refresh endpoint lives on the API host."""
        return f"{self.settings.get_api_base_url()}/oauth/token"

    def get_authorization_url(self, state: str = None) -> str:
        """
        Generate Mercado Livre OAuth authorization URL.

        Args:
            state: Optional state parameter for CSRF protection

        Returns:
            Complete authorization URL
        """
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
        }

        if state:
            params["state"] = state

        return f"{self.get_oauth_base_url()}/authorization?{urlencode(params)}"


# Global config instance
_oauth_config: OAuthConfig = None


def get_oauth_config() -> OAuthConfig:
    """Get global OAuth config instance."""
    global _oauth_config
    if _oauth_config is None:
        _oauth_config = OAuthConfig()
    return _oauth_config

"""
Mercado Livre OAuth Flow - Authorization URL, code exchange, and token refresh.
"""

import logging
import requests
from typing import Dict, Any, Optional
from sqlmodel import Session

from settings import meli_settings
from .config import get_oauth_config, OAuthConfig
from .token_store import TokenStore, get_encryption

logger = logging.getLogger(__name__)


def _failure(error: str) -> Dict[str, Any]:
    return {"ok": False, "error": error, "token": None, "expires_in": None}


class OAuthFlow:
    """Handles the Mercado Livre OAuth flow."""

    def __init__(self, config: OAuthConfig = None, session: Session = None):
        """
        Initialize OAuth flow.

        Args:
            config: OAuth config (uses global if None)
            session: Database session (required for token operations)
        """
        self.config = config or get_oauth_config()
        self.session = session
        self.token_store = TokenStore(session, get_encryption()) if session else None

    def get_authorization_url(self, state: Optional[str] = None) -> str:
        """Generate the seller-facing authorization URL."""
        return self.config.get_authorization_url(state=state)

    def _token_store(self, session: Session = None) -> TokenStore:
        if session:
            return TokenStore(session, get_encryption())
        if self.token_store:
            return self.token_store
        raise ValueError("Database session required for token operations")

    def _request_token(self, form: Dict[str, str], token_store: TokenStore, action: str) -> Dict[str, Any]:
        """
        POST a grant to the token endpoint and persist the result.

        Returns:
            Dict with keys ok, error, token, expires_in
        """
        data = {
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            **form,
        }
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }

        try:
            logger.info(f"[OAuth] {action} with Mercado Livre")
            response = requests.post(
                self.config.get_token_url(),
                headers=headers,
                data=data,
                timeout=meli_settings.meli_request_timeout,
            )
        except requests.RequestException as e:
            logger.error(f"[OAuth] {action} request failed: {e}")
            return _failure(f"Request failed: {str(e)}")

        if response.status_code != 200:
            logger.error(f"[OAuth] {action} failed: {response.status_code} - {response.text[:500]}")
            return _failure(f"{action} failed: {response.status_code} - {response.text[:500]}")

        try:
            token_data = response.json()
        except ValueError:
            return _failure(f"{action} failed: invalid JSON response")

        access_token = token_data.get("access_token")
        # Refresh responses may omit a new refresh token; keep the old one
        refresh_token = token_data.get("refresh_token") or form.get("refresh_token")
        expires_in = int(token_data.get("expires_in", 21600))  # Mercado Livre issues 6 hour tokens
        user_id = token_data.get("user_id")

        if not access_token or not refresh_token:
            logger.error(f"[OAuth] {action} failed: missing access_token or refresh_token")
            return _failure("Missing access_token or refresh_token in response")

        token = token_store.save_token(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
            token_type=token_data.get("token_type", "Bearer"),
            scope=token_data.get("scope"),
            user_id=str(user_id) if user_id is not None else None,
        )

        logger.info(f"[OAuth] {action} succeeded, expires in {expires_in}s")
        return {"ok": True, "error": None, "token": token, "expires_in": expires_in}

    def exchange_code_for_token(self, code: str, session: Session = None) -> Dict[str, Any]:
        """
        Exchange authorization code for access token.

        Returns:
            {"ok": bool, "error": str | None, "token": Token | None, "expires_in": int | None}
        """
        token_store = self._token_store(session)
        return self._request_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.config.redirect_uri,
            },
            token_store,
            "Token exchange",
        )

    def refresh_token(self, refresh_token: str, session: Session = None) -> Dict[str, Any]:
        """
        Refresh access token using refresh token.

        Returns:
            {"ok": bool, "error": str | None, "token": Token | None, "expires_in": int | None}
        """
        token_store = self._token_store(session)
        return self._request_token(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
            token_store,
            "Token refresh",
        )

    def get_valid_access_token(self, session: Session = None) -> Optional[str]:
        """
        Get valid access token, refreshing if needed.

        Returns:
            Access token string or None if unavailable
        """
        token_store = self._token_store(session)

        token = token_store.get_token()
        if not token:
            logger.warning("No token found for Mercado Livre")
            return None

        if token_store.is_expired(token):
            logger.info("Token expired or expiring soon, refreshing...")
            result = self.refresh_token(token.refresh_token, session)
            if not result["ok"]:
                logger.error(f"Token refresh failed: {result['error']}")
                return None
            refreshed = token_store.get_token()
            return refreshed.access_token if refreshed else None

        return token.access_token

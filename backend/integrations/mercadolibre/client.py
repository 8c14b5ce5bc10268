"""
Mercado Livre API Client - Authenticated HTTP client for the marketplace API.

Handles bearer tokens with transparent refresh, one retry on 401 and
per-call timeouts. Methods never raise for HTTP or network failures; they
return an ApiResponse the caller inspects.
"""

import json
import logging
import uuid
import requests
from decimal import Decimal
from typing import Any, Dict, NamedTuple, Optional
from sqlmodel import Session

from settings import meli_settings
from .token_store import TokenStore, get_encryption
from .oauth import OAuthFlow
from .errors import AuthenticationRequiredError

logger = logging.getLogger(__name__)

NO_TOKEN_MESSAGE = "No valid access token available. Please authenticate via /meli/oauth/auth-url"


class ApiResponse(NamedTuple):
    """Outcome of one marketplace call."""
    ok: bool
    data: Any  # Parsed body on success, parsed error body (if any) on failure
    status_code: Optional[int]  # None when no HTTP answer was received
    error: Optional[str]


class MeliClient:
    """Authenticated HTTP client for the Mercado Livre API."""

    def __init__(self, session: Session, timeout: Optional[float] = None):
        """
        Initialize client.

        Args:
            session: Database session for token management
            timeout: Per-call timeout in seconds (defaults to MELI_REQUEST_TIMEOUT)
        """
        self.session = session
        self.token_store = TokenStore(session, get_encryption())
        self.base_url = meli_settings.get_api_base_url()
        self.site_id = meli_settings.meli_site_id
        self.currency_id = meli_settings.meli_currency_id
        self.timeout = timeout or meli_settings.meli_request_timeout

    def get_valid_token(self) -> Optional[str]:
        """
        Get valid access token, refreshing if needed.

        Returns:
            Access token string or None if unavailable
        """
        token = self.token_store.get_token()
        if not token:
            logger.warning("No token found for Mercado Livre")
            return None

        if self.token_store.is_expired(token, buffer_seconds=300):
            logger.info("Token expired or expiring soon, refreshing...")
            return self._refresh(token.refresh_token)

        return token.access_token

    def _refresh(self, refresh_token: str) -> Optional[str]:
        try:
            # OAuthConfig raises ValueError when client credentials are missing
            result = OAuthFlow(session=self.session).refresh_token(refresh_token, self.session)
        except ValueError as e:
            logger.error(f"Token refresh unavailable: {e}")
            return None

        if not result["ok"]:
            logger.error(f"Token refresh failed: {result.get('error')}")
            return None

        refreshed = self.token_store.get_token()
        return refreshed.access_token if refreshed else None

    def ensure_authenticated(self) -> str:
        """Return a valid token or raise AuthenticationRequiredError."""
        token = self.get_valid_token()
        if not token:
            raise AuthenticationRequiredError(NO_TOKEN_MESSAGE)
        return token

    def get_user_id(self) -> Optional[str]:
        """Seller id: MELI_SELLER_ID override, then the id stored with the token, then /users/me."""
        if meli_settings.meli_seller_id:
            return meli_settings.meli_seller_id

        token = self.token_store.get_token()
        if token and token.user_id:
            return token.user_id

        response = self._make_request("GET", "/users/me")
        if response.ok and isinstance(response.data, dict) and response.data.get("id") is not None:
            return str(response.data["id"])
        return None

    @staticmethod
    def _error_message(status_code: int, body: Any, text: str) -> str:
        """Flatten a Mercado Livre error body into one line."""
        if not isinstance(body, dict):
            return text[:500] if text else f"HTTP {status_code}"

        message = body.get("message") or body.get("error") or f"HTTP {status_code}"
        causes = body.get("cause") or []
        if isinstance(causes, dict):
            causes = [causes]
        details = [
            f"{c.get('code', 'N/A')}: {c.get('message', 'No message')}"
            for c in causes
            if isinstance(c, dict)
        ]
        if details:
            message = f"{message} [{'; '.join(details)}]"
        return f"Error {status_code} ({body.get('error', 'N/A')}): {message}"

    def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        retry_on_auth_error: bool = True
    ) -> ApiResponse:
        """
        Make authenticated HTTP request to the Mercado Livre API.

        Args:
            method: HTTP method (GET, POST, PUT, etc.)
            endpoint: API endpoint path (e.g., "/items/MLB123")
            data: Request body (will be JSON-encoded)
            params: Query parameters
            retry_on_auth_error: Whether to refresh and retry once on 401

        Returns:
            ApiResponse(ok, data, status_code, error)
        """
        token = self.get_valid_token()
        if not token:
            return ApiResponse(False, None, 401, NO_TOKEN_MESSAGE)

        request_id = str(uuid.uuid4())[:8]
        url = f"{self.base_url}{endpoint}"

        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        if data is not None:
            headers["Content-Type"] = "application/json"

        logger.info(f"[Request {request_id}] {method} {url} (body: {'yes' if data is not None else 'no'})")
        body_json = json.dumps(data, default=str) if data is not None else None
        if body_json is not None:
            logger.debug(f"[Request {request_id}] Request body (first 2000 chars): {body_json[:2000]}")

        try:
            response = requests.request(
                method=method,
                url=url,
                headers=headers,
                data=body_json,
                params=params,
                timeout=self.timeout
            )
        except requests.Timeout as e:
            logger.error(f"[Request {request_id}] Timed out after {self.timeout}s: {e}")
            return ApiResponse(False, None, None, f"Request timed out after {self.timeout}s")
        except requests.RequestException as e:
            logger.error(f"[Request {request_id}] Request exception: {e}")
            return ApiResponse(False, None, None, f"Request failed: {str(e)}")

        logger.info(f"[Request {request_id}] Status: {response.status_code}")

        if response.status_code == 401 and retry_on_auth_error:
            logger.warning(f"[Request {request_id}] 401 from Mercado Livre, refreshing token and retrying once...")
            stored = self.token_store.get_token()
            if stored and self._refresh(stored.refresh_token):
                return self._make_request(method, endpoint, data=data, params=params, retry_on_auth_error=False)

        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = None

        if 200 <= response.status_code < 300:
            if body is None:
                return ApiResponse(False, None, response.status_code, f"Invalid JSON response: {response.text[:200]}")
            logger.debug(f"[Request {request_id}] Response: {str(body)[:2000]}")
            return ApiResponse(True, body, response.status_code, None)

        error_message = self._error_message(response.status_code, body, response.text)
        logger.error(f"[Request {request_id}] {error_message}")
        return ApiResponse(False, body, response.status_code, error_message)

    # Catalog

    def get_product(self, product_id: str) -> ApiResponse:
        """Catalog product detail."""
        return self._make_request("GET", f"/products/{product_id}")

    def get_domain_categories(self, domain_id: str) -> ApiResponse:
        """Categories mapped to a catalog domain, most relevant first."""
        return self._make_request("GET", f"/catalog_domains/{domain_id}/categories")

    def search_catalog_products(self, query: str, limit: int = 10) -> ApiResponse:
        """Catalog search by universal product code, or free text when the query is not a code."""
        params: Dict[str, Any] = {"status": "active", "site_id": self.site_id, "limit": limit}
        if query.strip().isdigit():
            params["product_identifier"] = query.strip()
        else:
            params["q"] = query.strip()
        return self._make_request("GET", "/products/search", params=params)

    def search_items(self, query: str, limit: int = 1, seller_id: Optional[str] = None) -> ApiResponse:
        """General marketplace search index."""
        params: Dict[str, Any] = {"q": query, "limit": limit}
        if seller_id:
            params["seller_id"] = seller_id
        return self._make_request("GET", f"/sites/{self.site_id}/search", params=params)

    def predict_category(self, title: str, limit: int = 1) -> ApiResponse:
        """Category prediction seeded with a product title."""
        return self._make_request(
            "GET",
            f"/sites/{self.site_id}/domain_discovery/search",
            params={"q": title, "limit": limit}
        )

    # Items

    def create_item(self, payload: Dict[str, Any]) -> ApiResponse:
        """Create a listing."""
        return self._make_request("POST", "/items", data=payload)

    def get_item(self, item_id: str) -> ApiResponse:
        """Listing detail including variations, status, sub-status and tags."""
        return self._make_request("GET", f"/items/{item_id}", params={"include_attributes": "all"})

    def update_item(self, item_id: str, payload: Dict[str, Any]) -> ApiResponse:
        """Partial listing update (root price or variations)."""
        logger.info(f"[Item] Updating {item_id} fields={sorted(payload.keys())}")
        return self._make_request("PUT", f"/items/{item_id}", data=payload)

    def search_user_items(
        self,
        user_id: str,
        sku: Optional[str] = None,
        query: Optional[str] = None
    ) -> ApiResponse:
        """Seller's own items, filtered by SKU or free text."""
        params: Dict[str, Any] = {}
        if sku:
            params["sku"] = sku
        if query:
            params["q"] = query
        return self._make_request("GET", f"/users/{user_id}/items/search", params=params)

    # Fees

    def get_listing_prices(self, price: Decimal, listing_type_id: str, category_id: str) -> ApiResponse:
        """Sale fee schedule for a price/listing type/category."""
        return self._make_request(
            "GET",
            f"/sites/{self.site_id}/listing_prices",
            params={"price": str(price), "listing_type_id": listing_type_id, "category_id": category_id}
        )


def first_result(data: Any, key: str = "results") -> Any:
    """First element of a list body, or of body[key] when the body is an object."""
    if isinstance(data, dict):
        data = data.get(key)
    if isinstance(data, list) and data:
        return data[0]
    return None

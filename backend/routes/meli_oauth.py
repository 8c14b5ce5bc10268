"""
Mercado Livre OAuth Routes - Seller authorization endpoints.
"""

import logging
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session
from typing import Optional
from pydantic import BaseModel

from db import get_session
from integrations.mercadolibre.oauth import OAuthFlow
from integrations.mercadolibre.config import get_oauth_config
from integrations.mercadolibre.token_store import TokenStore, get_encryption

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/meli/oauth", tags=["meli-oauth"])


class ExchangeCodeRequest(BaseModel):
    """Request body for code exchange."""
    code: str


class OAuthStatusResponse(BaseModel):
    """OAuth status response."""
    connected: bool
    user_id: Optional[str] = None
    expires_at: Optional[int] = None
    expires_in: Optional[int] = None  # Seconds until expiration
    token_type: Optional[str] = None
    scope: Optional[str] = None
    error: Optional[str] = None


def _token_summary(token, expires_in: int) -> dict:
    return {
        "ok": True,
        "provider": token.provider,
        "user_id": token.user_id,
        "expires_at": token.expires_at,
        "expires_in": expires_in,
        "token_type": token.token_type,
        "scope": token.scope,
        "updated_at": token.updated_at,
    }


@router.get("/auth-url")
async def get_authorization_url(
    state: Optional[str] = Query(None, description="Optional state parameter for CSRF protection")
):
    """
    Get the Mercado Livre authorization URL.

    The seller visits this URL and is redirected to redirect_uri with ?code=XXX.
    """
    try:
        config = get_oauth_config()
        oauth_flow = OAuthFlow(config=config)

        return {
            "auth_url": oauth_flow.get_authorization_url(state=state),
            "redirect_uri": config.redirect_uri,
        }
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to generate auth URL: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to generate authorization URL")


@router.post("/exchange")
async def exchange_code(
    request: ExchangeCodeRequest,
    session: Session = Depends(get_session)
):
    """Exchange the authorization code for access and refresh tokens."""
    try:
        oauth_flow = OAuthFlow(config=get_oauth_config(), session=session)
        result = oauth_flow.exchange_code_for_token(request.code.strip(), session)

        if not result["ok"]:
            raise HTTPException(
                status_code=400,
                detail=result.get("error", "Token exchange failed")
            )

        return _token_summary(result["token"], result["expires_in"])
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to exchange code: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to exchange authorization code")


@router.get("/status", response_model=OAuthStatusResponse)
async def get_oauth_status(session: Session = Depends(get_session)):
    """Whether a usable token is stored and when it expires."""
    try:
        token_store = TokenStore(session, get_encryption())
        token = token_store.get_token()

        if not token:
            return OAuthStatusResponse(
                connected=False,
                error="No token found. Please authorize via /meli/oauth/auth-url"
            )

        if token_store.is_expired(token):
            return OAuthStatusResponse(
                connected=False,
                user_id=token.user_id,
                expires_at=token.expires_at,
                token_type=token.token_type,
                scope=token.scope,
                error="Token expired. Please refresh or re-authorize."
            )

        now = int(datetime.now().timestamp() * 1000)
        expires_in = max(0, (token.expires_at - now) // 1000)

        return OAuthStatusResponse(
            connected=True,
            user_id=token.user_id,
            expires_at=token.expires_at,
            expires_in=expires_in,
            token_type=token.token_type,
            scope=token.scope
        )
    except Exception as e:
        logger.error(f"Failed to get OAuth status: {e}", exc_info=True)
        return OAuthStatusResponse(
            connected=False,
            error=f"Failed to check status: {str(e)}"
        )


@router.post("/refresh")
async def refresh_token_endpoint(session: Session = Depends(get_session)):
    """
    Manually refresh the access token.

    Usually not needed - tokens are refreshed automatically when needed.
    """
    try:
        token_store = TokenStore(session, get_encryption())
        token = token_store.get_token()
        if not token:
            raise HTTPException(
                status_code=404,
                detail="No token found. Please authorize via /meli/oauth/auth-url"
            )

        oauth_flow = OAuthFlow(config=get_oauth_config(), session=session)
        result = oauth_flow.refresh_token(token.refresh_token, session)

        if not result["ok"]:
            raise HTTPException(
                status_code=400,
                detail=result.get("error", "Token refresh failed")
            )

        return _token_summary(result["token"], result["expires_in"])
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to refresh token: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to refresh token")


@router.delete("/disconnect")
async def disconnect_oauth(session: Session = Depends(get_session)):
    """Disconnect by deleting stored tokens."""
    try:
        deleted = TokenStore(session, get_encryption()).delete_token()

        if deleted:
            return {"ok": True, "message": "OAuth disconnected successfully"}
        return {"ok": True, "message": "No token found to disconnect"}
    except Exception as e:
        logger.error(f"Failed to disconnect OAuth: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to disconnect OAuth")

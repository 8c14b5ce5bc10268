"""
Token Store - Encrypted-at-rest storage for Mercado Livre OAuth tokens.

Uses Fernet symmetric encryption; the key comes from TOKEN_ENCRYPTION_KEY or is
derived from TOKEN_ENCRYPTION_PASSWORD.
"""

import os
import base64
import logging
from typing import Optional
from datetime import datetime
from sqlmodel import Session
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from models import Token

logger = logging.getLogger(__name__)

PROVIDER = "meli"


class TokenEncryption:
    """Handles encryption/decryption of tokens."""

    def __init__(self, encryption_key: Optional[str] = None):
        """
        Initialize encryption with key.

        Args:
            encryption_key: URL-safe base64 Fernet key. If None, derives one from a password.
        """
        if encryption_key:
            self.fernet = Fernet(encryption_key.encode())
        else:
            # Not recommended for production: fixed salt, password from env
            password = os.getenv("TOKEN_ENCRYPTION_PASSWORD", "default-encryption-password-change-me").encode()
            kdf = PBKDF2HMAC(
                algorithm=hashes.SHA256(),
                length=32,
                salt=b"meli_token_salt",
                iterations=100000,
            )
            self.fernet = Fernet(base64.urlsafe_b64encode(kdf.derive(password)))

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a string."""
        if not plaintext:
            return ""
        return self.fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a string."""
        if not ciphertext:
            return ""
        return self.fernet.decrypt(ciphertext.encode()).decode()


_encryption: Optional[TokenEncryption] = None


def get_encryption() -> TokenEncryption:
    """Get global encryption instance."""
    global _encryption
    if _encryption is None:
        _encryption = TokenEncryption(encryption_key=os.getenv("TOKEN_ENCRYPTION_KEY"))
    return _encryption


class TokenStore:
    """Token storage and retrieval operations."""

    def __init__(self, session: Session, encryption: TokenEncryption = None):
        self.session = session
        self.encryption = encryption or get_encryption()

    def get_token(self, provider: str = PROVIDER) -> Optional[Token]:
        """
        Get the stored token for a provider with secrets decrypted.

        The returned object is detached from the session so the decrypted
        values are never flushed back to the database.

        Returns:
            Token instance or None if missing or undecryptable
        """
        stored = self.session.get(Token, provider)
        if not stored:
            return None

        if not stored.access_token or not stored.refresh_token:
            logger.error(f"Token for {provider} has empty access_token or refresh_token")
            return None

        try:
            access_token = self.encryption.decrypt(stored.access_token)
            refresh_token = self.encryption.decrypt(stored.refresh_token)
        except InvalidToken:
            logger.error(f"Failed to decrypt token for {provider}; re-authorization required")
            return None

        return Token(
            provider=stored.provider,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=stored.expires_at,
            token_type=stored.token_type,
            scope=stored.scope,
            user_id=stored.user_id,
            created_at=stored.created_at,
            updated_at=stored.updated_at,
        )

    def save_token(
        self,
        access_token: str,
        refresh_token: str,
        expires_in: int,  # Seconds until expiration
        provider: str = PROVIDER,
        token_type: str = "Bearer",
        scope: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> Token:
        """
        Save or update token.

        Args:
            access_token: OAuth access token
            refresh_token: OAuth refresh token
            expires_in: Seconds until expiration
            provider: Token provider
            token_type: Token type (default: "Bearer")
            scope: OAuth scopes granted
            user_id: Seller id the token belongs to (kept when None on refresh)

        Returns:
            Saved Token instance (encrypted values)
        """
        now = int(datetime.now().timestamp() * 1000)
        expires_at = now + (expires_in * 1000)

        encrypted_access = self.encryption.encrypt(access_token)
        encrypted_refresh = self.encryption.encrypt(refresh_token)

        token = self.session.get(Token, provider)

        if token:
            token.access_token = encrypted_access
            token.refresh_token = encrypted_refresh
            token.expires_at = expires_at
            token.token_type = token_type
            token.scope = scope
            if user_id is not None:
                token.user_id = user_id
            token.updated_at = now
        else:
            token = Token(
                provider=provider,
                access_token=encrypted_access,
                refresh_token=encrypted_refresh,
                expires_at=expires_at,
                token_type=token_type,
                scope=scope,
                user_id=user_id,
                created_at=now,
                updated_at=now
            )
            self.session.add(token)

        self.session.commit()
        self.session.refresh(token)

        logger.info(f"Saved token for {provider}, expires at {expires_at}")
        return token

    def is_expired(self, token: Token, buffer_seconds: int = 300) -> bool:
        """
        Check if token is expired or will expire within buffer_seconds.
        """
        if not token:
            return True

        now = int(datetime.now().timestamp() * 1000)
        return now >= (token.expires_at - buffer_seconds * 1000)

    def delete_token(self, provider: str = PROVIDER) -> bool:
        """
        Delete token for provider.

        Returns:
            True if deleted, False if not found
        """
        token = self.session.get(Token, provider)
        if token:
            self.session.delete(token)
            self.session.commit()
            logger.info(f"Deleted token for {provider}")
            return True
        return False

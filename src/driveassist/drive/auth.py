"""Google API authentication and token management.

This module provides:
- Simple environment-based access token (dev/testing)
- OAuth2 refresh-token exchange with in-memory caching

Security notes:
- Tokens and client secrets are never logged
- Tokens are cached in memory only, never persisted to disk
"""

import logging
import os
import threading
import time
from abc import ABC, abstractmethod

import httpx

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

# Refresh this many seconds before the token actually expires
REFRESH_MARGIN_SECONDS = 60


class TokenProvider(ABC):
    """Abstract interface for Google API token providers."""

    @abstractmethod
    def get_token(self) -> str | None:
        """Get an access token.

        Returns:
            Access token or None if not available.
        """
        pass


class StaticTokenProvider(TokenProvider):
    """Token provider returning a fixed access token."""

    def __init__(self, token: str | None) -> None:
        self._token = token

    def get_token(self) -> str | None:
        return self._token


class OAuthRefreshTokenProvider(TokenProvider):
    """Exchange a long-lived refresh token for short-lived access tokens."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        token_url: str = GOOGLE_TOKEN_URL,
        timeout: float = 10.0,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.token_url = token_url
        self.timeout = timeout
        self._lock = threading.Lock()
        self._access_token: str | None = None
        self._expires_at = 0.0

    def get_token(self) -> str | None:
        """Return a cached access token, refreshing it when close to expiry.

        Returns:
            Access token, or None if the refresh failed.
        """
        with self._lock:
            if self._access_token and time.time() < self._expires_at - REFRESH_MARGIN_SECONDS:
                return self._access_token
            return self._refresh()

    def _refresh(self) -> str | None:
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(
                    self.token_url,
                    data={
                        "grant_type": "refresh_token",
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "refresh_token": self.refresh_token,
                    },
                )
        except httpx.HTTPError as e:
            logger.error("Google token refresh failed: %s", type(e).__name__)
            return None

        if response.status_code != 200:
            logger.error("Google token refresh failed: HTTP %d", response.status_code)
            return None

        payload = response.json()
        self._access_token = payload.get("access_token")
        self._expires_at = time.time() + int(payload.get("expires_in", 3600))
        logger.info("Refreshed Google access token")
        return self._access_token


def get_token_provider() -> TokenProvider:
    """Pick a token provider from the environment.

    GOOGLE_ACCESS_TOKEN wins; otherwise GOOGLE_REFRESH_TOKEN together with
    GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET enables the refresh flow.
    """
    access_token = os.environ.get("GOOGLE_ACCESS_TOKEN")
    if access_token:
        return StaticTokenProvider(access_token)

    client_id = os.environ.get("GOOGLE_CLIENT_ID")
    client_secret = os.environ.get("GOOGLE_CLIENT_SECRET")
    refresh_token = os.environ.get("GOOGLE_REFRESH_TOKEN")
    if client_id and client_secret and refresh_token:
        return OAuthRefreshTokenProvider(client_id, client_secret, refresh_token)

    logger.warning("No Google credentials configured; Drive calls will fail")
    return StaticTokenProvider(None)

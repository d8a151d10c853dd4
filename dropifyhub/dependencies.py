"""
FastAPI dependency injection.
Simple setup - token store, shared HTTP client, OAuth manager, state cookies.
"""

import logging
from typing import Optional

import httpx

from .config import settings
from .db import TokenStore, InMemoryTokenStore, SQLiteTokenStore
from .auth import OAuthManager, OAuthNotConfigured, StateCookieManager

logger = logging.getLogger(__name__)


# Global instances (initialized on startup)
_store: Optional[TokenStore] = None
_http_client: Optional[httpx.AsyncClient] = None
_oauth_manager: Optional[OAuthManager] = None
_state_cookies: Optional[StateCookieManager] = None


def build_token_store(kind: str, database_path: str) -> TokenStore:
    """Create the configured token store backend."""
    if kind == "memory":
        return InMemoryTokenStore()
    if kind == "sqlite":
        return SQLiteTokenStore(database_path)
    raise ValueError(f"Unknown token store: {kind}")


async def init_dependencies():
    """Initialize global dependencies. Called on app startup."""
    global _store, _http_client, _oauth_manager, _state_cookies

    _store = build_token_store(settings.token_store, settings.database_path)
    await _store.initialize()

    _http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(60.0, connect=10.0),
    )

    _state_cookies = StateCookieManager(
        settings.session_secret,
        max_age=settings.state_max_age,
    )

    missing = settings.missing_oauth_settings()
    if missing:
        logger.error(
            f"OAuth disabled, missing settings: {', '.join(missing)}"
        )
        return

    try:
        _oauth_manager = OAuthManager.from_settings(
            settings, _store, http_client=_http_client
        )
    except OAuthNotConfigured as e:
        logger.error(f"OAuth disabled: {e}")


async def close_dependencies():
    """Close global dependencies. Called on app shutdown."""
    global _store, _http_client, _oauth_manager
    _oauth_manager = None
    if _http_client:
        await _http_client.aclose()
        _http_client = None
    if _store:
        await _store.close()
        _store = None


def get_oauth_manager() -> OAuthManager:
    """Get the OAuth manager. Fails closed if the app is not configured."""
    if _oauth_manager is None:
        raise OAuthNotConfigured("Shopify app is not configured")
    return _oauth_manager


def get_state_cookies() -> StateCookieManager:
    """Get the state cookie manager."""
    if _state_cookies is None:
        raise RuntimeError("State cookie manager not initialized")
    return _state_cookies


def get_http_client() -> httpx.AsyncClient:
    """Get the shared outbound HTTP client."""
    if _http_client is None:
        raise RuntimeError("HTTP client not initialized")
    return _http_client

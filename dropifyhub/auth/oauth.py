"""
Shopify OAuth install handshake.

Flow:
1. begin(shop) issues a single-use state token and builds the authorize URL
2. Shopify redirects back to /auth/callback with shop, code, state, hmac
3. complete() checks state, then hmac, then the shop hostname, and only
   then exchanges the code for an access token and stores it
"""

import asyncio
import hashlib
import hmac
import logging
import re
import secrets
import time
import weakref
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Tuple
from urllib.parse import urlencode

import httpx

from ..db import StoredCredential, TokenStore

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/auth/callback"
STATE_BYTES = 16  # 128 bits, 32 hex chars
MAX_PENDING_STATES = 10000

_HOSTNAME_RE = re.compile(
    r"^(?=.{1,253}$)[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?"
    r"(?:\.[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?)+$"
)


# ===== Errors =====

class OAuthError(Exception):
    """Base exception for handshake errors."""
    kind = "oauth_error"
    status_code = 400


class InvalidTenant(OAuthError):
    """Shop missing or not a valid hostname (at begin)."""
    kind = "invalid_tenant"


class InvalidRequest(OAuthError):
    """Callback is missing required parameters."""
    kind = "invalid_request"


class StateMismatch(OAuthError):
    """Callback state does not match an issued, unused token."""
    kind = "state_mismatch"


class SignatureInvalid(OAuthError):
    """Callback hmac does not verify."""
    kind = "signature_invalid"


class TenantInvalid(InvalidTenant):
    """Shop on the callback is not a valid hostname."""
    kind = "tenant_invalid"


class TokenExchangeFailed(OAuthError):
    """Shopify's token endpoint failed or returned no token."""
    kind = "token_exchange_failed"
    status_code = 500


class NotFound(OAuthError):
    """No credential stored for the shop."""
    kind = "not_found"
    status_code = 404


class OAuthNotConfigured(OAuthError):
    """Required app credentials are missing."""
    kind = "not_configured"
    status_code = 503


# ===== Helpers =====

def normalize_shop(shop: Optional[str]) -> str:
    """Lower-case and strip a shop domain. Does not validate."""
    return (shop or "").strip().lower()


def is_valid_shop_domain(shop: str, allowed_suffixes: Iterable[str] = ()) -> bool:
    """
    Check that shop is a bare hostname under one of the allowed suffixes.

    Rejects schemes, paths, ports, userinfo and anything else that would
    let a caller steer the outbound token request somewhere else.
    """
    if not shop or not _HOSTNAME_RE.fullmatch(shop):
        return False

    suffixes = [s for s in allowed_suffixes if s]
    if not suffixes:
        return True
    return any(
        shop.endswith("." + suffix) for suffix in suffixes
    )


def compute_hmac(params: Mapping[str, str], secret: str) -> str:
    """HMAC-SHA256 hex digest over sorted key=value pairs, excluding hmac."""
    message = "&".join(
        f"{key}={value}"
        for key, value in sorted(params.items())
        if key != "hmac"
    )
    return hmac.new(
        secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def verify_hmac(params: Mapping[str, str], secret: str) -> bool:
    """Constant-time check of the hmac field of Shopify callback params."""
    provided = params.get("hmac")
    if not provided:
        return False
    expected = compute_hmac(params, secret)
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


def _same_token(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


@dataclass
class PendingAttempt:
    """An issued state token waiting for its callback."""
    shop: str
    issued_at: float


# ===== Manager =====

class OAuthManager:
    """
    Owns the install flow and custody of the resulting tokens.

    Tokens live in an injected TokenStore. State tokens live in memory and
    are single use: every callback consumes them, whatever the outcome.
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        scopes: str,
        app_url: str,
        store: TokenStore,
        allowed_suffixes: Iterable[str] = ("myshopify.com",),
        state_max_age: int = 600,
        exchange_timeout: float = 10.0,
        max_pending_states: int = MAX_PENDING_STATES,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the handshake manager.

        Args:
            api_key: App client id
            api_secret: App client secret, also the hmac key
            scopes: Comma separated scope list requested at install
            app_url: Externally reachable https base URL of this app
            store: Credential storage backend
            allowed_suffixes: Domain suffixes a shop must end with
            state_max_age: Seconds a state token stays valid
            exchange_timeout: Timeout for the token exchange request
            max_pending_states: Cap on in-flight attempts, oldest evicted first
            http_client: Optional client, mostly for tests

        Raises:
            OAuthNotConfigured: If a required value is missing or the
                app URL is not https
        """
        missing = [
            name for name, value in (
                ("api_key", api_key),
                ("api_secret", api_secret),
                ("scopes", scopes),
                ("app_url", app_url),
            )
            if not value or not value.strip()
        ]
        if missing:
            raise OAuthNotConfigured(f"Missing OAuth settings: {', '.join(missing)}")
        if not app_url.startswith("https://"):
            raise OAuthNotConfigured("App URL must use https")

        self.api_key = api_key
        self._api_secret = api_secret
        self.scopes = scopes
        self.redirect_uri = app_url.rstrip("/") + CALLBACK_PATH
        self.store = store
        self.allowed_suffixes = [s.lower().lstrip(".") for s in allowed_suffixes]
        self.state_max_age = state_max_age
        self.exchange_timeout = exchange_timeout
        self.max_pending_states = max_pending_states

        self._client = http_client
        self._owns_client = http_client is None
        self._pending: Dict[str, PendingAttempt] = {}
        self._shop_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    @classmethod
    def from_settings(cls, settings, store: TokenStore, **kwargs) -> "OAuthManager":
        """Build a manager from application settings."""
        return cls(
            api_key=settings.shopify_api_key,
            api_secret=settings.shopify_api_secret,
            scopes=settings.shopify_scopes,
            app_url=settings.shopify_app_url,
            store=store,
            allowed_suffixes=settings.allowed_shop_suffixes,
            state_max_age=settings.state_max_age,
            exchange_timeout=settings.token_exchange_timeout,
            **kwargs,
        )

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.exchange_timeout),
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we created it."""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def is_valid_shop(self, shop: str) -> bool:
        return is_valid_shop_domain(shop, self.allowed_suffixes)

    def _prune_pending(self) -> None:
        cutoff = time.monotonic() - self.state_max_age
        expired = [s for s, p in self._pending.items() if p.issued_at < cutoff]
        for state in expired:
            del self._pending[state]

        # Oldest first, dicts keep insertion order
        while self._pending and len(self._pending) >= self.max_pending_states:
            del self._pending[next(iter(self._pending))]

    def _consume(self, state: str, presented: Optional[str]) -> Optional[PendingAttempt]:
        """Invalidate both tokens and return the attempt issued for state."""
        pending = self._pending.pop(state, None) if state else None
        if presented:
            self._pending.pop(presented, None)

        if pending and time.monotonic() - pending.issued_at > self.state_max_age:
            return None
        return pending

    # ===== Operations =====

    def begin(self, shop: Optional[str]) -> Tuple[str, str]:
        """
        Start an install attempt.

        Args:
            shop: Shop domain from the inbound request

        Returns:
            (authorization URL, state token)

        Raises:
            InvalidTenant: If shop is missing or malformed
        """
        shop = normalize_shop(shop)
        if not self.is_valid_shop(shop):
            raise InvalidTenant("Missing or invalid shop")

        self._prune_pending()
        state = secrets.token_hex(STATE_BYTES)
        self._pending[state] = PendingAttempt(shop=shop, issued_at=time.monotonic())

        query = urlencode({
            "client_id": self.api_key,
            "scope": self.scopes,
            "redirect_uri": self.redirect_uri,
            "state": state,
        })
        logger.info(f"Starting install for {shop}")
        return f"https://{shop}/admin/oauth/authorize?{query}", state

    async def complete(
        self,
        params: Mapping[str, str],
        presented_state: Optional[str],
    ) -> StoredCredential:
        """
        Validate a callback and exchange its code for an access token.

        Args:
            params: All callback query parameters
            presented_state: State token the client got from begin()

        Returns:
            The stored credential

        Raises:
            InvalidRequest, StateMismatch, SignatureInvalid, TenantInvalid,
            TokenExchangeFailed
        """
        raw_shop = params.get("shop") or ""
        code = params.get("code") or ""
        state = params.get("state") or ""

        pending = self._consume(state, presented_state)

        if not raw_shop or not code or not state:
            raise InvalidRequest("Missing shop, code or state")

        shop = normalize_shop(raw_shop)

        if (
            not presented_state
            or pending is None
            or not _same_token(state, presented_state)
        ):
            raise StateMismatch("State does not match this install attempt")

        if not verify_hmac(params, self._api_secret):
            raise SignatureInvalid("HMAC validation failed")

        # Signed by Shopify, but started for another shop
        if pending.shop != shop:
            raise StateMismatch("State was issued for a different shop")

        if not self.is_valid_shop(shop):
            raise TenantInvalid("Invalid shop")

        lock = self._shop_locks.get(shop)
        if lock is None:
            lock = asyncio.Lock()
            self._shop_locks[shop] = lock

        async with lock:
            body = await self._exchange_code(shop, code)
            credential = StoredCredential(
                shop=shop,
                access_token=body["access_token"],
                scope=body.get("scope"),
            )
            await self.store.put(credential)

        logger.info(f"Shop installed: {shop}")
        return credential

    async def get_credential(self, shop: str) -> StoredCredential:
        """
        Look up the stored credential for a shop.

        Raises:
            NotFound: If the shop has not completed an install
        """
        credential = await self.store.get(normalize_shop(shop))
        if credential is None:
            raise NotFound("No credential for shop")
        return credential

    async def _exchange_code(self, shop: str, code: str) -> dict:
        """One POST to the shop's token endpoint. No retries, the code is single use."""
        url = f"https://{shop}/admin/oauth/access_token"
        payload = {
            "client_id": self.api_key,
            "client_secret": self._api_secret,
            "code": code,
        }

        client = self._get_client()
        try:
            response = await client.post(
                url,
                json=payload,
                headers={"Accept": "application/json"},
                timeout=self.exchange_timeout,
            )
        except httpx.TimeoutException:
            logger.error(f"Token exchange timed out for {shop}")
            raise TokenExchangeFailed("Token exchange timed out")
        except httpx.HTTPError as e:
            logger.error(f"Token exchange request failed for {shop}: {type(e).__name__}")
            raise TokenExchangeFailed("Token exchange request failed")

        if not response.is_success:
            logger.error(
                f"Token exchange for {shop} returned HTTP {response.status_code}"
            )
            raise TokenExchangeFailed("Token endpoint returned an error")

        try:
            body = response.json()
        except ValueError:
            raise TokenExchangeFailed("Token endpoint returned invalid JSON")

        if not isinstance(body, dict) or not isinstance(body.get("access_token"), str) \
                or not body["access_token"]:
            raise TokenExchangeFailed("Token endpoint response has no access token")

        return body

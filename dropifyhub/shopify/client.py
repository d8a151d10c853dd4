"""
Shopify Admin REST API client.
"""

import logging
from typing import Any, Dict, Optional, Union

import httpx

logger = logging.getLogger(__name__)


class ShopifyClientError(Exception):
    """Base exception for Shopify client errors."""
    pass


class ShopifyAuthError(ShopifyClientError):
    """Authentication error."""
    pass


class ShopifyRateLimitError(ShopifyClientError):
    """Rate limit exceeded."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Seconds from a Retry-After header. HTTP-date values are ignored."""
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class ShopifyClient:
    """
    Async HTTP client for the Shopify Admin REST API.

    One attempt per call. Errors are mapped to ShopifyClientError
    subclasses and left to the caller.
    """

    DEFAULT_API_VERSION = "2024-10"

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: str = DEFAULT_API_VERSION,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize Shopify client.

        Args:
            shop_domain: Validated store domain (e.g., "mystore.myshopify.com")
            access_token: Admin API access token
            api_version: Admin API version
            http_client: Optional shared client, mostly for tests
        """
        self.shop_domain = shop_domain
        self.access_token = access_token
        self.base_url = f"https://{shop_domain}/admin/api/{api_version}"

        self._client = http_client
        self._owns_client = http_client is None

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": self.access_token,
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(60.0, connect=10.0),
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Send one request to the Admin API.

        Args:
            method: HTTP method
            path: Path under /admin/api/{version}/, e.g. "themes.json"
            payload: Optional JSON body

        Returns:
            Decoded JSON response body

        Raises:
            ShopifyAuthError: If authentication fails
            ShopifyRateLimitError: If rate limited
            ShopifyClientError: For other errors
        """
        client = await self._get_client()
        url = f"{self.base_url}/{path.lstrip('/')}"

        try:
            response = await client.request(
                method, url, json=payload, headers=self._headers()
            )
        except httpx.RequestError as e:
            raise ShopifyClientError(f"Request error: {type(e).__name__}") from e

        if response.status_code in (401, 403):
            raise ShopifyAuthError(
                f"Authentication failed for {self.shop_domain}"
            )

        if response.status_code == 429:
            logger.warning(f"Rate limited by {self.shop_domain}")
            raise ShopifyRateLimitError(
                "Rate limit exceeded",
                retry_after=_parse_retry_after(response.headers.get("Retry-After")),
            )

        if not response.is_success:
            logger.error(
                f"{method} {path} on {self.shop_domain} returned HTTP {response.status_code}"
            )
            raise ShopifyClientError(f"HTTP {response.status_code} from Shopify")

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ShopifyClientError("Invalid JSON from Shopify") from e

    # ===== Resources =====

    @staticmethod
    def _unwrap(data: Dict[str, Any], key: str) -> Dict[str, Any]:
        if not isinstance(data.get(key), dict):
            raise ShopifyClientError(f"Response has no {key}")
        return data[key]

    async def create_theme(self, name: str, role: str = "unpublished") -> Dict[str, Any]:
        """Create a theme and return it."""
        data = await self.request(
            "POST", "themes.json", {"theme": {"name": name, "role": role}}
        )
        theme = self._unwrap(data, "theme")
        if theme.get("id") is None:
            raise ShopifyClientError("Theme response has no id")
        return theme

    async def upload_asset(self, theme_id: int, key: str, value: str) -> Dict[str, Any]:
        """Create or replace a theme asset."""
        data = await self.request(
            "PUT",
            f"themes/{theme_id}/assets.json",
            {"asset": {"key": key, "value": value}},
        )
        return data.get("asset", {})

    async def create_product(
        self,
        title: str,
        body_html: str = "",
        price: Optional[Union[str, float, int]] = None,
    ) -> Dict[str, Any]:
        """Create a product with a single variant."""
        product: Dict[str, Any] = {"title": title, "body_html": body_html}
        if price is not None:
            product["variants"] = [{"price": price}]

        data = await self.request("POST", "products.json", {"product": product})
        return self._unwrap(data, "product")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

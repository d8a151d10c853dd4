"""
Shopify API module.
"""

from dropifyhub.shopify.client import (
    ShopifyClient,
    ShopifyClientError,
    ShopifyAuthError,
    ShopifyRateLimitError,
)

__all__ = [
    "ShopifyClient",
    "ShopifyClientError",
    "ShopifyAuthError",
    "ShopifyRateLimitError",
]

"""
Tests for the Admin REST client error mapping.
"""

import httpx
import pytest

from dropifyhub.shopify import (
    ShopifyClient,
    ShopifyAuthError,
    ShopifyClientError,
    ShopifyRateLimitError,
)


def client_returning(response: httpx.Response) -> ShopifyClient:
    transport = httpx.MockTransport(lambda request: response)
    return ShopifyClient(
        "mystore.myshopify.com",
        "shpat_x",
        http_client=httpx.AsyncClient(transport=transport),
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 403])
async def test_auth_error(status):
    client = client_returning(httpx.Response(status))
    with pytest.raises(ShopifyAuthError):
        await client.request("GET", "shop.json")


@pytest.mark.asyncio
async def test_rate_limit_carries_retry_after():
    client = client_returning(httpx.Response(429, headers={"Retry-After": "2.0"}))
    with pytest.raises(ShopifyRateLimitError) as exc_info:
        await client.request("GET", "shop.json")
    assert exc_info.value.retry_after == 2.0


@pytest.mark.asyncio
async def test_server_error():
    client = client_returning(httpx.Response(503))
    with pytest.raises(ShopifyClientError):
        await client.request("GET", "shop.json")


@pytest.mark.asyncio
async def test_missing_resource_in_body():
    client = client_returning(httpx.Response(201, json={"errors": {}}))
    with pytest.raises(ShopifyClientError):
        await client.create_theme("Theme")


@pytest.mark.asyncio
async def test_transport_error():
    def fail(request):
        raise httpx.ConnectError("refused", request=request)

    client = ShopifyClient(
        "mystore.myshopify.com",
        "shpat_x",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(fail)),
    )
    with pytest.raises(ShopifyClientError):
        await client.request("GET", "shop.json")


@pytest.mark.asyncio
async def test_rate_limit_with_http_date():
    client = client_returning(
        httpx.Response(429, headers={"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"})
    )
    with pytest.raises(ShopifyRateLimitError) as exc_info:
        await client.request("GET", "shop.json")
    assert exc_info.value.retry_after is None


@pytest.mark.asyncio
async def test_theme_without_id():
    client = client_returning(httpx.Response(201, json={"theme": {"name": "Theme"}}))
    with pytest.raises(ShopifyClientError):
        await client.create_theme("Theme")

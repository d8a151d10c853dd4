"""
Shared fixtures: a fake Shopify backend and a configured OAuth manager.
"""

import re
from typing import Optional

import httpx
import pytest

from dropifyhub.auth import OAuthManager, StateCookieManager, compute_hmac
from dropifyhub.db import InMemoryTokenStore


CLIENT_ID = "test-client-id"
CLIENT_SECRET = "test-client-secret"
SCOPES = "write_themes,write_products,read_themes,read_products"
APP_URL = "https://app.example.com"
SHOP = "shop-a.example.com"


def sign(params: dict, secret: str = CLIENT_SECRET) -> dict:
    """Return a copy of params with an hmac field, the way Shopify signs callbacks."""
    signed = {k: v for k, v in params.items() if k != "hmac"}
    signed["hmac"] = compute_hmac(signed, secret)
    return signed


def callback_params(state: str, shop: str = SHOP, code: str = "abc",
                    secret: str = CLIENT_SECRET) -> dict:
    return sign(
        {"shop": shop, "code": code, "state": state, "timestamp": "1700000000"},
        secret,
    )


class FakeShopify:
    """MockTransport handler standing in for the token endpoint and Admin API."""

    def __init__(self):
        self.requests = []
        self.token_status = 200
        self.token_body: object = {"access_token": "tok_123", "scope": SCOPES}
        self.token_error: Optional[Exception] = None
        self.api_status = 200
        self.api_headers = {}
        self._next_id = 1000

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/admin/oauth/access_token":
            if self.token_error is not None:
                raise self.token_error
            if isinstance(self.token_body, (dict, list)):
                return httpx.Response(self.token_status, json=self.token_body)
            return httpx.Response(self.token_status, text=str(self.token_body))

        if self.api_status != 200:
            return httpx.Response(
                self.api_status, json={"errors": "upstream"}, headers=self.api_headers
            )

        self._next_id += 1
        if path.endswith("/themes.json"):
            return httpx.Response(201, json={"theme": {"id": self._next_id, "role": "unpublished"}})
        if re.search(r"/themes/\d+/assets\.json$", path):
            return httpx.Response(200, json={"asset": {"key": "ok"}})
        if path.endswith("/products.json"):
            return httpx.Response(201, json={"product": {"id": self._next_id}})
        return httpx.Response(404, json={"errors": "Not Found"})

    def token_requests(self):
        return [r for r in self.requests if r.url.path == "/admin/oauth/access_token"]


@pytest.fixture
def fake_shopify():
    return FakeShopify()


@pytest.fixture
def http_client(fake_shopify):
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_shopify))


@pytest.fixture
def store():
    return InMemoryTokenStore()


@pytest.fixture
def manager(store, http_client):
    return OAuthManager(
        api_key=CLIENT_ID,
        api_secret=CLIENT_SECRET,
        scopes=SCOPES,
        app_url=APP_URL,
        store=store,
        allowed_suffixes=["example.com", "myshopify.com"],
        http_client=http_client,
    )


@pytest.fixture
def state_cookies():
    return StateCookieManager("test-session-secret", max_age=600)

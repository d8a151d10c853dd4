"""
Push routes - send generated themes and products to an installed shop.
"""

import logging
from typing import List, Optional, Union

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import settings
from ..dependencies import get_http_client, get_oauth_manager
from ..auth import OAuthManager, InvalidTenant
from ..shopify import ShopifyClient, ShopifyClientError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

THEME_NAME = "DropifyHub AI Theme"
CSS_ASSET_KEY = "assets/ai.css"
INDEX_ASSET_KEY = "templates/index.liquid"


class PushThemeRequest(BaseModel):
    """Generated storefront to publish as a new theme."""
    shop: str
    html: str
    css: str = ""


class ProductInput(BaseModel):
    """A generated product."""
    title: str
    desc: str = ""
    price: Optional[Union[str, float, int]] = None


class PushProductsRequest(BaseModel):
    """Batch of generated products."""
    shop: str
    products: List[ProductInput]


async def _client_for(
    shop: str, oauth: OAuthManager, http_client: httpx.AsyncClient
) -> ShopifyClient:
    """Build an Admin API client from the shop's stored credential."""
    shop = shop.strip().lower()
    if not oauth.is_valid_shop(shop):
        raise InvalidTenant("Invalid shop")

    credential = await oauth.get_credential(shop)
    return ShopifyClient(
        credential.shop,
        credential.access_token,
        api_version=settings.shopify_api_version,
        http_client=http_client,
    )


def _upstream_error(e: ShopifyClientError) -> JSONResponse:
    return JSONResponse(
        status_code=502,
        content={"error": "shopify_error", "detail": str(e)},
    )


@router.post("/push-theme")
async def push_theme(
    body: PushThemeRequest,
    oauth: OAuthManager = Depends(get_oauth_manager),
    http_client: httpx.AsyncClient = Depends(get_http_client),
):
    """Create an unpublished theme and upload the generated assets."""
    client = await _client_for(body.shop, oauth, http_client)

    try:
        theme = await client.create_theme(THEME_NAME)
        theme_id = theme["id"]
        await client.upload_asset(theme_id, CSS_ASSET_KEY, body.css)
        await client.upload_asset(theme_id, INDEX_ASSET_KEY, body.html)
    except ShopifyClientError as e:
        logger.error(f"Theme push to {client.shop_domain} failed: {e}")
        return _upstream_error(e)

    logger.info(f"Pushed theme {theme_id} to {client.shop_domain}")
    # themeId is the key existing DropifyHub front-ends read
    return {"success": True, "theme_id": theme_id, "themeId": theme_id}


@router.post("/push-products")
async def push_products(
    body: PushProductsRequest,
    oauth: OAuthManager = Depends(get_oauth_manager),
    http_client: httpx.AsyncClient = Depends(get_http_client),
):
    """Create each product in the shop."""
    client = await _client_for(body.shop, oauth, http_client)

    created = []
    try:
        for product in body.products:
            created.append(await client.create_product(
                title=product.title,
                body_html=product.desc,
                price=product.price,
            ))
    except ShopifyClientError as e:
        logger.error(
            f"Product push to {client.shop_domain} failed after "
            f"{len(created)}/{len(body.products)}: {e}"
        )
        return _upstream_error(e)

    logger.info(f"Pushed {len(created)} products to {client.shop_domain}")
    return {"success": True, "created": created}

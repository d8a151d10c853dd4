"""
Shopify OAuth routes - install and callback.
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from ..config import settings
from ..dependencies import get_oauth_manager, get_state_cookies
from ..auth import OAuthManager, OAuthError, StateCookieManager
from ..auth.oauth import normalize_shop

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")
templates = Jinja2Templates(directory=str(Path(__file__).parent.parent / "templates"))


def error_response(exc: OAuthError) -> JSONResponse:
    """Machine-readable error body. Never carries secrets or provider bodies."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": str(exc)},
    )


@router.get("")
async def begin_install(
    shop: str = "",
    oauth: OAuthManager = Depends(get_oauth_manager),
    state_cookies: StateCookieManager = Depends(get_state_cookies),
):
    """Redirect the merchant to Shopify's authorize page."""
    redirect_url, state = oauth.begin(shop)

    response = RedirectResponse(url=redirect_url, status_code=302)
    state_cookies.issue(response, state, normalize_shop(shop))
    return response


@router.get("/callback")
async def install_callback(
    request: Request,
    oauth: OAuthManager = Depends(get_oauth_manager),
    state_cookies: StateCookieManager = Depends(get_state_cookies),
):
    """Validate Shopify's callback and store the access token."""
    params = dict(request.query_params)
    presented_state = state_cookies.read_state(request)

    try:
        credential = await oauth.complete(params, presented_state)
    except OAuthError as e:
        logger.warning(f"Install callback rejected ({e.kind}) for shop {params.get('shop')!r}")
        response = error_response(e)
        state_cookies.clear(response)
        return response

    if settings.shopify_app_handle:
        response = RedirectResponse(
            url=f"https://{credential.shop}/admin/apps/{settings.shopify_app_handle}",
            status_code=302,
        )
    else:
        response = templates.TemplateResponse(
            request, "installed.html", {"shop": credential.shop}
        )
    state_cookies.clear(response)
    return response

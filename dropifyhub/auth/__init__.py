"""
Authentication module - Shopify OAuth install flow.
"""

from dropifyhub.auth.oauth import (
    OAuthManager,
    OAuthError,
    InvalidTenant,
    InvalidRequest,
    StateMismatch,
    SignatureInvalid,
    TenantInvalid,
    TokenExchangeFailed,
    NotFound,
    OAuthNotConfigured,
    compute_hmac,
    verify_hmac,
    is_valid_shop_domain,
)
from dropifyhub.auth.session import StateCookieManager, STATE_COOKIE_NAME

__all__ = [
    "OAuthManager",
    "OAuthError",
    "InvalidTenant",
    "InvalidRequest",
    "StateMismatch",
    "SignatureInvalid",
    "TenantInvalid",
    "TokenExchangeFailed",
    "NotFound",
    "OAuthNotConfigured",
    "compute_hmac",
    "verify_hmac",
    "is_valid_shop_domain",
    "StateCookieManager",
    "STATE_COOKIE_NAME",
]

"""
Pydantic models for stored entities.
Access tokens are kept per shop, keyed by the shop's myshopify domain.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class StoredCredential(BaseModel):
    """An Admin API access token granted by a shop during install."""
    shop: str  # e.g., "mystore.myshopify.com"
    access_token: str = Field(repr=False)
    scope: Optional[str] = None  # scopes Shopify actually granted
    installed_at: datetime = Field(default_factory=datetime.utcnow)

"""
Configuration management.
Simple .env based config, values come from the environment.
"""

import secrets
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SCOPES = "write_themes,write_products,read_themes,read_products"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8080

    # Shopify app credentials (required)
    shopify_api_key: str = ""
    shopify_api_secret: str = ""
    shopify_scopes: str = DEFAULT_SCOPES
    shopify_app_url: str = ""  # externally reachable https base URL

    # Shopify misc
    shopify_api_version: str = "2024-10"
    shopify_app_handle: str = ""  # e.g. "dropifyhub"
    shop_domain_suffixes: str = "myshopify.com"

    # OAuth handshake
    session_secret: str = Field(default_factory=lambda: secrets.token_hex(32))
    state_max_age: int = 600  # seconds
    token_exchange_timeout: float = 10.0  # seconds

    # Token storage
    token_store: str = "sqlite"  # "memory" or "sqlite"
    database_path: str = "./data/app.db"

    # Logging
    log_level: str = "INFO"

    @property
    def allowed_shop_suffixes(self) -> List[str]:
        """Domain suffixes a shop hostname must end with."""
        return [
            s.strip().lower().lstrip(".")
            for s in self.shop_domain_suffixes.split(",")
            if s.strip()
        ]

    def missing_oauth_settings(self) -> List[str]:
        """Names of required OAuth variables that are unset."""
        required = {
            "SHOPIFY_API_KEY": self.shopify_api_key,
            "SHOPIFY_API_SECRET": self.shopify_api_secret,
            "SHOPIFY_SCOPES": self.shopify_scopes,
            "SHOPIFY_APP_URL": self.shopify_app_url,
        }
        return [name for name, value in required.items() if not value.strip()]


# Global settings instance
settings = Settings()

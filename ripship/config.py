"""Runtime configuration loaded from environment variables.

Security contract:
- Secrets and tokens are read from the environment only, never hardcoded
- Empty webhook secret -> every signature check fails (fail-closed)
- Missing/invalid SHOPIFY_LOCATION_ID -> ValidationError at startup, not at first webhook
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Explicit configuration passed into every component."""

    webhook_secret: str = Field("", validation_alias="SHOPIFY_WEBHOOK_SECRET")
    shop_url: str = Field("", validation_alias="SHOPIFY_SHOP_URL")
    access_token: str = Field("", validation_alias="SHOPIFY_ACCESS_TOKEN")
    location_id: int = Field(validation_alias="SHOPIFY_LOCATION_ID")
    api_version: str = Field("2025-01", validation_alias="SHOPIFY_API_VERSION")
    http_timeout: float = Field(30.0, validation_alias="SHOPIFY_HTTP_TIMEOUT")

    marker_tag: str = Field("RIP & SHIP", validation_alias="RIPSHIP_TAG")
    metafield_namespace: str = Field("rip", validation_alias="RIPSHIP_METAFIELD_NAMESPACE")
    metafield_key: str = Field("master_sku", validation_alias="RIPSHIP_METAFIELD_KEY")

    # Redelivery ledger; unset disables it
    redis_url: str | None = Field(None, validation_alias="REDIS_URL")
    dedup_ttl_seconds: int = Field(86400, validation_alias="RIPSHIP_DEDUP_TTL")  # 24 hours

    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
        "frozen": True,
        "populate_by_name": True,
    }

    @field_validator("redis_url")
    @classmethod
    def _blank_redis_url(cls, v: str | None) -> str | None:
        return v or None

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def api_base_url(self) -> str:
        """Admin REST base URL, e.g. https://store.myshopify.com/admin/api/2025-01."""
        shop = self.shop_url.rstrip("/")
        if not shop.startswith(("http://", "https://")):
            shop = f"https://{shop}"
        return f"{shop}/admin/api/{self.api_version}"

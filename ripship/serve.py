"""FastAPI application entry point.

Run with `python -m ripship.serve` or the `ripship` console script.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from ripship.config import Settings
from ripship.tools.shopify_client import ShopifyAdminClient
from ripship.webhooks.handlers import register_webhook_routes
from ripship.webhooks.idempotency import LineItemLedger
from ripship.webhooks.processor import OrderProcessor

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # httpx logs every request URL at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def create_app(
    settings: Settings | None = None,
    client: ShopifyAdminClient | None = None,
    ledger: LineItemLedger | None = None,
) -> FastAPI:
    """Build the app. Collaborators default to ones built from the environment."""
    settings = settings or Settings()
    client = client or ShopifyAdminClient(settings)
    ledger = ledger or LineItemLedger(settings.redis_url, settings.dedup_ttl_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not settings.webhook_secret:
            logger.warning("SHOPIFY_WEBHOOK_SECRET not set, all webhooks will be rejected")
        if not ledger.enabled:
            logger.warning("REDIS_URL not set, redelivered webhooks will be reconciled again")
        logger.info(
            "Rip & ship service starting: shop=%s location=%s tag=%r",
            settings.shop_url,
            settings.location_id,
            settings.marker_tag,
        )
        yield
        client.close()

    app = FastAPI(
        title="Rip & Ship Inventory Sync",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.processor = OrderProcessor(settings, client, ledger)

    register_webhook_routes(app)
    return app


def main() -> None:
    settings = Settings()
    configure_logging(settings.log_level)
    app = create_app(settings)
    uvicorn.run(
        app,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "3000")),
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

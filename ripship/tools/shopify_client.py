"""Shopify Admin REST API client.

Wraps the handful of REST endpoints the rip & ship flow needs:
product metafields, variants, inventory levels and order tags.
Every call is a single attempt; failures raise ShopifyAPIError and are
terminal for the current webhook delivery.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ripship.config import Settings
from ripship.models import Variant

logger = logging.getLogger(__name__)


class ShopifyAPIError(Exception):
    """A Shopify Admin API call failed (transport error, non-2xx status or unreadable body)."""

    def __init__(self, method: str, path: str, status_code: int | None = None, detail: str = ""):
        self.method = method
        self.path = path
        self.status_code = status_code
        self.detail = detail
        status = status_code if status_code is not None else "transport"
        super().__init__(f"Shopify API error: {method} {path} ({status})")

    @property
    def may_have_applied(self) -> bool:
        """True when Shopify may have acted on the request despite the error.

        No response at all (timeout, dropped connection) or a 2xx with an
        unreadable body.
        """
        return self.status_code is None or 200 <= self.status_code < 300


class ShopifyAdminClient:
    """Thin synchronous client over httpx for the Admin REST API."""

    def __init__(self, settings: Settings, transport: httpx.BaseTransport | None = None):
        self.settings = settings
        self._http = httpx.Client(
            base_url=settings.api_base_url,
            headers={
                "X-Shopify-Access-Token": settings.access_token,
                "Content-Type": "application/json",
            },
            timeout=settings.http_timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> ShopifyAdminClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict:
        try:
            response = self._http.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            logger.error("Shopify API transport error: %s %s (%s)", method, path, type(e).__name__)
            raise ShopifyAPIError(method, path, detail=str(e)) from e

        if response.is_error:
            logger.error(
                "Shopify API error: %s %s -> %d %s",
                method,
                path,
                response.status_code,
                response.text[:500],
            )
            raise ShopifyAPIError(method, path, response.status_code, response.text[:500])

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            logger.error(
                "Shopify API returned non-JSON body: %s %s -> %d",
                method,
                path,
                response.status_code,
            )
            raise ShopifyAPIError(method, path, response.status_code, "Invalid JSON response") from e

    # ── Products / variants ─────────────────────────────────────────────

    def get_master_sku(self, product_id: int) -> str | None:
        """Return the product's master-SKU metafield value, or None if unset."""
        data = self._request(
            "GET",
            f"/products/{product_id}/metafields.json",
            params={
                "namespace": self.settings.metafield_namespace,
                "key": self.settings.metafield_key,
            },
        )
        metafields = data.get("metafields") or []
        if not metafields:
            return None
        value = metafields[0].get("value")
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    def get_variant(self, variant_id: int) -> Variant:
        data = self._request("GET", f"/variants/{variant_id}.json")
        return Variant.model_validate(data["variant"])

    def find_variant_by_sku(self, sku: str) -> Variant | None:
        """Return the first variant with this SKU, or None."""
        data = self._request("GET", "/variants.json", params={"sku": sku})
        variants = data.get("variants") or []
        if not variants:
            return None
        return Variant.model_validate(variants[0])

    # ── Inventory ──────────────────────────────────────────────────────

    def get_available(self, inventory_item_id: int) -> int | None:
        """Available count at the configured location (None if untracked)."""
        data = self._request(
            "GET",
            "/inventory_levels.json",
            params={
                "inventory_item_ids": inventory_item_id,
                "location_ids": self.settings.location_id,
            },
        )
        levels = data.get("inventory_levels") or []
        if not levels:
            return None
        return levels[0].get("available")

    def adjust_available(self, inventory_item_id: int, delta: int) -> dict:
        """Apply a signed relative adjustment at the configured location."""
        data = self._request(
            "POST",
            "/inventory_levels/adjust.json",
            json={
                "location_id": self.settings.location_id,
                "inventory_item_id": inventory_item_id,
                "available_adjustment": delta,
            },
        )
        logger.info("Adjusted inventory_item_id=%s by %+d", inventory_item_id, delta)
        return data.get("inventory_level") or {}

    # ── Orders ─────────────────────────────────────────────────────────

    def get_order_tags(self, order_id: int) -> str | None:
        """Current tag string of an order, or None if the order was not returned."""
        data = self._request("GET", f"/orders/{order_id}.json", params={"fields": "id,tags"})
        order = data.get("order")
        if order is None:
            return None
        return order.get("tags") or ""

    def update_order_tags(self, order_id: int, tags: str) -> None:
        self._request(
            "PUT",
            f"/orders/{order_id}.json",
            json={"order": {"id": order_id, "tags": tags}},
        )

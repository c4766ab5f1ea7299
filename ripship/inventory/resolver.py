"""Rip & ship detection and inventory-item resolution for line items."""

from __future__ import annotations

import logging

from ripship.models import LineItem, ReconciliationTarget
from ripship.tools.shopify_client import ShopifyAdminClient

logger = logging.getLogger(__name__)


def is_actionable(line: LineItem) -> bool:
    """A line item needs product id, variant id and a positive quantity."""
    return bool(line.product_id and line.variant_id and line.quantity and line.quantity > 0)


class RipShipResolver:
    """Finds rip & ship line items and their master inventory item."""

    def __init__(self, client: ShopifyAdminClient):
        self.client = client

    def detect(self, line: LineItem) -> str | None:
        """Return the master SKU if this line item is a rip & ship product."""
        if not is_actionable(line):
            logger.debug("Skipping incomplete line item %s", line.id)
            return None
        master_sku = self.client.get_master_sku(line.product_id)
        if master_sku:
            logger.info(
                "Rip & ship detected: line=%s product=%s master_sku=%s",
                line.id,
                line.product_id,
                master_sku,
            )
        return master_sku

    def resolve(self, line: LineItem, master_sku: str) -> ReconciliationTarget | None:
        """Look up sold and master inventory items.

        Returns None when no variant carries the master SKU; the caller
        skips this item and moves on.
        """
        sold_variant = self.client.get_variant(line.variant_id)

        master_variant = self.client.find_variant_by_sku(master_sku)
        if master_variant is None:
            logger.warning(
                "Master variant not found for sku=%s (line=%s), skipping item",
                master_sku,
                line.id,
            )
            return None

        return ReconciliationTarget(
            sold_inventory_item_id=sold_variant.inventory_item_id,
            master_inventory_item_id=master_variant.inventory_item_id,
            quantity=line.quantity,
            master_sku=master_sku,
            line_item_id=line.id,
        )

"""Order tagging for reconciled orders."""

from __future__ import annotations

import logging

from ripship.tools.shopify_client import ShopifyAdminClient

logger = logging.getLogger(__name__)


def split_tags(tags: str | None) -> list[str]:
    if not tags:
        return []
    return [t.strip() for t in tags.split(",") if t.strip()]


def has_tag(tags: str | None, marker: str) -> bool:
    """Case-insensitive membership; Shopify treats tags that differ only in case as one."""
    wanted = marker.casefold()
    return any(t.casefold() == wanted for t in split_tags(tags))


def merge_tags(tags: str | None, marker: str) -> str:
    """Append marker to a comma-separated tag string unless already present.

    Existing tags keep their order and spelling; output is joined with ", ".
    """
    tag_list = split_tags(tags)
    if not has_tag(tags, marker):
        tag_list.append(marker)
    return ", ".join(tag_list)


class OrderTagger:
    def __init__(self, client: ShopifyAdminClient, marker: str):
        self.client = client
        self.marker = marker

    def tag(self, order_id: int, payload_tags: str | None = "") -> bool:
        """Add the marker tag to an order. Returns True if a write happened.

        Reads the live tag string so tags added after the webhook fired are
        kept; falls back to the payload's tags if the order isn't returned.
        """
        current = self.client.get_order_tags(order_id)
        if current is None:
            current = payload_tags or ""

        if has_tag(current, self.marker):
            logger.info("Order %s already tagged %r", order_id, self.marker)
            return False

        self.client.update_order_tags(order_id, merge_tags(current, self.marker))
        logger.info("Order %s tagged %r", order_id, self.marker)
        return True

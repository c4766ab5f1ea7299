"""Redelivery ledger: Redis-based per-line-item deduplication.

Shopify redelivers a webhook whenever it gets a non-2xx response, and
reversal + deduction are not safe to run twice. Each reconciled line item
is claimed before any inventory write.

Security contract:
- Key pattern: ripship:reconciled:{order_id}:{line_item_id}, 24h TTL
- Claim uses SET NX (atomic check-and-mark)
- A claim is released only if nothing was written for that item
- If Redis is down, falls back to allowing (fail-open for availability)
- No REDIS_URL configured -> ledger disabled, every claim succeeds
"""

from __future__ import annotations

import logging

import redis

logger = logging.getLogger(__name__)

_KEY_PREFIX = "ripship:reconciled"


class LineItemLedger:
    """Tracks which (order, line item) pairs have already been reconciled."""

    def __init__(self, redis_url: str | None, ttl_seconds: int = 86400):
        self.ttl_seconds = ttl_seconds
        self._redis = redis.from_url(redis_url, decode_responses=True) if redis_url else None

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    @staticmethod
    def key(order_id: int, line_item_id: int) -> str:
        return f"{_KEY_PREFIX}:{order_id}:{line_item_id}"

    def claim(self, order_id: int, line_item_id: int | None) -> bool:
        """Claim a line item for reconciliation.

        Returns:
            False if an earlier delivery already reconciled this item
        """
        if self._redis is None or not line_item_id:
            return True  # can't dedup, allow through

        key = self.key(order_id, line_item_id)
        try:
            was_set = self._redis.set(key, "1", nx=True, ex=self.ttl_seconds)
        except Exception:
            logger.warning(
                "Redis unavailable for reconciliation ledger, allowing %s",
                key,
                exc_info=True,
            )
            return True

        if not was_set:
            logger.info("Line item already reconciled, skipping: %s", key)
            return False
        return True

    def release(self, order_id: int, line_item_id: int | None) -> None:
        """Drop a claim so a redelivery can retry the item."""
        if self._redis is None or not line_item_id:
            return

        key = self.key(order_id, line_item_id)
        try:
            self._redis.delete(key)
        except Exception:
            logger.warning("Failed to release ledger claim: %s", key, exc_info=True)

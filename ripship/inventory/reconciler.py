"""Inventory reconciliation: restock the sold SKU, deduct from the master pool.

Contract:
- Reversal on the sold item is always exactly +quantity
- Master deduction = min(quantity, max(available, 0)); untracked (null) counts as 0
- Master stock is never pushed below zero by this adjustment
- No rollback: a failure after the reversal leaves the reversal in place
- A reversal whose outcome is unknown (timeout, dropped connection,
  unreadable 2xx) counts as applied

The read-then-adjust on the master item is not atomic; a concurrent
adjustment between the two calls can still take the master below zero.
"""

from __future__ import annotations

import logging

from ripship.models import ReconciliationResult, ReconciliationTarget
from ripship.tools.shopify_client import ShopifyAdminClient, ShopifyAPIError

logger = logging.getLogger(__name__)


class ReconciliationError(Exception):
    """A Shopify call failed while reconciling one line item."""

    def __init__(self, target: ReconciliationTarget, reversal_applied: bool, cause: ShopifyAPIError):
        self.target = target
        self.reversal_applied = reversal_applied
        self.cause = cause
        super().__init__(
            f"Reconciliation failed for master_sku={target.master_sku} "
            f"(reversal_applied={reversal_applied}): {cause}"
        )


def clamp_deduction(quantity: int, available: int | None) -> int:
    """How much can be taken from the master pool without going negative."""
    return min(quantity, max(available or 0, 0))


class InventoryReconciler:
    def __init__(self, client: ShopifyAdminClient):
        self.client = client

    def reconcile(self, target: ReconciliationTarget) -> ReconciliationResult:
        reversal_applied = False
        try:
            # 1. Undo Shopify's automatic deduction on the sold SKU
            try:
                self.client.adjust_available(target.sold_inventory_item_id, target.quantity)
            except ShopifyAPIError as e:
                # A timeout or unreadable 2xx may still have been applied
                reversal_applied = e.may_have_applied
                raise
            reversal_applied = True

            # 2. Deduct from master, never below zero
            available = self.client.get_available(target.master_inventory_item_id)
            deduction = clamp_deduction(target.quantity, available)
            if deduction > 0:
                self.client.adjust_available(target.master_inventory_item_id, -deduction)
        except ShopifyAPIError as e:
            raise ReconciliationError(target, reversal_applied, e) from e

        result = ReconciliationResult(
            target=target,
            master_available=available or 0,
            deducted=deduction,
        )
        if result.short_by:
            logger.warning(
                "Master stock insufficient for sku=%s: wanted=%d available=%s deducted=%d",
                target.master_sku,
                target.quantity,
                available,
                deduction,
            )
        else:
            logger.info(
                "Reconciled sku=%s: +%d to item %s, -%d from master item %s",
                target.master_sku,
                target.quantity,
                target.sold_inventory_item_id,
                deduction,
                target.master_inventory_item_id,
            )
        return result

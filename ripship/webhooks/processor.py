"""Order processing: resolve and reconcile each line item, then tag.

Line items are handled strictly in order, one at a time. A Shopify failure
on item N propagates immediately: items before N stay reconciled, items
after N are not touched in this delivery.
"""

from __future__ import annotations

import logging

from ripship.config import Settings
from ripship.inventory.reconciler import InventoryReconciler, ReconciliationError
from ripship.inventory.resolver import RipShipResolver
from ripship.inventory.tagger import OrderTagger
from ripship.models import Order, ProcessingOutcome
from ripship.tools.shopify_client import ShopifyAdminClient
from ripship.webhooks.idempotency import LineItemLedger

logger = logging.getLogger(__name__)


class OrderProcessor:
    def __init__(self, settings: Settings, client: ShopifyAdminClient, ledger: LineItemLedger):
        self.settings = settings
        self.ledger = ledger
        self.resolver = RipShipResolver(client)
        self.reconciler = InventoryReconciler(client)
        self.tagger = OrderTagger(client, settings.marker_tag)

    def reconcile_order(self, order: Order) -> ProcessingOutcome:
        outcome = ProcessingOutcome(order_id=order.id)

        for line in order.line_items:
            master_sku = self.resolver.detect(line)
            if not master_sku:
                continue

            # Detection alone marks the order for tagging
            outcome.detected = True

            if not self.ledger.claim(order.id, line.id):
                outcome.skipped.append(line.id)
                continue

            try:
                target = self.resolver.resolve(line, master_sku)
            except Exception:
                self.ledger.release(order.id, line.id)
                raise

            if target is None:
                self.ledger.release(order.id, line.id)
                outcome.skipped.append(line.id)
                continue

            try:
                outcome.results.append(self.reconciler.reconcile(target))
            except ReconciliationError as e:
                if e.reversal_applied:
                    # Keep the claim: a redelivery must not restock the sold item again
                    logger.error(
                        "Order %s line %s restocked but master %s not deducted: %s",
                        order.id,
                        line.id,
                        target.master_sku,
                        e.cause,
                    )
                else:
                    self.ledger.release(order.id, line.id)
                raise

        return outcome

    def tag_order(self, order: Order, outcome: ProcessingOutcome) -> None:
        if not outcome.detected:
            return
        outcome.tagged = self.tagger.tag(order.id, order.tags)

    def process(self, order: Order) -> ProcessingOutcome:
        outcome = self.reconcile_order(order)
        self.tag_order(order, outcome)
        return outcome

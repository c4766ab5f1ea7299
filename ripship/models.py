"""Data models for orders, variants and reconciliation results.

Webhook payloads are validated with pydantic (unknown fields ignored);
internal results are plain dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class LineItem(BaseModel):
    """A single line of an orders/create payload."""

    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    product_id: int | None = None
    variant_id: int | None = None
    quantity: int | None = None
    sku: str | None = None


class Order(BaseModel):
    """The subset of a Shopify order that reconciliation needs."""

    model_config = ConfigDict(extra="ignore")

    id: int
    tags: str | None = ""
    line_items: list[LineItem] = Field(default_factory=list)


class Variant(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    sku: str | None = None
    inventory_item_id: int


class WebhookStage(str, Enum):
    """Handler lifecycle stages, in order."""
    RECEIVING_BODY = "receiving_body"
    VERIFYING = "verifying"
    DECODING = "decoding"
    RECONCILING = "reconciling"
    TAGGING = "tagging"
    RESPONDED = "responded"


@dataclass(frozen=True)
class ReconciliationTarget:
    """A detected rip & ship line item with both inventory items resolved."""

    sold_inventory_item_id: int
    master_inventory_item_id: int
    quantity: int
    master_sku: str
    line_item_id: int | None = None


@dataclass(frozen=True)
class ReconciliationResult:
    target: ReconciliationTarget
    master_available: int  # before deduction, null treated as 0
    deducted: int

    @property
    def short_by(self) -> int:
        return self.target.quantity - self.deducted


@dataclass
class ProcessingOutcome:
    """What one webhook delivery did to the store."""

    order_id: int
    detected: bool = False
    tagged: bool = False
    results: list[ReconciliationResult] = field(default_factory=list)
    skipped: list[int | None] = field(default_factory=list)  # line item ids

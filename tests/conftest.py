"""Shared fixtures: settings, an in-memory Shopify store, and a ledger double."""

from __future__ import annotations

import pytest

from ripship.config import Settings
from ripship.models import Variant
from ripship.tools.shopify_client import ShopifyAPIError


class FakeShopifyClient:
    """In-memory stand-in for ShopifyAdminClient that records every call."""

    def __init__(self) -> None:
        self.master_skus: dict[int, str] = {}      # product_id -> master sku
        self.variants: dict[int, Variant] = {}     # variant_id -> variant
        self.available: dict[int, int | None] = {}  # inventory_item_id -> available
        self.order_tags: dict[int, str] = {}       # order_id -> tags
        self.calls: list[tuple] = []
        self.fail_on: dict[str, int] = {}  # method -> fail on the Nth call (1-based)
        self.fail_status: int | None = 503  # None simulates a timeout or dropped connection
        self.closed = False

    # Seed helpers
    def add_rip_product(self, product_id: int, master_sku: str) -> None:
        self.master_skus[product_id] = master_sku

    def add_variant(self, variant_id: int, inventory_item_id: int, sku: str | None = None,
                    available: int | None = 0) -> None:
        self.variants[variant_id] = Variant(id=variant_id, sku=sku, inventory_item_id=inventory_item_id)
        self.available[inventory_item_id] = available

    def adjustments(self) -> list[tuple[int, int]]:
        return [(c[1], c[2]) for c in self.calls if c[0] == "adjust_available"]

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        count = sum(1 for c in self.calls if c[0] == name)
        if self.fail_on.get(name) == count:
            raise ShopifyAPIError("GET", f"/{name}", self.fail_status, "Service Unavailable")

    # ShopifyAdminClient interface
    def get_master_sku(self, product_id: int) -> str | None:
        self._record("get_master_sku", product_id)
        return self.master_skus.get(product_id)

    def get_variant(self, variant_id: int) -> Variant:
        self._record("get_variant", variant_id)
        return self.variants[variant_id]

    def find_variant_by_sku(self, sku: str) -> Variant | None:
        self._record("find_variant_by_sku", sku)
        for variant in self.variants.values():
            if variant.sku == sku:
                return variant
        return None

    def get_available(self, inventory_item_id: int) -> int | None:
        self._record("get_available", inventory_item_id)
        return self.available.get(inventory_item_id)

    def adjust_available(self, inventory_item_id: int, delta: int) -> dict:
        self._record("adjust_available", inventory_item_id, delta)
        current = self.available.get(inventory_item_id) or 0
        self.available[inventory_item_id] = current + delta
        return {"inventory_item_id": inventory_item_id, "available": current + delta}

    def get_order_tags(self, order_id: int) -> str | None:
        self._record("get_order_tags", order_id)
        return self.order_tags.get(order_id)

    def update_order_tags(self, order_id: int, tags: str) -> None:
        self._record("update_order_tags", order_id, tags)
        self.order_tags[order_id] = tags

    def close(self) -> None:
        self.closed = True


class FakeLedger:
    """LineItemLedger double backed by a set."""

    enabled = True

    def __init__(self) -> None:
        self.claimed: set[tuple[int, int]] = set()
        self.released: list[tuple[int, int | None]] = []

    def claim(self, order_id: int, line_item_id: int | None) -> bool:
        if not line_item_id:
            return True
        if (order_id, line_item_id) in self.claimed:
            return False
        self.claimed.add((order_id, line_item_id))
        return True

    def release(self, order_id: int, line_item_id: int | None) -> None:
        self.released.append((order_id, line_item_id))
        self.claimed.discard((order_id, line_item_id))


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        webhook_secret="shopify-test-secret",
        shop_url="test-store.myshopify.com",
        access_token="shpat_test",
        location_id=777,
    )


@pytest.fixture()
def fake_client() -> FakeShopifyClient:
    return FakeShopifyClient()


@pytest.fixture()
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture()
def rip_store(fake_client: FakeShopifyClient) -> FakeShopifyClient:
    """Product 1 is rip & ship for MASTER-1; variant 11 -> item 100, master -> item 200 (5 available)."""
    fake_client.add_rip_product(1, "MASTER-1")
    fake_client.add_variant(11, inventory_item_id=100, sku="RIP-1", available=0)
    fake_client.add_variant(99, inventory_item_id=200, sku="MASTER-1", available=5)
    # Plain product, no metafield
    fake_client.add_variant(22, inventory_item_id=300, sku="PLAIN-1", available=10)
    fake_client.order_tags[5001] = "vip, wholesale"
    return fake_client

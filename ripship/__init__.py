"""Rip & ship inventory reconciliation for Shopify orders."""

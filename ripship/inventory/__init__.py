"""Rip & ship detection, inventory reconciliation and order tagging."""

"""Webhook inbound system.

Receives Shopify orders/create webhooks.
Each delivery is signature-verified, decoded, reconciled line by line and tagged.
"""

"""Webhook signature verification: constant-time HMAC.

Security contract:
- Verification uses hmac.compare_digest() on bytes (constant-time, no timing attacks)
- The exact raw body is hashed; nothing is parsed or re-serialized first
- Verification failure -> 401 immediately, no payload processing
- Missing secret or missing/malformed header -> verification fails (fail-closed)
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-shopify-hmac-sha256"


def compute_signature(body: bytes, secret: str) -> str:
    """base64(HMAC-SHA256(secret, body)), the value Shopify sends."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_shopify(body: bytes, signature_header: str | None, secret: str) -> bool:
    """Verify Shopify webhook HMAC-SHA256 signature.

    Shopify sends: X-Shopify-Hmac-SHA256 header (base64-encoded HMAC-SHA256).

    Args:
        body: Raw request body bytes
        signature_header: Value of X-Shopify-Hmac-SHA256 header
        secret: Shared webhook secret

    Returns:
        True if signature is valid
    """
    if not secret:
        logger.warning("SHOPIFY_WEBHOOK_SECRET not set, rejecting webhook")
        return False
    if not signature_header or not isinstance(signature_header, str):
        return False

    try:
        provided = signature_header.encode("ascii")
    except UnicodeEncodeError:
        return False

    expected = compute_signature(body, secret).encode("ascii")
    return hmac.compare_digest(expected, provided)


def verify_webhook(body: bytes, headers: dict[str, str], secret: str) -> bool:
    """Verify a webhook given lowercase-keyed request headers."""
    return verify_shopify(body, headers.get(SIGNATURE_HEADER), secret)

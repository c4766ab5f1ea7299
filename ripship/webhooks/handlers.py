"""Webhook HTTP handlers: FastAPI route handlers for orders/create.

Each delivery:
1. Reads raw body (needed for HMAC verification)
2. Verifies signature against the exact raw bytes
3. Decodes the order
4. Resolves and reconciles rip & ship line items, in order
5. Tags the order if any rip & ship item was detected
6. Returns 200 once everything above has completed

Security contract:
- Never return error details to webhook caller (info disclosure)
- Return 401 only for signature failures
- Return 500 for decode and Shopify failures (Shopify redelivers)
- Log all webhook activity for audit trail
"""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from ripship.models import WebhookStage
from ripship.webhooks.payload import PayloadDecodeError, decode_order
from ripship.webhooks.processor import OrderProcessor
from ripship.webhooks.verification import verify_webhook

logger = logging.getLogger(__name__)

ORDERS_CREATE_PATH = "/webhooks/orders/create"
ORDERS_CREATE_TOPIC = "orders/create"

# Webhook receive counter for monitoring (simple in-memory, per process)
_webhook_counts: dict[str, int] = {}


def _log_webhook(topic: str, order_id: object, stage: WebhookStage, status: str) -> None:
    """Audit log for webhook activity."""
    _webhook_counts[status] = _webhook_counts.get(status, 0) + 1
    logger.info(
        "WEBHOOK_AUDIT topic=%s order=%s stage=%s status=%s count=%d",
        topic,
        order_id,
        stage.value,
        status,
        _webhook_counts[status],
    )


async def _handle_order_created(request: Request) -> JSONResponse:
    """Handle one orders/create delivery.

    Returns 200 on success, 401 on signature failure, 500 on any other error.
    """
    start = time.time()
    settings = request.app.state.settings
    processor: OrderProcessor = request.app.state.processor

    stage = WebhookStage.RECEIVING_BODY
    body = await request.body()
    headers = {k.lower(): v for k, v in request.headers.items()}
    topic = headers.get("x-shopify-topic", "")

    stage = WebhookStage.VERIFYING
    if not verify_webhook(body, headers, settings.webhook_secret):
        _log_webhook(topic or "unknown", "unknown", stage, "signature_failed")
        return JSONResponse({"status": "unauthorized"}, status_code=401)

    if topic and topic != ORDERS_CREATE_TOPIC:
        _log_webhook(topic, "unknown", stage, "ignored_topic")
        return JSONResponse({"status": "ignored"}, status_code=200)

    stage = WebhookStage.DECODING
    try:
        order = decode_order(body)
    except PayloadDecodeError:
        logger.warning("Undecodable orders/create body (%d bytes)", len(body), exc_info=True)
        _log_webhook(topic or ORDERS_CREATE_TOPIC, "unknown", stage, "invalid_payload")
        return JSONResponse({"status": "error"}, status_code=500)

    logger.info("Received order %s with %d line items", order.id, len(order.line_items))

    try:
        stage = WebhookStage.RECONCILING
        outcome = await run_in_threadpool(processor.reconcile_order, order)

        stage = WebhookStage.TAGGING
        await run_in_threadpool(processor.tag_order, order, outcome)
    except Exception:
        logger.exception("Failed to process order %s during %s", order.id, stage.value)
        _log_webhook(topic or ORDERS_CREATE_TOPIC, order.id, stage, "failed")
        return JSONResponse({"status": "error"}, status_code=500)

    stage = WebhookStage.RESPONDED
    elapsed_ms = (time.time() - start) * 1000
    logger.debug("Webhook processed in %.1fms: order %s", elapsed_ms, order.id)

    if not outcome.detected:
        _log_webhook(topic or ORDERS_CREATE_TOPIC, order.id, stage, "no_rip_items")
        return JSONResponse({"status": "ok", "detail": "No rip items"}, status_code=200)

    _log_webhook(topic or ORDERS_CREATE_TOPIC, order.id, stage, "processed")
    return JSONResponse(
        {
            "status": "ok",
            "reconciled": len(outcome.results),
            "skipped": len(outcome.skipped),
            "tagged": outcome.tagged,
        },
        status_code=200,
    )


def register_webhook_routes(app: FastAPI) -> None:
    """Register webhook endpoint routes on the FastAPI app.

    Expects app.state.settings and app.state.processor to be set.
    """

    @app.post(ORDERS_CREATE_PATH)
    async def orders_create_webhook(request: Request):
        """Receive Shopify orders/create webhooks (signature-verified)."""
        return await _handle_order_created(request)

    @app.api_route(ORDERS_CREATE_PATH, methods=["GET", "PUT", "PATCH", "DELETE"])
    async def orders_create_method_not_allowed():
        return JSONResponse(
            {"error": "Method not allowed"},
            status_code=405,
            headers={"Allow": "POST"},
        )

    @app.get("/webhooks/status")
    async def webhook_status():
        """Webhook receive counts by status."""
        return {"counts": dict(_webhook_counts)}

    @app.get("/", response_class=PlainTextResponse)
    async def liveness():
        return "Rip & Ship webhook running."

    logger.info("Webhook routes registered: %s", ORDERS_CREATE_PATH)

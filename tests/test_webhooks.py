"""Handler integration tests: full request flow through the FastAPI app."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json

import pytest
from fastapi.testclient import TestClient

from ripship.serve import create_app

SECRET = "shopify-test-secret"
PATH = "/webhooks/orders/create"


def _sign(body: bytes) -> str:
    digest = hmac.new(SECRET.encode(), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def _order_body(*lines: dict, tags: str = "vip, wholesale") -> bytes:
    return json.dumps({"id": 5001, "tags": tags, "line_items": list(lines)}).encode()


RIP_LINE = {"id": 1, "product_id": 1, "variant_id": 11, "quantity": 3}
PLAIN_LINE = {"id": 2, "product_id": 2, "variant_id": 22, "quantity": 1}


@pytest.fixture()
def client(settings, rip_store, ledger):
    app = create_app(settings, client=rip_store, ledger=ledger)
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


def _post(client: TestClient, body: bytes, signature: str | None = None, topic: str | None = "orders/create"):
    headers = {"Content-Type": "application/json"}
    if signature is not None:
        headers["X-Shopify-Hmac-SHA256"] = signature
    if topic is not None:
        headers["X-Shopify-Topic"] = topic
    return client.post(PATH, content=body, headers=headers)


# ── Authentication ────────────────────────────────────────────────────────


class TestAuthentication:
    def test_bad_signature_401_no_side_effects(self, client, rip_store):
        resp = _post(client, _order_body(RIP_LINE), signature="bogus")
        assert resp.status_code == 401
        assert resp.json() == {"status": "unauthorized"}
        assert rip_store.calls == []

    def test_missing_signature_401(self, client, rip_store):
        resp = _post(client, _order_body(RIP_LINE))
        assert resp.status_code == 401
        assert rip_store.calls == []

    def test_unparseable_body_with_bad_signature_is_401(self, client):
        """Signature check comes before decoding."""
        resp = _post(client, b"{not json", signature="bogus")
        assert resp.status_code == 401

    def test_missing_secret_rejects_everything(self, settings, rip_store, ledger):
        app = create_app(settings.model_copy(update={"webhook_secret": ""}), client=rip_store, ledger=ledger)
        body = _order_body(RIP_LINE)
        with TestClient(app) as c:
            resp = _post(c, body, signature=_sign(body))
        assert resp.status_code == 401


# ── Processing ────────────────────────────────────────────────────────────


class TestProcessing:
    def test_rip_order_processed(self, client, rip_store):
        body = _order_body(RIP_LINE)
        resp = _post(client, body, signature=_sign(body))

        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "reconciled": 1, "skipped": 0, "tagged": True}
        assert rip_store.adjustments() == [(100, 3), (200, -3)]
        assert rip_store.order_tags[5001] == "vip, wholesale, RIP & SHIP"

    def test_plain_order_acknowledged(self, client, rip_store):
        body = _order_body(PLAIN_LINE)
        resp = _post(client, body, signature=_sign(body))
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "detail": "No rip items"}
        assert rip_store.adjustments() == []

    def test_redelivery_is_harmless(self, client, rip_store):
        body = _order_body(RIP_LINE)
        _post(client, body, signature=_sign(body))
        rip_store.calls.clear()

        resp = _post(client, body, signature=_sign(body))
        assert resp.status_code == 200
        assert resp.json()["skipped"] == 1
        assert resp.json()["tagged"] is False
        assert rip_store.adjustments() == []

    def test_topic_header_optional(self, client, rip_store):
        body = _order_body(RIP_LINE)
        resp = _post(client, body, signature=_sign(body), topic=None)
        assert resp.status_code == 200
        assert rip_store.adjustments() == [(100, 3), (200, -3)]

    def test_other_topic_ignored(self, client, rip_store):
        body = _order_body(RIP_LINE)
        resp = _post(client, body, signature=_sign(body), topic="orders/updated")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ignored"}
        assert rip_store.calls == []


# ── Failures ──────────────────────────────────────────────────────────────


class TestFailures:
    def test_invalid_json_500(self, client, rip_store):
        body = b"{not json"
        resp = _post(client, body, signature=_sign(body))
        assert resp.status_code == 500
        assert resp.json() == {"status": "error"}
        assert rip_store.calls == []

    def test_shopify_failure_500_without_details(self, client, rip_store):
        rip_store.fail_on["get_available"] = 1
        body = _order_body(RIP_LINE)
        resp = _post(client, body, signature=_sign(body))
        assert resp.status_code == 500
        assert resp.json() == {"status": "error"}
        assert not any(c[0] == "update_order_tags" for c in rip_store.calls)

    def test_tagging_failure_500(self, client, rip_store):
        rip_store.fail_on["update_order_tags"] = 1
        body = _order_body(RIP_LINE)
        resp = _post(client, body, signature=_sign(body))
        assert resp.status_code == 500


# ── Other routes ──────────────────────────────────────────────────────────


class TestRoutes:
    @pytest.mark.parametrize("method", ["get", "put", "delete"])
    def test_non_post_405(self, client, method):
        resp = getattr(client, method)(PATH)
        assert resp.status_code == 405
        assert resp.json() == {"error": "Method not allowed"}

    def test_liveness(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.text == "Rip & Ship webhook running."

    def test_status_counts(self, client):
        _post(client, _order_body(RIP_LINE), signature="bogus")
        counts = client.get("/webhooks/status").json()["counts"]
        assert counts.get("signature_failed", 0) >= 1

    def test_lifespan_closes_client(self, settings, rip_store, ledger):
        app = create_app(settings, client=rip_store, ledger=ledger)
        with TestClient(app):
            assert rip_store.closed is False
        assert rip_store.closed is True

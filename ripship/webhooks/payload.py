"""Decode a verified orders/create body into an Order."""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from ripship.models import Order

logger = logging.getLogger(__name__)


class PayloadDecodeError(Exception):
    """The webhook body is not a valid order document."""


def decode_order(body: bytes) -> Order:
    """Parse raw (already signature-verified) bytes into an Order.

    Raises:
        PayloadDecodeError: invalid UTF-8, invalid JSON, non-object JSON,
            or an object that does not validate as an order.
    """
    try:
        payload = json.loads(body.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise PayloadDecodeError(f"Invalid JSON body: {e}") from e

    if not isinstance(payload, dict):
        raise PayloadDecodeError(f"Expected a JSON object, got {type(payload).__name__}")

    try:
        return Order.model_validate(payload)
    except ValidationError as e:
        raise PayloadDecodeError(f"Invalid order payload: {e.error_count()} validation error(s)") from e

"""Normalization of Stripe webhook events.

Provider events are reduced to a ``NormalizedEvent`` carrying the order id
and one of three outcomes. Only ``Paid`` and ``Refunded`` mutate orders;
``Failed`` is reported for logging and the order stays as it is.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import stripe

from vetsphere import stripe_service
from vetsphere.config import Settings
from vetsphere.errors import InvalidRequest, InvalidSignature

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    PAID = "Paid"
    FAILED = "Failed"
    REFUNDED = "Refunded"


@dataclass(frozen=True)
class NormalizedEvent:
    order_id: str
    outcome: Outcome


EVENT_OUTCOMES = {
    "payment_intent.succeeded": Outcome.PAID,
    "payment_intent.payment_failed": Outcome.FAILED,
    "charge.refunded": Outcome.REFUNDED,
}


def parse_payload(payload: bytes) -> dict:
    try:
        event = json.loads(payload)
    except ValueError as e:
        raise InvalidRequest("Invalid payload") from e
    if not isinstance(event, dict):
        raise InvalidRequest("Invalid payload")
    return event


def verify_event(settings: Settings, payload: bytes, signature: Optional[str]) -> dict:
    """Check the Stripe signature over the raw body and decode the event."""
    if not signature:
        raise InvalidSignature("Missing stripe-signature header")

    try:
        stripe_service.verify_webhook_signature(settings, payload.decode("utf-8"), signature)
    except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
        logger.error("Signature verification failed: %s", e)
        raise InvalidSignature("Invalid signature") from e

    return parse_payload(payload)


def _field(container, key):
    return container.get(key) if isinstance(container, dict) else None


def normalize_event(event: dict) -> Optional[NormalizedEvent]:
    event_type = event.get("type")
    outcome = EVENT_OUTCOMES.get(event_type) if isinstance(event_type, str) else None
    if outcome is None:
        logger.info("Unhandled event type: %s", event_type)
        return None

    order_id = _field(_field(_field(event.get("data"), "object"), "metadata"), "orderId")
    if not order_id or not isinstance(order_id, str):
        logger.warning("Dropping %s event %s without orderId metadata", event_type, event.get("id"))
        return None

    if outcome == Outcome.FAILED:
        logger.info("Payment failed for order: %s", order_id)

    return NormalizedEvent(order_id=order_id, outcome=outcome)

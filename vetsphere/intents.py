"""Payment intent issuing for Stripe and Airwallex.

Both providers share the same order checks: the order must exist and
must not already be paid, then the requested amount must match the stored
total within one cent. Nothing is written locally, the intent only lives
on the provider side.
"""

import logging
from typing import Optional

import httpx
import stripe
from sqlalchemy.orm import Session

from vetsphere import airwallex_service, stripe_service
from vetsphere.config import Settings
from vetsphere.errors import (
    AlreadyPaid,
    AmountMismatch,
    InvalidRequest,
    NotConfigured,
    NotFound,
    UpstreamProviderError,
)
from vetsphere.models import Order, OrderStatus

logger = logging.getLogger(__name__)

AMOUNT_TOLERANCE = 0.01
PAID_STATUSES = {OrderStatus.PAID.value, OrderStatus.COMPLETED.value}


def validate_order(db: Session, order_id: Optional[str], amount: Optional[float]) -> Order:
    if not order_id or not amount:
        raise InvalidRequest("Missing required fields: orderId and amount")

    order = db.get(Order, order_id)
    if order is None:
        raise NotFound(order_id)

    if order.status in PAID_STATUSES:
        raise AlreadyPaid(order_id)

    if abs(order.total_amount - amount) > AMOUNT_TOLERANCE:
        raise AmountMismatch(order.total_amount, amount)

    return order


def issue_stripe_intent(db: Session, settings: Settings, order_id: Optional[str],
                        amount: Optional[float], currency: Optional[str] = None) -> dict:
    if not settings.stripe_configured:
        raise NotConfigured("Stripe not configured. Please add a real STRIPE_SECRET_KEY")

    validate_order(db, order_id, amount)

    try:
        intent = stripe_service.create_payment_intent(
            settings, amount, currency.lower() if currency else "cny", order_id
        )
    except stripe.StripeError as e:
        logger.error("Stripe PaymentIntent error for order %s: %s", order_id, e)
        raise UpstreamProviderError(
            "Payment initialization failed",
            details=getattr(e, "json_body", None) or str(e),
        ) from e

    logger.info("Stripe intent %s created for order %s", intent.id, order_id)
    return {"status": "success", "clientSecret": intent.client_secret, "id": intent.id}


def issue_airwallex_intent(db: Session, settings: Settings, order_id: Optional[str],
                           amount: Optional[float], currency: Optional[str] = None,
                           description: Optional[str] = None,
                           customer: Optional[dict] = None) -> dict:
    if not settings.airwallex_configured:
        raise NotConfigured("Airwallex not configured. Please add AIRWALLEX_CLIENT_ID and AIRWALLEX_API_KEY")

    validate_order(db, order_id, amount)

    try:
        intent = airwallex_service.create_payment_intent(
            settings,
            amount,
            currency or "CNY",
            order_id,
            description or f"VetSphere Order {order_id}",
            customer or {},
        )
    except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as e:
        details = airwallex_service.error_details(e)
        logger.error("Airwallex error for order %s: %s", order_id, details)
        raise UpstreamProviderError("Failed to initiate payment", details=details) from e

    logger.info("Airwallex intent %s created for order %s", intent.get("id"), order_id)
    return {
        "status": "success",
        "intent_id": intent.get("id"),
        "client_secret": intent.get("client_secret"),
        "amount": intent.get("amount"),
        "currency": intent.get("currency"),
    }

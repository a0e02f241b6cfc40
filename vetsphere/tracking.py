"""Shipment tracking timelines.

Orders without recorded tracking events get a synthetic history derived
from their status and creation time, so every order shows at least an
``order_placed`` step.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from vetsphere.errors import NotFound
from vetsphere.models import Order, OrderStatus, OrderTrackingEvent

logger = logging.getLogger(__name__)

DEFAULT_CARRIER = "Standard Shipping"

PAID_OR_LATER = {
    OrderStatus.PAID.value,
    OrderStatus.SHIPPED.value,
    OrderStatus.COMPLETED.value,
    OrderStatus.REFUNDED.value,
}
SHIPPED_OR_LATER = {OrderStatus.SHIPPED.value, OrderStatus.COMPLETED.value}


def tracking_status(order_status: str) -> str:
    if order_status == OrderStatus.COMPLETED.value:
        return "delivered"
    if order_status == OrderStatus.SHIPPED.value:
        return "in_transit"
    return "pending"


def order_status_for_event(event_status: str) -> OrderStatus:
    if event_status in ("shipped", "in_transit"):
        return OrderStatus.SHIPPED
    if event_status == "delivered":
        return OrderStatus.COMPLETED
    return OrderStatus.PENDING


def _event(event_id: str, status: str, location: str, description: str, timestamp: datetime) -> dict:
    return {
        "id": event_id,
        "status": status,
        "location": location,
        "description": description,
        "timestamp": timestamp.isoformat(),
    }


def synthesize_events(order: Order) -> list:
    """Derive a 1-4 step history from the order status, newest first."""
    placed = order.created_at
    events = [_event("evt-1", "order_placed", "", "Order placed successfully", placed)]

    if order.status in PAID_OR_LATER:
        events.append(_event("evt-2", "payment_confirmed", "", "Payment confirmed",
                             placed + timedelta(minutes=5)))

    if order.status in SHIPPED_OR_LATER:
        events.append(_event("evt-3", "shipped", "Warehouse", "Package shipped from warehouse",
                             placed + timedelta(days=1)))

    if order.status == OrderStatus.COMPLETED.value:
        events.append(_event("evt-4", "delivered", order.shipping_address or "Destination",
                             "Package delivered", placed + timedelta(days=3)))

    events.reverse()
    return events


def get_tracking_info(db: Session, order_id: str) -> dict:
    order = db.get(Order, order_id)
    if order is None:
        raise NotFound(order_id)

    recorded = (
        db.query(OrderTrackingEvent)
        .filter(OrderTrackingEvent.order_id == order_id)
        .order_by(OrderTrackingEvent.created_at.desc(), OrderTrackingEvent.id.desc())
        .all()
    )
    events = [
        _event(str(e.id), e.status, e.location or "", e.description, e.created_at)
        for e in recorded
    ]

    return {
        "orderId": order_id,
        "carrier": order.shipping_carrier or DEFAULT_CARRIER,
        "trackingNumber": order.tracking_number or "",
        "status": tracking_status(order.status),
        "estimatedDelivery": order.estimated_delivery or None,
        "events": events or synthesize_events(order),
    }


def add_tracking_event(db: Session, order_id: str, status: Optional[str] = None,
                       description: Optional[str] = None, location: Optional[str] = None,
                       tracking_number: Optional[str] = None, carrier: Optional[str] = None,
                       estimated_delivery: Optional[str] = None) -> None:
    order = db.get(Order, order_id)
    if order is None:
        raise NotFound(order_id)

    if tracking_number:
        order.tracking_number = tracking_number
    if carrier:
        order.shipping_carrier = carrier
    if estimated_delivery:
        order.estimated_delivery = estimated_delivery

    if status and description:
        db.add(OrderTrackingEvent(
            order_id=order_id,
            status=status,
            location=location or "",
            description=description,
        ))
        order.status = order_status_for_event(status).value
        logger.info("Tracking event %s added to order %s, status now %s", status, order_id, order.status)

    db.commit()

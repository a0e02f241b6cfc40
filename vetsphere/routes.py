import logging
from typing import Any, List, Optional

import stripe
from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from vetsphere import ai, stripe_service
from vetsphere.auth import verify_token
from vetsphere.config import Settings, get_settings
from vetsphere.database import get_db
from vetsphere.errors import InvalidRequest, NotConfigured, UpstreamProviderError
from vetsphere.intents import issue_airwallex_intent, issue_stripe_intent
from vetsphere.orders import order_stats, recent_orders
from vetsphere.tracking import add_tracking_event, get_tracking_info

logger = logging.getLogger(__name__)

router = APIRouter()


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class StripeIntentRequest(WireModel):
    order_id: Optional[str] = Field(None, alias="orderId")
    amount: Optional[float] = None
    currency: Optional[str] = None


class AirwallexIntentRequest(StripeIntentRequest):
    description: Optional[str] = None
    customer: Optional[dict] = None


class CheckoutItem(WireModel):
    name: str
    price: float
    quantity: int = 1
    image_url: Optional[str] = Field(None, alias="imageUrl")


class CheckoutSessionRequest(WireModel):
    items: List[CheckoutItem] = []
    order_id: Optional[str] = Field(None, alias="orderId")
    return_url: Optional[str] = Field(None, alias="returnUrl")


class TrackingEventRequest(WireModel):
    status: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    tracking_number: Optional[str] = Field(None, alias="trackingNumber")
    carrier: Optional[str] = None
    estimated_delivery: Optional[str] = Field(None, alias="estimatedDelivery")


class ChatRequest(WireModel):
    messages: Any = None
    temperature: float = 0.7
    top_p: float = Field(0.95, alias="topP")
    response_format: Optional[str] = Field(None, alias="responseFormat")


@router.post("/payment/stripe/create-intent")
def create_stripe_intent(
    request: StripeIntentRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return issue_stripe_intent(db, settings, request.order_id, request.amount, request.currency)


@router.post("/payment/airwallex/create-intent")
def create_airwallex_intent(
    request: AirwallexIntentRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return issue_airwallex_intent(
        db,
        settings,
        request.order_id,
        request.amount,
        request.currency,
        request.description,
        request.customer,
    )


@router.post("/payment/stripe/create-checkout-session")
def create_checkout_session(
    request: CheckoutSessionRequest,
    settings: Settings = Depends(get_settings),
):
    if not settings.stripe_configured:
        raise NotConfigured("Stripe not configured. Please add a real STRIPE_SECRET_KEY")
    if not request.items or not request.order_id or not request.return_url:
        raise InvalidRequest("Missing required fields: items, orderId and returnUrl")

    line_items = [
        {
            "price_data": {
                "currency": "cny",
                "product_data": {
                    "name": item.name,
                    "images": [item.image_url] if item.image_url else [],
                },
                "unit_amount": stripe_service.to_minor_units(item.price),
            },
            "quantity": item.quantity,
        }
        for item in request.items
    ]

    try:
        session = stripe_service.create_checkout_session(
            settings, line_items, request.order_id, request.return_url
        )
    except stripe.StripeError as e:
        logger.error("Stripe Checkout error for order %s: %s", request.order_id, e)
        raise UpstreamProviderError(
            "Checkout session creation failed",
            details=getattr(e, "json_body", None) or str(e),
        ) from e

    return {"url": session.url}


@router.get("/orders/{order_id}/tracking")
def get_tracking(order_id: str, db: Session = Depends(get_db)):
    return get_tracking_info(db, order_id)


@router.post("/orders/{order_id}/tracking")
def post_tracking(
    order_id: str,
    request: TrackingEventRequest,
    db: Session = Depends(get_db),
    auth=Depends(verify_token),
):
    add_tracking_event(
        db,
        order_id,
        status=request.status,
        description=request.description,
        location=request.location,
        tracking_number=request.tracking_number,
        carrier=request.carrier,
        estimated_delivery=request.estimated_delivery,
    )
    return {"success": True}


@router.get("/admin/recent-orders")
def admin_recent_orders(db: Session = Depends(get_db), auth=Depends(verify_token)):
    return recent_orders(db)


@router.get("/admin/stats")
def admin_stats(db: Session = Depends(get_db), auth=Depends(verify_token)):
    return order_stats(db)


@router.post("/ai/chat")
def ai_chat(request: ChatRequest, settings: Settings = Depends(get_settings)):
    return ai.chat_completion(
        settings,
        request.messages,
        temperature=request.temperature,
        top_p=request.top_p,
        response_format=request.response_format,
    )

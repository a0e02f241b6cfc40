import stripe

from vetsphere.config import Settings


def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


def create_payment_intent(settings: Settings, amount: float, currency: str, order_id: str):
    return stripe.PaymentIntent.create(
        api_key=settings.stripe_secret_key,
        amount=to_minor_units(amount),
        currency=currency,
        metadata={"orderId": order_id, "source": "vetsphere"},
        automatic_payment_methods={"enabled": True},
    )


def create_checkout_session(settings: Settings, line_items: list, order_id: str, return_url: str):
    return stripe.checkout.Session.create(
        api_key=settings.stripe_secret_key,
        payment_method_types=["card", "alipay"],
        line_items=line_items,
        mode="payment",
        success_url=f"{return_url}?success=true&orderId={order_id}",
        cancel_url=f"{return_url}?canceled=true",
        client_reference_id=order_id,
    )


def verify_webhook_signature(settings: Settings, payload: str, signature: str):
    # Raises stripe.SignatureVerificationError on a bad or stale header
    stripe.WebhookSignature.verify_header(
        payload, signature, settings.stripe_webhook_secret, tolerance=stripe.Webhook.DEFAULT_TOLERANCE
    )

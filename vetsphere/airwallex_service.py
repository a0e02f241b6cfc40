import uuid

import httpx

from vetsphere.config import Settings


def get_access_token(settings: Settings) -> str:
    response = httpx.post(
        f"{settings.airwallex_host}/api/v1/authentication/login",
        json={},
        headers={
            "x-client-id": settings.airwallex_client_id,
            "x-api-key": settings.airwallex_api_key,
        },
    )
    response.raise_for_status()
    return response.json()["token"]


def create_payment_intent(settings: Settings, amount: float, currency: str, order_id: str,
                          description: str, customer: dict) -> dict:
    token = get_access_token(settings)

    response = httpx.post(
        f"{settings.airwallex_host}/api/v1/pa/payment_intents/create",
        json={
            "request_id": str(uuid.uuid4()),
            "amount": amount,
            "currency": currency,
            "merchant_order_id": order_id,
            "description": description,
            "capture_method": "AUTOMATIC",
            "customer": customer,
        },
        headers={"Authorization": f"Bearer {token}"},
    )
    response.raise_for_status()
    intent = response.json()
    if not isinstance(intent, dict):
        raise ValueError("payment intent response is not a JSON object")
    return intent


def error_details(error: Exception):
    """Provider payload for an httpx failure, falling back to the message."""
    if isinstance(error, (ValueError, KeyError, IndexError, TypeError)):
        return f"Malformed provider response: {error!r}"
    if isinstance(error, httpx.HTTPStatusError):
        try:
            return error.response.json()
        except ValueError:
            return error.response.text
    return str(error)

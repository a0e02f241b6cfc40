"""Exceptions raised by the payment, webhook and tracking flows.

Each class carries the HTTP status it is rendered with by the app-level
exception handler in ``vetsphere.main``.
"""

from typing import Any, Optional


class VetSphereError(Exception):
    """Base exception for all VetSphere service errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class NotConfigured(VetSphereError):
    """Raised when provider credentials are missing or still placeholders."""

    status_code = 503


class InvalidRequest(VetSphereError):
    """Raised when required request fields are missing."""

    status_code = 400


class NotFound(VetSphereError):
    """Raised when an order id doesn't exist."""

    status_code = 404

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__("Order not found")


class AmountMismatch(VetSphereError):
    """Raised when the requested amount differs from the stored order total."""

    status_code = 400

    def __init__(self, expected: float, received: float):
        self.expected = expected
        self.received = received
        super().__init__(f"Amount mismatch. Expected: {expected}, Received: {received}")


class AlreadyPaid(VetSphereError):
    """Raised when an intent is requested for a Paid or Completed order."""

    status_code = 400

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__("Order already paid")


class InvalidSignature(VetSphereError):
    """Raised when a webhook signature is missing or fails verification."""

    status_code = 400


class UpstreamProviderError(VetSphereError):
    """Wraps a failure from a payment provider or the LLM API."""

    status_code = 500


class AuthenticationError(VetSphereError):
    status_code = 401

    def __init__(self):
        super().__init__("Invalid or missing token")

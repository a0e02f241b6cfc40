import hashlib
import hmac
import json
import time
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

import vetsphere.auth
from vetsphere.config import Environment, Settings
from vetsphere.main import create_app
from vetsphere.models import CourseEnrollment, Order

WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        environment=Environment.TEST,
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret=WEBHOOK_SECRET,
        airwallex_client_id="awx_client",
        airwallex_api_key="awx_key",
        jwt_secret="jwt-test-secret",
        ai_api_key="ai-key",
        ai_base_url="https://llm.example.com",
    )


@pytest.fixture
def fastapi_app(settings):
    return create_app(settings)


@pytest.fixture
def client(fastapi_app):
    # Bypass auth verification for tests
    fastapi_app.dependency_overrides[vetsphere.auth.verify_token] = lambda: True

    with TestClient(fastapi_app) as c:
        yield c

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def db(fastapi_app):
    session = fastapi_app.state.session_factory()
    yield session
    session.close()
    fastapi_app.state.engine.dispose()


@pytest.fixture
def make_order(db):
    def _make(order_id="ord_1", total=199.00, status="Pending", enrollments=0,
              created_at=datetime(2026, 1, 10, 12, 0), **fields):
        db.add(Order(id=order_id, total_amount=total, status=status, created_at=created_at, **fields))
        for i in range(enrollments):
            db.add(CourseEnrollment(order_id=order_id, course_id=f"course_{i}", user_id="user_1"))
        db.commit()
        return order_id

    return _make


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    timestamp = timestamp or int(time.time())
    signature = hmac.new(
        secret.encode("utf-8"),
        f"{timestamp}.{payload}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def stripe_event(event_type: str, order_id: str = None, event_id: str = "evt_test") -> str:
    metadata = {"orderId": order_id} if order_id else {}
    return json.dumps({
        "id": event_id,
        "type": event_type,
        "data": {"object": {"id": "pi_test_123", "metadata": metadata}},
    })

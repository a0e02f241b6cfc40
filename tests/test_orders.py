from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.exc import SQLAlchemyError

from vetsphere.models import CourseEnrollment, Order
from vetsphere.orders import apply_outcome, order_stats, recent_orders
from vetsphere.webhooks import Outcome


def enrollment_statuses(db, order_id):
    return [e.payment_status for e in db.query(CourseEnrollment).filter_by(order_id=order_id)]


def test_apply_paid_updates_order_and_enrollments(db, make_order):
    make_order("ord_1", enrollments=3)

    assert apply_outcome(db, "ord_1", Outcome.PAID) is True

    db.expire_all()
    assert db.get(Order, "ord_1").status == "Paid"
    assert enrollment_statuses(db, "ord_1") == ["paid", "paid", "paid"]


def test_apply_paid_twice_is_idempotent(db, make_order):
    make_order("ord_1", enrollments=2)

    apply_outcome(db, "ord_1", Outcome.PAID)
    db.expire_all()
    once = (db.get(Order, "ord_1").status, enrollment_statuses(db, "ord_1"))

    apply_outcome(db, "ord_1", Outcome.PAID)
    db.expire_all()
    twice = (db.get(Order, "ord_1").status, enrollment_statuses(db, "ord_1"))

    assert once == twice == ("Paid", ["paid", "paid"])


def test_apply_refunded(db, make_order):
    make_order("ord_1", status="Paid", enrollments=1)

    apply_outcome(db, "ord_1", Outcome.REFUNDED)

    db.expire_all()
    assert db.get(Order, "ord_1").status == "Refunded"
    assert enrollment_statuses(db, "ord_1") == ["refunded"]


def test_apply_failed_is_a_no_op(db, make_order):
    make_order("ord_1", enrollments=1)

    assert apply_outcome(db, "ord_1", Outcome.FAILED) is False

    db.expire_all()
    assert db.get(Order, "ord_1").status == "Pending"
    assert enrollment_statuses(db, "ord_1") == ["unpaid"]


def test_apply_unknown_order(db):
    assert apply_outcome(db, "ord_missing", Outcome.PAID) is False


def test_apply_propagates_store_failures(db, make_order, mocker):
    make_order("ord_1")
    mocker.patch.object(db, "commit", side_effect=SQLAlchemyError("disk I/O error"))

    with pytest.raises(SQLAlchemyError):
        apply_outcome(db, "ord_1", Outcome.PAID)


def test_recent_orders_newest_first(db, make_order):
    make_order("ord_old", total=10.0, created_at=datetime(2026, 1, 1, 9, 0), customer_email="a@vet.example")
    make_order("ord_new", total=20.0, status="Paid", created_at=datetime(2026, 2, 1, 9, 0),
               customer_email="b@vet.example")

    assert recent_orders(db) == [
        {"id": "ord_new", "customerEmail": "b@vet.example", "amount": 20.0, "status": "Paid", "date": "2026-02-01"},
        {"id": "ord_old", "customerEmail": "a@vet.example", "amount": 10.0, "status": "Pending", "date": "2026-01-01"},
    ]


def test_recent_orders_limit(db, make_order):
    for i in range(25):
        make_order(f"ord_{i:02d}", created_at=datetime(2026, 1, 1, 0, i))

    orders = recent_orders(db)

    assert len(orders) == 20
    assert orders[0]["id"] == "ord_24"


def test_order_stats(db, make_order):
    make_order("ord_1", total=100.0, status="Paid", created_at=datetime(2026, 3, 5), enrollments=2)
    make_order("ord_2", total=50.0, status="Paid", created_at=datetime(2026, 2, 20))
    make_order("ord_3", total=30.0, status="Pending", created_at=datetime(2026, 3, 6))
    make_order("ord_4", total=20.0, status="Shipped", created_at=datetime(2026, 3, 7))
    make_order("ord_5", total=5.0, status="Refunded", created_at=datetime(2026, 3, 8))

    stats = order_stats(db, now=datetime(2026, 3, 15))

    assert stats["orders"] == {
        "total": 5,
        "pending": 1,
        "paid": 2,
        "shipped": 1,
        "refunded": 1,
        "revenue": 205.0,
        "revenueThisMonth": 100.0,
    }
    assert stats["enrollments"]["total"] == 2


def test_admin_endpoints(client, make_order):
    make_order("ord_1", total=42.0)

    assert client.get("/admin/recent-orders").json()[0]["id"] == "ord_1"
    assert client.get("/admin/stats").json()["orders"]["total"] == 1


def test_admin_requires_token(fastapi_app):
    with TestClient(fastapi_app) as c:
        missing = c.get("/admin/stats")
        wrong_scheme = c.get("/admin/stats", headers={"Authorization": "Basic abc"})
        bad_token = c.get("/admin/stats", headers={"Authorization": "Bearer not-a-jwt"})

    for response in (missing, wrong_scheme, bad_token):
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid or missing token"}


def test_admin_accepts_valid_token(fastapi_app, settings):
    token = jwt.encode({"sub": "operator"}, settings.jwt_secret, algorithm="HS256")

    with TestClient(fastapi_app) as c:
        response = c.get("/admin/stats", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200


def test_tracking_post_requires_token(fastapi_app, make_order):
    make_order("ord_1")

    with TestClient(fastapi_app) as c:
        response = c.post("/orders/ord_1/tracking", json={"status": "shipped", "description": "x"})

    assert response.status_code == 401

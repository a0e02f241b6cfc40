import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vetsphere.models import CourseEnrollment, EnrollmentPaymentStatus, Order, OrderStatus
from vetsphere.webhooks import Outcome

logger = logging.getLogger(__name__)

# outcome -> (order status, enrollment payment status)
OUTCOME_STATUSES = {
    Outcome.PAID: (OrderStatus.PAID, EnrollmentPaymentStatus.PAID),
    Outcome.REFUNDED: (OrderStatus.REFUNDED, EnrollmentPaymentStatus.REFUNDED),
}

RECENT_ORDERS_LIMIT = 20


def apply_outcome(db: Session, order_id: str, outcome: Outcome) -> bool:
    """Write a payment outcome to an order and all of its course enrollments.

    Both writes are plain overwrites, so applying the same outcome twice
    leaves the same state. They are committed separately and a failure in
    the second one does not undo the first. Returns False when nothing was
    written (unknown order or a non-mutating outcome).
    """
    if outcome not in OUTCOME_STATUSES:
        return False

    order_status, payment_status = OUTCOME_STATUSES[outcome]

    try:
        updated = (
            db.query(Order)
            .filter(Order.id == order_id)
            .update({Order.status: order_status.value}, synchronize_session=False)
        )
        db.commit()
        if not updated:
            logger.warning("Order %s not found, %s outcome not applied", order_id, outcome.value)
            return False

        enrollments = (
            db.query(CourseEnrollment)
            .filter(CourseEnrollment.order_id == order_id)
            .update({CourseEnrollment.payment_status: payment_status.value}, synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to apply %s outcome to order %s", outcome.value, order_id)
        raise

    logger.info(
        "Order %s updated to %s (%d enrollments marked %s)",
        order_id, order_status.value, enrollments, payment_status.value,
    )
    return True


def recent_orders(db: Session, limit: int = RECENT_ORDERS_LIMIT) -> list:
    orders = db.query(Order).order_by(Order.created_at.desc()).limit(limit).all()
    return [
        {
            "id": o.id,
            "customerEmail": o.customer_email,
            "amount": o.total_amount or 0,
            "status": o.status,
            "date": o.created_at.date().isoformat(),
        }
        for o in orders
    ]


def order_stats(db: Session, now: Optional[datetime] = None) -> dict:
    now = now or datetime.now(timezone.utc)
    month_start = datetime(now.year, now.month, 1)

    def count_status(status: OrderStatus) -> int:
        return db.query(Order).filter(Order.status == status.value).count()

    revenue = db.query(func.coalesce(func.sum(Order.total_amount), 0)).scalar()
    month_revenue = (
        db.query(func.coalesce(func.sum(Order.total_amount), 0))
        .filter(Order.status == OrderStatus.PAID.value, Order.created_at >= month_start)
        .scalar()
    )

    return {
        "orders": {
            "total": db.query(Order).count(),
            "pending": count_status(OrderStatus.PENDING),
            "paid": count_status(OrderStatus.PAID),
            "shipped": count_status(OrderStatus.SHIPPED),
            "refunded": count_status(OrderStatus.REFUNDED),
            "revenue": float(revenue),
            "revenueThisMonth": float(month_revenue),
        },
        "enrollments": {
            "total": db.query(CourseEnrollment).count(),
            "thisMonth": (
                db.query(CourseEnrollment)
                .filter(CourseEnrollment.enrollment_date >= month_start)
                .count()
            ),
        },
    }

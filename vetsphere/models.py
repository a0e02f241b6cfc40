from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String

from vetsphere.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class OrderStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    SHIPPED = "Shipped"
    COMPLETED = "Completed"
    REFUNDED = "Refunded"


class EnrollmentPaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    REFUNDED = "refunded"


class Order(Base):
    __tablename__ = "orders"

    id = Column(String, primary_key=True)
    customer_email = Column(String)
    total_amount = Column(Float, nullable=False)          # major currency unit
    status = Column(String, nullable=False, default=OrderStatus.PENDING.value)
    shipping_carrier = Column(String)
    tracking_number = Column(String)
    estimated_delivery = Column(String)
    shipping_address = Column(String)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class CourseEnrollment(Base):
    __tablename__ = "course_enrollments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String, ForeignKey("orders.id"), index=True)
    course_id = Column(String)
    user_id = Column(String)
    payment_status = Column(String, nullable=False, default=EnrollmentPaymentStatus.UNPAID.value)
    enrollment_date = Column(DateTime, nullable=False, default=utcnow)


class OrderTrackingEvent(Base):
    __tablename__ = "order_tracking"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String, ForeignKey("orders.id"), index=True, nullable=False)
    status = Column(String, nullable=False)               # order_placed | shipped | in_transit | delivered ...
    location = Column(String, default="")
    description = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

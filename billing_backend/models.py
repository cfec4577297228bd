from datetime import datetime, timezone
from enum import Enum

from sqlalchemy.orm import declarative_base
from sqlalchemy import Column, Integer, String, DateTime

Base = declarative_base()


class Plan(str, Enum):
    FREE = "free"
    PRO = "pro"


class PaymentStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


class SubscriptionStatus(str, Enum):
    """Provider statuses the backend branches on, plus the local pending state."""

    ACTIVE = "active"
    PAST_DUE = "past_due"
    UNPAID = "unpaid"
    CANCELED = "canceled"
    # set locally while the provider still has the subscription running
    CANCELING = "canceling"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    plan = Column(String(10), nullable=False, default=Plan.FREE.value)
    stripe_customer_id = Column(String(255), unique=True, nullable=True, index=True)
    subscription_id = Column(String(255), nullable=True)
    subscription_status = Column(String(25), nullable=True)
    last_payment_status = Column(String(25), nullable=True)
    canceled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

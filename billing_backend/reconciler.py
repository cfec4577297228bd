from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from .events import (
    BillingEvent,
    CheckoutSessionCompleted,
    CustomerCreated,
    InvoicePaymentCanceled,
    InvoicePaymentFailed,
    InvoicePaymentSucceeded,
    SubscriptionCreated,
    SubscriptionDeleted,
    SubscriptionUpdated,
    UnhandledEvent,
)
from .models import PaymentStatus, Plan, SubscriptionStatus, utcnow
from .store import UserStore

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    MISSING_EMAIL = "MISSING_EMAIL"
    MISSING_USER_ID = "MISSING_USER_ID"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    DATABASE_ERROR = "DATABASE_ERROR"
    SUBSCRIPTION_ERROR = "SUBSCRIPTION_ERROR"
    SUBSCRIPTION_UPDATE_ERROR = "SUBSCRIPTION_UPDATE_ERROR"
    CANCELLATION_ERROR = "CANCELLATION_ERROR"
    PAYMENT_ERROR = "PAYMENT_ERROR"
    PAYMENT_SUCCESS_ERROR = "PAYMENT_SUCCESS_ERROR"
    PAYMENT_CANCELLATION_ERROR = "PAYMENT_CANCELLATION_ERROR"


@dataclass(frozen=True)
class ReconcileResult:
    success: bool
    message: str
    error_code: Optional[ErrorCode] = None

    @classmethod
    def ok(cls, message: str) -> "ReconcileResult":
        return cls(success=True, message=message)

    @classmethod
    def fail(cls, message: str, error_code: ErrorCode) -> "ReconcileResult":
        return cls(success=False, message=message, error_code=error_code)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.error_code is not None:
            data["errorCode"] = self.error_code.value
        return data


USER_NOT_FOUND = ReconcileResult.fail("User not found", ErrorCode.USER_NOT_FOUND)


def plan_for_status(status: Optional[str]) -> Optional[Plan]:
    """Plan implied by a subscription status, or None to keep the current plan."""
    if status == SubscriptionStatus.ACTIVE.value:
        return Plan.PRO
    if status in (SubscriptionStatus.CANCELED.value, SubscriptionStatus.UNPAID.value):
        return Plan.FREE
    return None


class EventReconciler:
    def __init__(self, store: UserStore, now: Callable[[], datetime] = utcnow):
        self.store = store
        self.now = now
        self._handlers: Dict[type, Callable[[Any], ReconcileResult]] = {
            CustomerCreated: self._customer_created,
            CheckoutSessionCompleted: self._checkout_completed,
            SubscriptionCreated: self._subscription_created,
            SubscriptionUpdated: self._subscription_updated,
            SubscriptionDeleted: self._subscription_deleted,
            InvoicePaymentSucceeded: self._invoice_succeeded,
            InvoicePaymentFailed: self._invoice_failed,
            InvoicePaymentCanceled: self._invoice_canceled,
        }

    def reconcile(self, event: BillingEvent) -> ReconcileResult:
        handler = self._handlers.get(type(event))
        if handler is None:
            event_type = event.event_type if isinstance(event, UnhandledEvent) else type(event).__name__
            logger.info("Unhandled event type %s", event_type)
            return ReconcileResult.ok("Unhandled event type")
        result = handler(event)
        if result.success:
            logger.info("Reconciled %s: %s", type(event).__name__, result.message)
        else:
            logger.error(
                "Failed to reconcile %s: %s (%s)",
                type(event).__name__,
                result.message,
                result.error_code.value if result.error_code else None,
            )
        return result

    def _customer_created(self, event):
        if not event.email:
            return ReconcileResult.fail("No email found", ErrorCode.MISSING_EMAIL)
        try:
            user_id = self.store.find_user_id_by_email(event.email)
            if user_id is None or not self.store.update(user_id, stripe_customer_id=event.customer_id):
                return USER_NOT_FOUND
        except SQLAlchemyError:
            logger.exception("Linking customer %s to %s failed", event.customer_id, event.email)
            return ReconcileResult.fail("Failed to link customer", ErrorCode.DATABASE_ERROR)
        return ReconcileResult.ok("Customer linked successfully")

    def _checkout_completed(self, event):
        try:
            user_id = int(event.user_id) if event.user_id is not None else None
        except ValueError:
            user_id = None
        if user_id is None:
            return ReconcileResult.fail("No userId found", ErrorCode.MISSING_USER_ID)
        return self._apply(
            user_id,
            {
                "plan": Plan.PRO.value,
                "last_payment_status": PaymentStatus.SUCCEEDED.value,
                "stripe_customer_id": event.customer_id,
            },
            success="Subscription activated successfully",
            failure="Failed to update subscription",
            error_code=ErrorCode.DATABASE_ERROR,
        )

    def _subscription_created(self, event):
        return self._apply_for_customer(
            event.customer_id,
            {
                "plan": Plan.PRO.value,
                "subscription_status": event.status,
                "subscription_id": event.subscription_id,
                "canceled_at": None,
            },
            success="Subscription created successfully",
            failure="Failed to create subscription",
            error_code=ErrorCode.SUBSCRIPTION_ERROR,
        )

    def _subscription_updated(self, event):
        fields: Dict[str, Any] = {
            "subscription_status": event.status,
            "subscription_id": event.subscription_id,
        }
        plan = plan_for_status(event.status)
        if plan is not None:
            fields["plan"] = plan.value
        return self._apply_for_customer(
            event.customer_id,
            fields,
            success="Subscription updated successfully",
            failure="Failed to update subscription",
            error_code=ErrorCode.SUBSCRIPTION_UPDATE_ERROR,
        )

    def _subscription_deleted(self, event):
        return self._apply_for_customer(
            event.customer_id,
            {
                "plan": Plan.FREE.value,
                "subscription_status": SubscriptionStatus.CANCELED.value,
                "subscription_id": None,
                "canceled_at": self.now(),
            },
            success="Subscription canceled successfully",
            failure="Failed to cancel subscription",
            error_code=ErrorCode.CANCELLATION_ERROR,
        )

    def _invoice_succeeded(self, event):
        return self._apply_for_customer(
            event.customer_id,
            {"last_payment_status": PaymentStatus.SUCCEEDED.value, "plan": Plan.PRO.value},
            success="Payment successful and user updated",
            failure="Failed to update payment status",
            error_code=ErrorCode.PAYMENT_SUCCESS_ERROR,
        )

    def _invoice_failed(self, event):
        return self._apply_for_customer(
            event.customer_id,
            {"last_payment_status": PaymentStatus.FAILED.value},
            success="Payment failure recorded",
            failure="Failed to update payment status",
            error_code=ErrorCode.PAYMENT_ERROR,
        )

    def _invoice_canceled(self, event):
        return self._apply_for_customer(
            event.customer_id,
            {"last_payment_status": PaymentStatus.CANCELED.value},
            success="Payment cancellation recorded",
            failure="Failed to update payment status",
            error_code=ErrorCode.PAYMENT_CANCELLATION_ERROR,
        )

    def _apply_for_customer(self, customer_id, fields, **outcome):
        user_id = self.store.find_user_id_by_customer(customer_id)
        if user_id is None:
            logger.error("No user found for customer %s", customer_id)
            return USER_NOT_FOUND
        return self._apply(user_id, fields, **outcome)

    def _apply(self, user_id, fields, *, success, failure, error_code):
        try:
            updated = self.store.update(user_id, **fields)
        except SQLAlchemyError:
            logger.exception("Billing update failed for user %s", user_id)
            return ReconcileResult.fail(failure, error_code)
        if not updated:
            return USER_NOT_FOUND
        return ReconcileResult.ok(success)

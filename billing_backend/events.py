from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Union


class EventKind(str, Enum):
    CUSTOMER_CREATED = "customer.created"
    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    SUBSCRIPTION_CREATED = "customer.subscription.created"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"
    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"
    INVOICE_PAYMENT_CANCELED = "invoice.voided"


@dataclass(frozen=True)
class CustomerCreated:
    customer_id: Optional[str]
    email: Optional[str]


@dataclass(frozen=True)
class CheckoutSessionCompleted:
    customer_id: Optional[str]
    # raw ``metadata.userId`` as set when the session was created
    user_id: Optional[str]


@dataclass(frozen=True)
class SubscriptionEvent:
    subscription_id: Optional[str]
    customer_id: Optional[str]
    status: Optional[str]


class SubscriptionCreated(SubscriptionEvent):
    pass


class SubscriptionUpdated(SubscriptionEvent):
    pass


class SubscriptionDeleted(SubscriptionEvent):
    pass


@dataclass(frozen=True)
class InvoiceEvent:
    invoice_id: Optional[str]
    customer_id: Optional[str]


class InvoicePaymentSucceeded(InvoiceEvent):
    pass


class InvoicePaymentFailed(InvoiceEvent):
    pass


class InvoicePaymentCanceled(InvoiceEvent):
    pass


@dataclass(frozen=True)
class UnhandledEvent:
    event_type: str


BillingEvent = Union[
    CustomerCreated,
    CheckoutSessionCompleted,
    SubscriptionEvent,
    InvoiceEvent,
    UnhandledEvent,
]


def _customer_id(obj: Mapping[str, Any]) -> Optional[str]:
    # expanded objects carry the id inside
    customer = obj.get("customer")
    if isinstance(customer, Mapping):
        return customer.get("id")
    return customer or None


def _customer(obj):
    return CustomerCreated(customer_id=obj.get("id"), email=obj.get("email") or None)


def _checkout(obj):
    metadata = obj.get("metadata") or {}
    user_id = metadata.get("userId")
    return CheckoutSessionCompleted(
        customer_id=_customer_id(obj),
        user_id=str(user_id) if user_id not in (None, "") else None,
    )


def _subscription(cls):
    def build(obj):
        return cls(subscription_id=obj.get("id"), customer_id=_customer_id(obj), status=obj.get("status"))
    return build


def _invoice(cls):
    def build(obj):
        return cls(invoice_id=obj.get("id"), customer_id=_customer_id(obj))
    return build


_PARSERS: Dict[str, Callable[[Mapping[str, Any]], BillingEvent]] = {
    EventKind.CUSTOMER_CREATED.value: _customer,
    EventKind.CHECKOUT_SESSION_COMPLETED.value: _checkout,
    EventKind.SUBSCRIPTION_CREATED.value: _subscription(SubscriptionCreated),
    EventKind.SUBSCRIPTION_UPDATED.value: _subscription(SubscriptionUpdated),
    EventKind.SUBSCRIPTION_DELETED.value: _subscription(SubscriptionDeleted),
    EventKind.INVOICE_PAYMENT_SUCCEEDED.value: _invoice(InvoicePaymentSucceeded),
    EventKind.INVOICE_PAYMENT_FAILED.value: _invoice(InvoicePaymentFailed),
    EventKind.INVOICE_PAYMENT_CANCELED.value: _invoice(InvoicePaymentCanceled),
}


def parse_event(event: Mapping[str, Any]) -> BillingEvent:
    event_type = str(event.get("type") or "")
    parser = _PARSERS.get(event_type)
    if parser is None:
        return UnhandledEvent(event_type=event_type)
    obj = (event.get("data") or {}).get("object") or {}
    return parser(obj)

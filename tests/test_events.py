from billing_backend.events import (
    CheckoutSessionCompleted,
    CustomerCreated,
    EventKind,
    InvoicePaymentCanceled,
    InvoicePaymentSucceeded,
    SubscriptionDeleted,
    SubscriptionUpdated,
    UnhandledEvent,
    parse_event,
)


def test_parse_customer_created(stripe_event):
    event = parse_event(stripe_event("customer.created", {"id": "cus_1", "email": "a@b.com"}))

    assert event == CustomerCreated(customer_id="cus_1", email="a@b.com")


def test_parse_customer_created_with_blank_email(stripe_event):
    event = parse_event(stripe_event("customer.created", {"id": "cus_1", "email": ""}))

    assert event.email is None


def test_parse_checkout_session_reads_metadata_user_id(stripe_event):
    event = parse_event(
        stripe_event(
            "checkout.session.completed",
            {"id": "cs_1", "customer": "cus_9", "metadata": {"userId": "7"}},
        )
    )

    assert event == CheckoutSessionCompleted(customer_id="cus_9", user_id="7")


def test_parse_checkout_session_without_metadata(stripe_event):
    event = parse_event(stripe_event("checkout.session.completed", {"id": "cs_1", "customer": None, "metadata": None}))

    assert event == CheckoutSessionCompleted(customer_id=None, user_id=None)


def test_parse_subscription_events_keep_their_kind(stripe_event):
    obj = {"id": "sub_1", "customer": "cus_1", "status": "past_due"}

    updated = parse_event(stripe_event("customer.subscription.updated", obj))
    deleted = parse_event(stripe_event("customer.subscription.deleted", obj))

    assert type(updated) is SubscriptionUpdated
    assert type(deleted) is SubscriptionDeleted
    assert updated.status == "past_due"
    assert updated != deleted


def test_parse_accepts_expanded_customer(stripe_event):
    event = parse_event(stripe_event("invoice.payment_succeeded", {"id": "in_1", "customer": {"id": "cus_1", "object": "customer"}}))

    assert event == InvoicePaymentSucceeded(invoice_id="in_1", customer_id="cus_1")


def test_voided_invoice_is_a_payment_cancellation(stripe_event):
    event = parse_event(stripe_event(EventKind.INVOICE_PAYMENT_CANCELED.value, {"id": "in_1", "customer": "cus_1"}))

    assert isinstance(event, InvoicePaymentCanceled)


def test_unknown_types_become_unhandled(stripe_event):
    assert parse_event(stripe_event("payment_intent.created", {"id": "pi_1"})) == UnhandledEvent("payment_intent.created")
    assert parse_event({}) == UnhandledEvent("")

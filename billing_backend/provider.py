import stripe


class BillingProviderError(Exception):
    pass


class InvalidSignature(Exception):
    pass


class StripeBillingProvider:
    def __init__(self, api_key, webhook_secret, tolerance=300):
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.tolerance = tolerance
        if api_key:
            stripe.api_key = api_key

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def create_checkout_session(self, *, price_id, metadata, success_url, cancel_url) -> str:
        try:
            session = stripe.checkout.Session.create(
                payment_method_types=["card"],
                mode="subscription",
                line_items=[{"price": price_id, "quantity": 1}],
                metadata=metadata,
                success_url=success_url,
                cancel_url=cancel_url,
            )
        except stripe.StripeError as exc:
            raise BillingProviderError(str(exc)) from exc
        return session.url

    def create_payment_intent(self, *, amount, currency, metadata) -> str:
        try:
            intent = stripe.PaymentIntent.create(amount=amount, currency=currency, metadata=metadata)
        except stripe.StripeError as exc:
            raise BillingProviderError(str(exc)) from exc
        return intent.client_secret

    def cancel_at_period_end(self, subscription_id):
        # epoch second at which Stripe ends the subscription
        try:
            subscription = stripe.Subscription.modify(subscription_id, cancel_at_period_end=True)
        except stripe.StripeError as exc:
            raise BillingProviderError(str(exc)) from exc
        return subscription.cancel_at

    def construct_event(self, payload: bytes, sig_header: str) -> dict:
        if not self.webhook_secret:
            raise InvalidSignature("Webhook secret is not configured")
        try:
            event = stripe.Webhook.construct_event(payload, sig_header, self.webhook_secret, self.tolerance)
        except stripe.SignatureVerificationError as exc:
            raise InvalidSignature(str(exc)) from exc
        except ValueError as exc:
            raise InvalidSignature(f"Invalid payload: {exc}") from exc
        return event.to_dict()

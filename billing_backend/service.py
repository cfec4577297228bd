"""Checkout, payment intent and cancellation requests started by the client app."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from .config import Settings
from .models import SubscriptionStatus, utcnow
from .provider import StripeBillingProvider
from .store import UserStore

logger = logging.getLogger(__name__)


class BillingNotConfigured(Exception):
    """A Stripe key or price id needed for the request is missing."""


class SubscriptionNotFound(LookupError):
    """The user has no subscription to act on."""


@dataclass
class BillingService:
    store: UserStore
    provider: StripeBillingProvider
    settings: Settings
    now: Callable[[], datetime] = utcnow

    def create_checkout_session(self, user_id: int, plan_type: Optional[str]) -> str:
        price_id = self.settings.price_id_for(plan_type)
        if not self.provider.configured or not price_id:
            raise BillingNotConfigured("Stripe not configured")
        base = self.settings.public_base_url
        url = self.provider.create_checkout_session(
            price_id=price_id,
            metadata={"userId": str(user_id)},
            success_url=f"{base}/success",
            cancel_url=f"{base}/cancel",
        )
        logger.info("Checkout session created user=%s plan_type=%s", user_id, plan_type)
        return url

    def create_payment_intent(self, user_id: int, amount: int) -> str:
        if not self.provider.configured:
            raise BillingNotConfigured("Stripe not configured")
        return self.provider.create_payment_intent(
            amount=amount,
            currency=self.settings.stripe_currency,
            metadata={"userId": str(user_id)},
        )

    def cancel_subscription(self, user_id: int) -> Dict[str, Any]:
        """Cancel at period end and mark the row ``canceling`` until Stripe confirms."""
        user = self.store.get(user_id)
        if user is None or not user.subscription_id:
            raise SubscriptionNotFound("No active subscription found")

        subscription_id = user.subscription_id
        cancel_at = self.provider.cancel_at_period_end(subscription_id)
        status = SubscriptionStatus.CANCELING.value
        if not self.store.update(user_id, subscription_status=status, canceled_at=self.now()):
            raise SubscriptionNotFound("No active subscription found")
        logger.info("Subscription %s for user %s set to cancel at %s", subscription_id, user_id, cancel_at)
        return {
            "success": True,
            "message": "Subscription will be canceled at the end of the billing period",
            "cancelAt": cancel_at,
            "subscriptionStatus": status,
        }

from typing import Literal, Optional
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from starlette.concurrency import run_in_threadpool
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from .deps import enforce_free_user_limits, get_billing_service, get_provider, get_reconciler
from .events import UnhandledEvent, parse_event
from .models import User
from .provider import BillingProviderError, InvalidSignature, StripeBillingProvider
from .reconciler import EventReconciler
from .service import BillingNotConfigured, BillingService, SubscriptionNotFound

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["billing"])

class CheckoutSessionIn(BaseModel):
    userId: int
    planType: Literal["monthly", "yearly"] = "monthly"

class PaymentIntentIn(BaseModel):
    userId: int
    amount: int = Field(gt=0, description="Amount in the smallest currency unit")

class CancelSubscriptionIn(BaseModel):
    userId: int

@router.post("/create-checkout-session")
def create_checkout_session(payload: CheckoutSessionIn, service: BillingService = Depends(get_billing_service)):
    try:
        url = service.create_checkout_session(payload.userId, payload.planType)
    except BillingNotConfigured as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except BillingProviderError as exc:
        logger.error("Error creating checkout session: %s", exc)
        raise HTTPException(status_code=500, detail="Internal Server Error")
    return {"url": url}

@router.post("/create-payment-intent")
def create_payment_intent(payload: PaymentIntentIn, service: BillingService = Depends(get_billing_service)):
    try:
        client_secret = service.create_payment_intent(payload.userId, payload.amount)
    except BillingNotConfigured as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except BillingProviderError as exc:
        logger.error("Error creating payment intent: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))
    return {"clientSecret": client_secret}

@router.post("/cancel-subscription")
def cancel_subscription(payload: CancelSubscriptionIn, service: BillingService = Depends(get_billing_service)):
    try:
        return service.cancel_subscription(payload.userId)
    except SubscriptionNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except (BillingProviderError, SQLAlchemyError) as exc:
        logger.error("Error canceling subscription for user %s: %s", payload.userId, exc)
        raise HTTPException(status_code=500, detail=f"Failed to cancel subscription: {exc}")

@router.get("/subscription-status")
def subscription_status(user: User = Depends(enforce_free_user_limits)):
    return {
        "userId": user.id,
        "plan": user.plan,
        "subscriptionStatus": user.subscription_status,
        "lastPaymentStatus": user.last_payment_status,
        "canceledAt": user.canceled_at,
    }

@router.post("/webhook")
async def webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    provider: StripeBillingProvider = Depends(get_provider),
    reconciler: EventReconciler = Depends(get_reconciler),
):
    if not stripe_signature:
        logger.error("No Stripe signature found in headers")
        raise HTTPException(status_code=400, detail="No signature header present.")
    payload = await request.body()
    try:
        data = provider.construct_event(payload, stripe_signature)
    except InvalidSignature as exc:
        logger.error("Webhook signature verification failed: %s", exc)
        raise HTTPException(status_code=400, detail=f"Webhook Error: {exc}")

    # once verified, always acknowledge so Stripe does not redeliver
    try:
        event = parse_event(data)
        result = await run_in_threadpool(reconciler.reconcile, event)
    except Exception:
        logger.exception("Webhook processing error for event %s", data.get("id"))
        return {"received": True, "success": False}
    if not result.success:
        logger.error("Error processing %s: %s", data.get("type"), result.to_dict())
    response = {"received": True, "success": result.success}
    if isinstance(event, UnhandledEvent):
        response["message"] = result.message
    return response

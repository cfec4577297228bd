from functools import lru_cache
import logging

from fastapi import Depends, HTTPException, Query
from sqlalchemy.orm import Session
from .config import Settings, get_settings
from .db import get_db
from .models import Plan, User
from .provider import StripeBillingProvider
from .reconciler import EventReconciler
from .service import BillingService
from .store import UserStore

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_provider() -> StripeBillingProvider:
    settings = get_settings()
    return StripeBillingProvider(settings.stripe_secret_key, settings.stripe_webhook_secret)

def get_store(db: Session = Depends(get_db)) -> UserStore:
    return UserStore(db)

def get_reconciler(store: UserStore = Depends(get_store)) -> EventReconciler:
    return EventReconciler(store)

def get_billing_service(
    store: UserStore = Depends(get_store),
    provider: StripeBillingProvider = Depends(get_provider),
    settings: Settings = Depends(get_settings),
) -> BillingService:
    return BillingService(store=store, provider=provider, settings=settings)

def enforce_free_user_limits(userId: int = Query(...), store: UserStore = Depends(get_store)) -> User:
    user = store.get(userId)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.plan == Plan.FREE.value:
        # free-tier quotas are not enforced yet
        logger.debug("Free plan user %s passed limit check", user.id)
    return user

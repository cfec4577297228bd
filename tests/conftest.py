"""Shared fixtures: in-memory database, user factory and a fake Stripe provider."""
from __future__ import annotations

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_ENV"] = "test"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ["STRIPE_MONTHLY_PRICE_ID"] = "price_monthly"
os.environ["STRIPE_YEARLY_PRICE_ID"] = "price_yearly"
os.environ["BASE_URL"] = "http://localhost:3000"
os.environ.pop("CORS_ORIGINS", None)

import json
from itertools import count
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from billing_backend.models import Base, User
from billing_backend.provider import BillingProviderError, InvalidSignature
from billing_backend.store import UserStore


class FakeProvider:
    def __init__(self) -> None:
        self.configured = True
        self.fail_with: Optional[str] = None
        self.checkout_calls: List[Dict[str, Any]] = []
        self.intent_calls: List[Dict[str, Any]] = []
        self.canceled: List[str] = []
        self.cancel_at = 1_900_000_000

    def _maybe_fail(self) -> None:
        if self.fail_with:
            raise BillingProviderError(self.fail_with)

    def create_checkout_session(self, **kwargs: Any) -> str:
        self._maybe_fail()
        self.checkout_calls.append(kwargs)
        return f"https://checkout.stripe.test/cs_{len(self.checkout_calls)}"

    def create_payment_intent(self, **kwargs: Any) -> str:
        self._maybe_fail()
        self.intent_calls.append(kwargs)
        return f"pi_{len(self.intent_calls)}_secret_abc"

    def cancel_at_period_end(self, subscription_id: str) -> int:
        self._maybe_fail()
        self.canceled.append(subscription_id)
        return self.cancel_at

    def construct_event(self, payload: bytes, sig_header: str) -> Dict[str, Any]:
        if sig_header != "valid":
            raise InvalidSignature("No signatures found matching the expected signature for payload")
        return json.loads(payload)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    yield session
    session.close()


@pytest.fixture
def store(db) -> UserStore:
    return UserStore(db)


@pytest.fixture
def make_user(db):
    seq = count(1)

    def _make(**fields: Any) -> User:
        fields.setdefault("email", f"user{next(seq)}@example.com")
        user = User(**fields)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


def _event(event_type: str, obj: Dict[str, Any], event_id: str = "evt_1") -> Dict[str, Any]:
    return {"id": event_id, "object": "event", "type": event_type, "data": {"object": obj}}


@pytest.fixture
def stripe_event():
    """Builds a decoded Stripe event envelope around ``obj``."""
    return _event

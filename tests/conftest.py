"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- An in-memory registry store
- A fake payment processor with scripted sessions
- Domain services wired with a fixed clock and nonce source
"""

import itertools
from datetime import datetime, timezone

import pytest

from soulmark.adapters.store.memory import InMemoryRegistryStore
from soulmark.domain.exceptions import UpstreamError
from soulmark.domain.identity import IdentityRegistry
from soulmark.domain.ledger import DonationLedger
from soulmark.domain.orders import OrderEngine
from soulmark.domain.ports import CheckoutIntent, RetrievedIntent

SECRET = "test-secret"
FIXED_NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


class FakePaymentProcessor:
    """Implements PaymentProcessor with in-memory sessions."""

    def __init__(self) -> None:
        self.sessions: dict[str, RetrievedIntent] = {}
        self.created: list[dict] = []
        self.fail = False
        self._ids = itertools.count(1)

    def create_intent(self, mode, amount, currency, customer_email, success_url, cancel_url, metadata):
        if self.fail:
            raise UpstreamError("processor down")
        session_id = f"cs_test_{next(self._ids)}"
        self.created.append(
            {
                "id": session_id,
                "mode": mode,
                "amount": amount,
                "currency": currency,
                "customer_email": customer_email,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "metadata": metadata,
            }
        )
        self.sessions[session_id] = RetrievedIntent(
            id=session_id,
            payment_status="unpaid",
            amount_total=amount,
            customer_email=customer_email,
            metadata=dict(metadata),
            mode=mode,
        )
        return CheckoutIntent(id=session_id, url=f"https://checkout.test/{session_id}")

    def retrieve_intent(self, intent_id):
        if self.fail:
            raise UpstreamError("processor down")
        return self.sessions.get(intent_id)

    def pay(self, session_id: str, email: str, amount: int | None = None, name: str | None = None, **extra) -> None:
        """Mark a session as paid, creating it if needed."""
        existing = self.sessions.get(session_id)
        self.sessions[session_id] = RetrievedIntent(
            id=session_id,
            payment_status="paid",
            amount_total=amount if amount is not None else (existing.amount_total if existing else None),
            customer_email=email,
            customer_name=name,
            metadata=dict(existing.metadata) if existing else {},
            mode=existing.mode if existing else "payment",
            **extra,
        )


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest.fixture
def nonces():
    counter = itertools.count()
    return lambda: f"{next(counter):032x}"


@pytest.fixture
def store() -> InMemoryRegistryStore:
    return InMemoryRegistryStore()


@pytest.fixture
def processor() -> FakePaymentProcessor:
    return FakePaymentProcessor()


@pytest.fixture
def ledger(store, processor, nonces) -> DonationLedger:
    return DonationLedger(store=store, processor=processor, secret=SECRET, clock=fixed_clock, rng=nonces)


@pytest.fixture
def registry(store) -> IdentityRegistry:
    return IdentityRegistry(store=store, disposable_domains=["mailinator.com"], clock=fixed_clock)


@pytest.fixture
def engine(store, processor, ledger) -> OrderEngine:
    return OrderEngine(store=store, processor=processor, ledger=ledger, clock=fixed_clock)

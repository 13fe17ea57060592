"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol

from .models import RegistryDocument


class PaymentStatus(Enum):
    """
    Result of confirming a payment with the processor.

    UNPAID_OR_MISSING is a negative result, not an error: nothing is
    recorded and the caller may ask again later.
    """

    PAID = "paid"
    UNPAID_OR_MISSING = "unpaid_or_missing"


@dataclass(frozen=True)
class CheckoutIntent:
    """A payable intent created by the processor."""

    id: str
    url: str


@dataclass(frozen=True)
class RetrievedIntent:
    """Processor view of an intent, as consumed by the registry."""

    id: str
    payment_status: str
    amount_total: int | None = None
    customer_email: str | None = None
    customer_name: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    mode: str | None = None
    subscription_id: str | None = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"


class RegistryStore(Protocol):
    """
    Port interface for registry persistence.

    ``load()`` always returns a structurally valid document: missing,
    corrupt and malformed storage are recovered inside the store.
    """

    def load(self) -> RegistryDocument:
        """Return the latest durable snapshot."""
        ...

    def save(self, document: RegistryDocument) -> None:
        """Persist the whole document."""
        ...

    def transaction(self) -> AbstractContextManager[RegistryDocument]:
        """
        Single-writer read-modify-write scope.

        Holds the store's write lock from load until save. The document is
        saved only when the block exits without an exception.
        """
        ...


class PaymentProcessor(Protocol):
    """Port interface for the external payment processor."""

    def create_intent(
        self,
        mode: str,
        amount: int,
        currency: str,
        customer_email: str | None,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> CheckoutIntent:
        """
        Create a payable intent.

        Raises:
            UpstreamError: If the processor call fails
        """
        ...

    def retrieve_intent(self, intent_id: str) -> RetrievedIntent | None:
        """
        Fetch an intent by id.

        Returns:
            The intent, or None if the processor has no such intent

        Raises:
            UpstreamError: If the processor call fails
        """
        ...


# Zero-argument callables injected into the services so tests can pin time
# and randomness.
Clock = Callable[[], datetime]
NonceSource = Callable[[], str]

"""
Donation ledger - Exactly-once recording of paid events.

A paid processor session becomes one DonationRecord, ever. Confirming the
same session again returns the stored record, only backfilling fields
that were empty the first time. The record's mark is minted once, on
first recording, and never changes afterwards.
"""

import logging
import re
import secrets
from dataclasses import dataclass, field
from typing import Any

from .exceptions import ValidationError
from .marks import isoformat, mint, random_nonce, redact, utc_now
from .models import DonationRecord, RegistryDocument
from .ports import CheckoutIntent, Clock, NonceSource, PaymentProcessor, PaymentStatus, RegistryStore

logger = logging.getLogger(__name__)

DEFAULT_SUCCESS_URL = "http://localhost:3000/success.html?session_id={CHECKOUT_SESSION_ID}"
DEFAULT_CANCEL_URL = "http://localhost:3000/index.html"


@dataclass(frozen=True)
class Confirmation:
    """Outcome of confirming a donation session."""

    status: PaymentStatus
    donation: DonationRecord | None = None

    @property
    def verified(self) -> bool:
        return self.status is PaymentStatus.PAID


@dataclass(frozen=True)
class LedgerSummary:
    total_amount: int
    count: int


def canonical_email(email: str | None) -> str:
    return (email or "").strip().lower()


def derive_display_handle(email: str | None) -> str:
    """
    Derive a display handle from the email local-part.

    Falls back to ``user`` plus six random digits when no usable
    local-part exists.
    """
    email = email or ""
    if "@" in email:
        local = re.sub(r"[^a-z0-9._-]", "", email.split("@", 1)[0].lower())
        if local:
            return local
    return f"user{secrets.randbelow(1_000_000):06d}"


@dataclass
class DonationLedger:
    """
    Domain service for donation recording.

    Orchestrates checkout creation, payment confirmation and idempotent
    persistence of DonationRecords.
    """

    store: RegistryStore
    processor: PaymentProcessor
    secret: str = field(repr=False)
    currency: str = "usd"
    success_url: str = DEFAULT_SUCCESS_URL
    cancel_url: str = DEFAULT_CANCEL_URL
    clock: Clock = utc_now
    rng: NonceSource = random_nonce

    def create_checkout(self, amount: int, email: str | None = None) -> CheckoutIntent:
        """
        Create a one-time donation intent with the processor.

        Args:
            amount: Donation in minor units (must be positive)
            email: Optional payer email to prefill

        Returns:
            CheckoutIntent with the processor session id and payment URL

        Raises:
            ValidationError: If amount is not positive
            UpstreamError: If the processor call fails
        """
        if not isinstance(amount, int) or amount <= 0:
            raise ValidationError("Donation amount must be a positive number of minor units")

        return self.processor.create_intent(
            mode="payment",
            amount=amount,
            currency=self.currency,
            customer_email=canonical_email(email) or None,
            success_url=self.success_url,
            cancel_url=self.cancel_url,
            metadata={"kind": "donation"},
        )

    def confirm(self, session_id: str) -> Confirmation:
        """
        Confirm a session with the processor and record it if paid.

        No record is created for an unpaid or unknown session.

        Raises:
            UpstreamError: If the processor call fails
        """
        intent = self.processor.retrieve_intent(session_id)
        if intent is None or not intent.is_paid:
            logger.info("Session %s is unpaid or missing", session_id)
            return Confirmation(status=PaymentStatus.UNPAID_OR_MISSING)

        donation = self.record_payment(
            intent.id,
            intent.customer_email,
            intent.customer_name,
            intent.amount_total,
        )
        return Confirmation(status=PaymentStatus.PAID, donation=donation)

    def record_payment(
        self,
        session_id: str,
        email: str | None,
        name: str | None,
        amount: int | None,
    ) -> DonationRecord:
        """
        Record a paid session exactly once.

        Returns:
            The stored DonationRecord (new or existing)

        Raises:
            ValidationError: If session_id is empty or amount is negative
        """
        with self.store.transaction() as document:
            return self.apply_payment(document, session_id, email, name, amount)

    def apply_payment(
        self,
        document: RegistryDocument,
        session_id: str,
        email: str | None,
        name: str | None,
        amount: int | None,
    ) -> DonationRecord:
        """
        Record a paid session into an open document.

        Callers must hold the store transaction; ``record_payment`` and the
        order engine both go through here.
        """
        if not session_id:
            raise ValidationError("Processor session id is required")
        if amount is not None and amount < 0:
            raise ValidationError("Payment amount cannot be negative")

        email = canonical_email(email)
        name = (name or "").strip()

        existing = document.find_donation(session_id)
        if existing is not None:
            self._backfill(existing, email, name, amount)
            return existing

        record = DonationRecord(
            session_id=session_id,
            email=email,
            name=name,
            amount=amount or 0,
            created_at=isoformat(self.clock()),
            mark=mint(email, self.secret, self.clock, self.rng),
            display_handle=derive_display_handle(email),
        )
        document.donations.append(record)
        logger.info("Recorded donation %s, minted mark %s", session_id, redact(record.mark))
        return record

    def _backfill(self, record: DonationRecord, email: str, name: str, amount: int | None) -> None:
        if not record.email and email:
            record.email = email
        if not record.name and name:
            record.name = name
        if not record.amount and amount:
            record.amount = amount
        if not record.created_at:
            record.created_at = isoformat(self.clock())
        if not record.mark:
            record.mark = mint(record.email, self.secret, self.clock, self.rng)
            logger.info("Backfilled mark %s for %s", redact(record.mark), record.session_id)

    def public_donations(self) -> list[dict[str, Any]]:
        """Display views of all donations, newest last."""
        return [d.public_view() for d in self.store.load().donations]

    def summary(self) -> LedgerSummary:
        donations = self.store.load().donations
        return LedgerSummary(total_amount=sum(d.amount for d in donations), count=len(donations))

"""
Order engine - Pending orders reconciled with confirmed payments.

Order lifecycle (forward-only):

    PENDING -> PAID   (payment confirmed for the order's correlation id)

PAID is terminal. Reconciling an already paid order reads the settled
state and changes nothing: not the status, the mark or ``updated_at``.
The processor session id, subscription id and mark are each set once.
"""

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from .exceptions import AlreadyPaid, EmptyOrder, InvalidTotal, OrderNotFound, ValidationError
from .ledger import DEFAULT_CANCEL_URL, DEFAULT_SUCCESS_URL, DonationLedger, canonical_email
from .marks import isoformat, utc_now
from .models import BillingMode, DonationRecord, LineItem, OrderRecord, OrderStatus
from .ports import CheckoutIntent, Clock, PaymentProcessor, PaymentStatus, RegistryStore

logger = logging.getLogger(__name__)

ORDER_ID_METADATA_KEY = "order_id"


@dataclass(frozen=True)
class Reconciliation:
    """Outcome of reconciling a confirmed session."""

    status: PaymentStatus
    donation: DonationRecord | None = None
    order: OrderRecord | None = None


def item_amount(item: LineItem) -> int:
    """
    Minor-unit contribution of one line item.

    ``amount_minor`` wins; otherwise the major-unit ``amount`` is scaled by
    100 and rounded half-up.

    Raises:
        ValidationError: If the item has no usable amount or quantity
    """
    if item.quantity < 1:
        raise ValidationError(f"Line item {item.name!r} has an invalid quantity")

    if item.amount_minor is not None:
        unit = int(item.amount_minor)
    elif item.amount is not None:
        try:
            major = Decimal(str(item.amount))
        except InvalidOperation:
            raise ValidationError(f"Line item {item.name!r} has an invalid amount") from None
        if not major.is_finite():
            raise ValidationError(f"Line item {item.name!r} has an invalid amount")
        unit = int((major * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    else:
        raise ValidationError(f"Line item {item.name!r} has no amount")

    if unit < 0:
        raise ValidationError(f"Line item {item.name!r} has a negative amount")

    return unit * item.quantity


def order_total(items: Iterable[LineItem]) -> int:
    return sum(item_amount(item) for item in items)


@dataclass
class OrderEngine:
    """
    Domain service for orders.

    Creates pending orders, attaches processor checkout sessions and
    settles orders when payment is confirmed. Payment recording is
    delegated to the DonationLedger inside the same store transaction.
    """

    store: RegistryStore
    processor: PaymentProcessor
    ledger: DonationLedger
    currency: str = "usd"
    success_url: str = DEFAULT_SUCCESS_URL
    cancel_url: str = DEFAULT_CANCEL_URL
    clock: Clock = utc_now

    def create_order(
        self,
        app: str,
        email: str,
        line_items: Iterable[LineItem | dict[str, Any]],
        billing_mode: BillingMode | str = BillingMode.PAYMENT,
    ) -> OrderRecord:
        """
        Create a pending order.

        Raises:
            EmptyOrder: If there are no line items
            InvalidTotal: If the computed total is not positive
            ValidationError: If an item, the email or the billing mode is invalid
        """
        items = [i if isinstance(i, LineItem) else LineItem.from_dict(i) for i in line_items]
        if not items:
            raise EmptyOrder("Order has no line items")

        total = order_total(items)
        if total <= 0:
            raise InvalidTotal(f"Order total must be positive, got {total}")

        email = canonical_email(email)
        if "@" not in email:
            raise ValidationError("A valid email is required")

        try:
            mode = BillingMode(billing_mode)
        except ValueError:
            raise ValidationError(f"Unknown billing mode {billing_mode!r}") from None

        now = isoformat(self.clock())
        order = OrderRecord(
            order_id=uuid.uuid4().hex,
            email=email,
            app=(app or "").strip(),
            line_items=items,
            billing_mode=mode,
            total_amount=total,
            created_at=now,
            updated_at=now,
        )
        with self.store.transaction() as document:
            document.orders.append(order)

        logger.info("Created order %s for %s (%d)", order.order_id, order.app, total)
        return order

    def attach_payment_intent(self, order_id: str) -> CheckoutIntent:
        """
        Create a processor checkout for an order and remember its session.

        The processor is called outside the store transaction; the session
        id is only stored once the processor has answered, and only if the
        order has none yet.

        Raises:
            OrderNotFound: If the order does not exist
            AlreadyPaid: If the order is already paid
            InvalidTotal: If the stored total is not positive
            UpstreamError: If the processor call fails
        """
        order = self._check_payable(self.store.load().find_order(order_id), order_id)

        intent = self.processor.create_intent(
            mode=order.billing_mode.value,
            amount=order.total_amount,
            currency=self.currency,
            customer_email=order.email or None,
            success_url=self.success_url,
            cancel_url=self.cancel_url,
            metadata={ORDER_ID_METADATA_KEY: order.order_id},
        )

        with self.store.transaction() as document:
            stored = document.find_order(order_id)
            if stored is not None and stored.session_id is None:
                stored.session_id = intent.id
                stored.updated_at = isoformat(self.clock())
            elif stored is not None:
                logger.info("Order %s keeps session %s, new intent %s not stored", order_id, stored.session_id, intent.id)

        return intent

    def confirm(self, session_id: str) -> Reconciliation:
        """
        Confirm a session with the processor and reconcile it.

        Raises:
            UpstreamError: If the processor call fails
        """
        intent = self.processor.retrieve_intent(session_id)
        if intent is None or not intent.is_paid:
            logger.info("Session %s is unpaid or missing", session_id)
            return Reconciliation(status=PaymentStatus.UNPAID_OR_MISSING)

        return self.reconcile(
            intent.id,
            intent.customer_email,
            intent.metadata.get(ORDER_ID_METADATA_KEY),
            amount=intent.amount_total,
            name=intent.customer_name,
            subscription_id=intent.subscription_id,
        )

    def reconcile(
        self,
        session_id: str,
        email: str | None,
        order_id: str | None = None,
        *,
        amount: int | None = None,
        name: str | None = None,
        subscription_id: str | None = None,
    ) -> Reconciliation:
        """
        Record a confirmed payment and settle its order, if any.

        The donation is always recorded. An unknown order id is ignored.
        """
        with self.store.transaction() as document:
            donation = self.ledger.apply_payment(document, session_id, email, name, amount)

            order = document.find_order(order_id) if order_id else None
            if order is not None and order.status is OrderStatus.PENDING:
                order.status = OrderStatus.PAID
                order.updated_at = isoformat(self.clock())
                if order.mark is None:
                    order.mark = donation.mark
                if order.session_id is None:
                    order.session_id = session_id
                if order.subscription_id is None and subscription_id:
                    order.subscription_id = subscription_id
                logger.info("Order %s paid by session %s", order.order_id, session_id)
            elif order_id and order is None:
                logger.warning("Session %s references unknown order %s", session_id, order_id)

        return Reconciliation(status=PaymentStatus.PAID, donation=donation, order=order)

    def get_order(self, order_id: str) -> OrderRecord:
        order = self.store.load().find_order(order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found")
        return order

    def _check_payable(self, order: OrderRecord | None, order_id: str) -> OrderRecord:
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found")
        if order.status is OrderStatus.PAID:
            raise AlreadyPaid(f"Order {order_id} is already paid")
        if order.total_amount <= 0:
            raise InvalidTotal(f"Order {order_id} has a non-positive total")
        return order

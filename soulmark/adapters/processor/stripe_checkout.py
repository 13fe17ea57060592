"""
Stripe Checkout adapter - Implements PaymentProcessor protocol.

Intents are Stripe Checkout Sessions. Stripe failures are surfaced as
UpstreamError; a lookup of a session Stripe does not know returns None so
the domain treats it as "unpaid or missing" rather than a failure.
No retries are attempted here.
"""

import logging
from typing import Any

import stripe

from soulmark.domain.exceptions import UpstreamError
from soulmark.domain.ports import CheckoutIntent, RetrievedIntent

logger = logging.getLogger(__name__)

SUBSCRIPTION_INTERVAL = "month"


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


class StripeCheckoutProcessor:
    """
    Implements PaymentProcessor protocol via Stripe Checkout Sessions.

    Uses structural subtyping - no explicit inheritance from Protocol.
    The API key is passed per request; no global Stripe state is set.
    """

    def __init__(self, api_key: str, product_name: str = "Donation") -> None:
        self._api_key = api_key
        self.product_name = product_name

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
        price_data: dict[str, Any] = {
            "currency": currency.lower(),
            "product_data": {"name": self.product_name},
            "unit_amount": amount,
        }
        if mode == "subscription":
            price_data["recurring"] = {"interval": SUBSCRIPTION_INTERVAL}

        params: dict[str, Any] = {
            "mode": mode,
            "line_items": [{"price_data": price_data, "quantity": 1}],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }
        if customer_email:
            params["customer_email"] = customer_email
        if mode == "subscription":
            params["subscription_data"] = {"metadata": metadata}

        try:
            session = stripe.checkout.Session.create(api_key=self._api_key, **params)
        except stripe.StripeError as e:
            logger.error("Stripe session creation failed: %s", e)
            raise UpstreamError("Payment session creation failed") from e

        logger.info("Created checkout session %s (%s, %d %s)", session.id, mode, amount, currency)
        return CheckoutIntent(id=session.id, url=session.url)

    def retrieve_intent(self, intent_id: str) -> RetrievedIntent | None:
        try:
            session = stripe.checkout.Session.retrieve(intent_id, api_key=self._api_key)
        except stripe.InvalidRequestError as e:
            if getattr(e, "code", None) == "resource_missing":
                return None
            logger.error("Stripe session lookup failed: %s", e)
            raise UpstreamError("Payment verification failed") from e
        except stripe.StripeError as e:
            logger.error("Stripe session lookup failed: %s", e)
            raise UpstreamError("Payment verification failed") from e

        details = _field(session, "customer_details")
        subscription = _field(session, "subscription")
        if subscription is not None and not isinstance(subscription, str):
            subscription = _field(subscription, "id")
        metadata = _field(session, "metadata")

        return RetrievedIntent(
            id=_field(session, "id"),
            payment_status=_field(session, "payment_status") or "",
            amount_total=_field(session, "amount_total"),
            customer_email=_field(details, "email") or _field(session, "customer_email"),
            customer_name=_field(details, "name"),
            metadata={str(k): str(v) for k, v in dict(metadata).items()} if metadata else {},
            mode=_field(session, "mode"),
            subscription_id=subscription,
        )

"""Payment processor adapters."""

from .stripe_checkout import StripeCheckoutProcessor

__all__ = ["StripeCheckoutProcessor"]

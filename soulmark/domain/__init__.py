"""
Domain layer - Identity & Ledger Registry business logic.

This package contains the donation ledger, the identity registry and the
order engine. It defines its own port interfaces for storage and the
payment processor, keeping infrastructure behind adapters.
"""

from .exceptions import (
    AlreadyPaid,
    ConflictError,
    DisposableEmail,
    EmptyOrder,
    HandleFrozen,
    HandleTaken,
    InvalidTotal,
    MarkNotOwned,
    NotFoundError,
    OrderNotFound,
    OwnershipError,
    PolicyError,
    RegistryError,
    StateError,
    StorageError,
    UpstreamError,
    ValidationError,
)
from .identity import HandlePolicy, IdentityRegistry
from .ledger import Confirmation, DonationLedger, LedgerSummary
from .models import BillingMode, DonationRecord, Identity, LineItem, OrderRecord, OrderStatus, RegistryDocument
from .orders import OrderEngine, Reconciliation
from .ports import CheckoutIntent, PaymentProcessor, PaymentStatus, RegistryStore, RetrievedIntent

__all__ = [
    "AlreadyPaid",
    "BillingMode",
    "CheckoutIntent",
    "Confirmation",
    "ConflictError",
    "DisposableEmail",
    "DonationLedger",
    "DonationRecord",
    "EmptyOrder",
    "HandleFrozen",
    "HandlePolicy",
    "HandleTaken",
    "Identity",
    "IdentityRegistry",
    "InvalidTotal",
    "LedgerSummary",
    "LineItem",
    "MarkNotOwned",
    "NotFoundError",
    "OrderEngine",
    "OrderNotFound",
    "OrderRecord",
    "OrderStatus",
    "OwnershipError",
    "PaymentProcessor",
    "PaymentStatus",
    "PolicyError",
    "Reconciliation",
    "RegistryDocument",
    "RegistryError",
    "RegistryStore",
    "RetrievedIntent",
    "StateError",
    "StorageError",
    "UpstreamError",
    "ValidationError",
]

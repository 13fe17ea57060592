"""
FastAPI dependencies - Dependency injection factories.

Services are built once during the app lifespan and stored on
``app.state``; these factories hand them to routes.
"""

from fastapi import Request

from soulmark.domain.identity import IdentityRegistry
from soulmark.domain.ledger import DonationLedger
from soulmark.domain.orders import OrderEngine
from soulmark.domain.ports import RegistryStore


def get_store(request: Request) -> RegistryStore:
    return request.app.state.store


def get_ledger(request: Request) -> DonationLedger:
    return request.app.state.ledger


def get_identity_registry(request: Request) -> IdentityRegistry:
    return request.app.state.identity_registry


def get_order_engine(request: Request) -> OrderEngine:
    return request.app.state.order_engine

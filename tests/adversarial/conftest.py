"""
Shared fixtures for adversarial tests.

Provides a file-backed registry and services built on it, so concurrent
attacks exercise the real lock and atomic-write path.
"""

from pathlib import Path

import pytest

from soulmark.adapters.store.file import JsonFileRegistryStore
from soulmark.domain.identity import IdentityRegistry
from soulmark.domain.ledger import DonationLedger
from soulmark.domain.orders import OrderEngine

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@pytest.fixture
def file_store(tmp_path: Path) -> JsonFileRegistryStore:
    return JsonFileRegistryStore(tmp_path / "registry.json")


@pytest.fixture
def file_ledger(file_store, processor) -> DonationLedger:
    return DonationLedger(store=file_store, processor=processor, secret="race-secret")


@pytest.fixture
def file_registry(file_store) -> IdentityRegistry:
    return IdentityRegistry(store=file_store)


@pytest.fixture
def file_engine(file_store, processor, file_ledger) -> OrderEngine:
    return OrderEngine(store=file_store, processor=processor, ledger=file_ledger)

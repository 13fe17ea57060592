"""
Adversarial tests for race condition attack prevention.

Verifies that concurrent operations against one registry are serialized,
preventing attackers from exploiting races to:
- Mint several marks for one payment
- Bind one handle to two emails, or one email to two identities
- Lose updates through interleaved read-modify-write cycles
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from soulmark.domain.exceptions import HandleTaken

# Apply adversarial marker to all tests in this module
pytestmark = pytest.mark.adversarial


class TestRaceConditionAttacks:
    def test_concurrent_confirmations_mint_one_mark(self, file_ledger, file_store) -> None:
        """
        Simulate a payer hammering the verify endpoint for one session.

        Expected defense: exactly one record and every caller sees the same mark.
        """
        num_attackers = 8

        with ThreadPoolExecutor(max_workers=num_attackers) as executor:
            futures = [
                executor.submit(file_ledger.record_payment, "cs_race", "a@x.com", "Ava", 2500)
                for _ in range(num_attackers)
            ]
            marks = {f.result().mark for f in futures}

        assert len(marks) == 1
        assert len(file_store.load().donations) == 1

    def test_concurrent_claims_exactly_one_owner(self, file_ledger, file_registry, file_store) -> None:
        """
        Simulate several payers racing for the same handle.

        Expected defense: exactly one claim succeeds, all others get HandleTaken.
        """
        emails = [f"user{i}@x.com" for i in range(6)]
        marks = {e: file_ledger.record_payment(f"cs_{e}", e, None, 100).mark for e in emails}
        results: list[str] = []
        results_lock = threading.Lock()

        def attack_claim(email: str) -> None:
            try:
                file_registry.claim_handle(email, "nova", marks[email])
                outcome = "ok"
            except HandleTaken:
                outcome = "taken"
            with results_lock:
                results.append(outcome)

        with ThreadPoolExecutor(max_workers=len(emails)) as executor:
            for f in [executor.submit(attack_claim, e) for e in emails]:
                f.result()

        assert results.count("ok") == 1
        assert results.count("taken") == len(emails) - 1

        identities = file_store.load().identities
        assert len(identities) == 1
        assert identities[0].handle == "nova"

    def test_concurrent_claims_same_email_one_identity(self, file_ledger, file_registry, file_store) -> None:
        """Parallel claims by one email converge on a single identity."""
        mark = file_ledger.record_payment("cs_1", "a@x.com", None, 100).mark

        with ThreadPoolExecutor(max_workers=5) as executor:
            futures = [
                executor.submit(file_registry.claim_handle, "a@x.com", "nova", mark, f"dev-{i % 2}")
                for i in range(5)
            ]
            for f in futures:
                f.result()

        identities = file_store.load().identities
        assert len(identities) == 1
        assert identities[0].marks == [mark]
        assert sorted(identities[0].device_ids) == ["dev-0", "dev-1"]

    def test_no_lost_updates(self, file_ledger, file_store) -> None:
        """Distinct payments recorded in parallel are all kept."""
        with ThreadPoolExecutor(max_workers=10) as executor:
            futures = [
                executor.submit(file_ledger.record_payment, f"cs_{i}", f"u{i}@x.com", None, 100)
                for i in range(30)
            ]
            for f in futures:
                f.result()

        assert len(file_store.load().donations) == 30

    def test_concurrent_reconcile_settles_once(self, file_engine, file_store) -> None:
        order = file_engine.create_order("shop", "a@x.com", [{"name": "a", "amount_minor": 500}])

        with ThreadPoolExecutor(max_workers=6) as executor:
            futures = [
                executor.submit(file_engine.reconcile, "cs_1", "a@x.com", order.order_id, amount=500)
                for _ in range(6)
            ]
            results = [f.result() for f in futures]

        assert {r.donation.mark for r in results} == {results[0].donation.mark}
        stored = file_store.load()
        assert len(stored.donations) == 1
        assert stored.find_order(order.order_id).mark == results[0].donation.mark

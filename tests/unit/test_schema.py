"""
Unit tests for registry document normalization.

Tests verify:
- Missing and unparsable payloads are reported, never raised
- Collections of the wrong type are coerced to empty lists
- Legacy donation shapes are upgraded on read
"""

import json

import pytest

from soulmark.domain.models import DonationRecord, OrderStatus, RegistryDocument
from soulmark.domain.schema import SCHEMA_VERSION, LoadOutcome, decode_document, encode_document


class TestDecodeDocument:
    def test_missing_payload(self) -> None:
        document, outcome = decode_document(None)
        assert outcome is LoadOutcome.MISSING
        assert document == RegistryDocument()

    def test_unparsable_payload_is_corrupt(self) -> None:
        document, outcome = decode_document("{not json")
        assert outcome is LoadOutcome.CORRUPT
        assert document.donations == []
        assert document.identities == []
        assert document.orders == []

    def test_invalid_utf8_is_corrupt(self) -> None:
        _, outcome = decode_document(b"\xff\xfe\xfa")
        assert outcome is LoadOutcome.CORRUPT

    def test_donations_not_a_list(self) -> None:
        """{"donations": "not-a-list"} loads with donations = []."""
        document, outcome = decode_document(json.dumps({"donations": "not-a-list"}))
        assert outcome is LoadOutcome.REPAIRED
        assert document.donations == []
        assert document.identities == []
        assert document.orders == []

    def test_non_object_entries_dropped(self) -> None:
        payload = json.dumps(
            {
                "schema_version": SCHEMA_VERSION,
                "donations": [{"session_id": "cs_1"}, "junk", 3],
                "identities": [],
                "orders": [],
            }
        )
        document, outcome = decode_document(payload)
        assert outcome is LoadOutcome.REPAIRED
        assert [d.session_id for d in document.donations] == ["cs_1"]

    def test_root_not_an_object(self) -> None:
        document, outcome = decode_document("42")
        assert outcome is LoadOutcome.REPAIRED
        assert document == RegistryDocument()

    def test_clean_round_trip(self) -> None:
        original = RegistryDocument(donations=[DonationRecord(session_id="cs_1", email="a@x.com", amount=2500)])
        document, outcome = decode_document(encode_document(original))
        assert outcome is LoadOutcome.CLEAN
        assert document == original


class TestLegacyUpgrade:
    def test_bare_list_is_legacy_donations(self) -> None:
        payload = json.dumps([{"id": "cs_1", "email": "a@x.com", "amount": 100}])
        document, outcome = decode_document(payload)
        assert outcome is LoadOutcome.REPAIRED
        assert document.donations[0].session_id == "cs_1"
        assert document.donations[0].amount == 100

    def test_legacy_donation_keys_renamed(self) -> None:
        legacy = {
            "id": "cs_9",
            "email": "a@x.com",
            "amount": 2500,
            "soulmark": "f" * 64,
            "timestamp": "2025-11-01T10:00:00.000Z",
            "username": "ava",
            "visibility": {"showName": False, "showUsername": False, "showAmount": False},
        }
        document, _ = decode_document(json.dumps({"donations": [legacy]}))
        donation = document.donations[0]
        assert donation.session_id == "cs_9"
        assert donation.mark == "f" * 64
        assert donation.created_at == "2025-11-01T10:00:00.000Z"
        assert donation.display_handle == "ava"
        # fully hidden donor still shows the amount
        assert donation.visibility.show_amount is True

    def test_unknown_order_status_defaults_to_pending(self) -> None:
        payload = json.dumps({"orders": [{"order_id": "o1", "status": "weird", "total_amount": 5}]})
        document, _ = decode_document(payload)
        assert document.orders[0].status is OrderStatus.PENDING

    def test_duplicate_sessions_keep_first_entry(self) -> None:
        legacy = [
            {"id": "cs_1", "email": "a@x.com", "amount": 100, "soulmark": "a" * 64},
            {"id": "cs_1", "email": "a@x.com", "amount": 100, "soulmark": "b" * 64},
            {"id": "cs_2", "email": "b@x.com", "amount": 200, "soulmark": "c" * 64},
        ]
        document, outcome = decode_document(json.dumps(legacy))

        assert outcome is LoadOutcome.REPAIRED
        assert [d.session_id for d in document.donations] == ["cs_1", "cs_2"]
        assert document.donations[0].mark == "a" * 64

    def test_duplicate_sessions_in_current_schema_are_repaired(self) -> None:
        donation = {"session_id": "cs_1", "email": "a@x.com", "amount": 100}
        payload = json.dumps({"schema_version": SCHEMA_VERSION, "donations": [donation, donation]})
        document, outcome = decode_document(payload)

        assert outcome is LoadOutcome.REPAIRED
        assert len(document.donations) == 1

    @pytest.mark.parametrize("value", ["false", "true", 1, None])
    def test_handle_bound_requires_a_boolean(self, value) -> None:
        payload = json.dumps({"donations": [{"session_id": "cs_1", "handle_bound": value}]})
        document, _ = decode_document(payload)
        assert document.donations[0].handle_bound is False

    def test_handle_bound_true_preserved(self) -> None:
        payload = json.dumps({"donations": [{"session_id": "cs_1", "handle_bound": True, "bound_handle": "nova"}]})
        document, _ = decode_document(payload)
        assert document.donations[0].handle_bound is True

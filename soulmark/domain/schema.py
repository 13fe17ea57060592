"""
Registry document schema - decoding, normalization and encoding.

All "upgrade the old shape on read" logic lives here, so every store
adapter returns the same structurally valid document. ``decode_document``
never raises on bad content: it reports what it had to do through
``LoadOutcome`` and leaves persistence and logging to the store.

Normalization rules (schema version 1):
- the root must be an object; a bare list is a legacy donations-only file
- ``donations``, ``identities`` and ``orders`` must be lists, else ``[]``
- list entries that are not objects are dropped
- donations repeating an earlier ``session_id`` are dropped; the first wins
- legacy donation keys are renamed (``id`` -> ``session_id``,
  ``soulmark`` -> ``mark``, ``timestamp`` -> ``created_at``,
  ``username`` -> ``display_handle``, camelCase visibility flags)
"""

import json
from enum import Enum
from typing import Any

from .models import DonationRecord, Identity, OrderRecord, RegistryDocument

SCHEMA_VERSION = 1

COLLECTIONS = ("donations", "identities", "orders")

_LEGACY_DONATION_KEYS = {
    "id": "session_id",
    "soulmark": "mark",
    "timestamp": "created_at",
    "username": "display_handle",
    "handleBound": "handle_bound",
    "boundHandle": "bound_handle",
}


class LoadOutcome(Enum):
    """What decoding had to do to produce a valid document."""

    CLEAN = "clean"
    MISSING = "missing"
    CORRUPT = "corrupt"
    REPAIRED = "repaired"


def decode_document(payload: str | bytes | None) -> tuple[RegistryDocument, LoadOutcome]:
    """
    Decode a stored payload into a registry document.

    Returns an empty document with MISSING for no payload, an empty
    document with CORRUPT for unparsable JSON, and the normalized
    document with REPAIRED or CLEAN otherwise.
    """
    if payload is None:
        return RegistryDocument(), LoadOutcome.MISSING

    try:
        raw = json.loads(payload)
    except (ValueError, UnicodeDecodeError):
        return RegistryDocument(), LoadOutcome.CORRUPT

    document, repaired = normalize(raw)
    return document, LoadOutcome.REPAIRED if repaired else LoadOutcome.CLEAN


def normalize(raw: Any) -> tuple[RegistryDocument, bool]:
    """Coerce a parsed JSON value into a document. Returns (document, repaired)."""
    repaired = False

    if isinstance(raw, list):
        raw = {"donations": raw}
        repaired = True
    elif not isinstance(raw, dict):
        raw = {}
        repaired = True

    if raw.get("schema_version") != SCHEMA_VERSION:
        repaired = True

    collections: dict[str, list[dict[str, Any]]] = {}
    for name in COLLECTIONS:
        value = raw.get(name)
        if not isinstance(value, list):
            value = []
            repaired = True
        entries = [entry for entry in value if isinstance(entry, dict)]
        if len(entries) != len(value):
            repaired = True
        collections[name] = entries

    donations = []
    seen_sessions: set[str] = set()
    for entry in collections["donations"]:
        upgraded = _upgrade_donation(entry)
        if upgraded is not entry:
            repaired = True
        record = DonationRecord.from_dict(upgraded)
        if record.session_id:
            if record.session_id in seen_sessions:
                repaired = True
                continue
            seen_sessions.add(record.session_id)
        donations.append(record)

    document = RegistryDocument(
        donations=donations,
        identities=[Identity.from_dict(entry) for entry in collections["identities"]],
        orders=[OrderRecord.from_dict(entry) for entry in collections["orders"]],
    )
    return document, repaired


def encode_document(document: RegistryDocument) -> str:
    payload = {
        "schema_version": SCHEMA_VERSION,
        "donations": [d.to_dict() for d in document.donations],
        "identities": [i.to_dict() for i in document.identities],
        "orders": [o.to_dict() for o in document.orders],
    }
    return json.dumps(payload, indent=2)


def _upgrade_donation(entry: dict[str, Any]) -> dict[str, Any]:
    """Rename legacy keys. Returns the same object when nothing changed."""
    legacy = [key for key in _LEGACY_DONATION_KEYS if key in entry]
    if not legacy:
        return entry

    upgraded = dict(entry)
    for old in legacy:
        new = _LEGACY_DONATION_KEYS[old]
        value = upgraded.pop(old)
        upgraded.setdefault(new, value)
    return upgraded

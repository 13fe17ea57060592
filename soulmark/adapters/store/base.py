"""
Payload store base - Self-healing load/save over a single encoded payload.

Subclasses provide raw read/write of the encoded document and a way to
keep a copy of a corrupt payload. This class owns recovery, logging and
the per-process single-writer lock.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from soulmark.domain.exceptions import StorageError
from soulmark.domain.models import RegistryDocument
from soulmark.domain.schema import LoadOutcome, decode_document, encode_document

logger = logging.getLogger(__name__)


def backup_stamp(moment: datetime | None = None) -> str:
    """Timestamp suffix for corrupt-payload backups."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")


class PayloadRegistryStore:
    """
    Implements RegistryStore over an encoded payload.

    Every mutation goes through ``transaction()``, which holds a
    re-entrant lock across load, mutate and save. Reads take the same
    lock only long enough to load a consistent snapshot.
    """

    description = "registry"

    def __init__(self) -> None:
        self._lock = threading.RLock()

    def _read(self) -> str | bytes | None:
        raise NotImplementedError

    def _write(self, payload: str) -> None:
        raise NotImplementedError

    def _preserve(self, payload: str | bytes, stamp: str) -> str:
        """Keep a copy of a corrupt payload. Returns where it went."""
        raise NotImplementedError

    def load(self) -> RegistryDocument:
        with self._lock:
            return self._load_locked()

    def save(self, document: RegistryDocument) -> None:
        with self._lock:
            self._save_locked(document)

    @contextmanager
    def transaction(self) -> Iterator[RegistryDocument]:
        with self._lock:
            document = self._load_locked()
            yield document
            self._save_locked(document)

    def _load_locked(self) -> RegistryDocument:
        try:
            payload = self._read()
        except OSError as e:
            raise StorageError(f"Cannot read {self.description}: {e}") from e

        document, outcome = decode_document(payload)

        if outcome is LoadOutcome.MISSING:
            logger.info("No %s found, initializing empty registry", self.description)
            self._save_locked(document)
        elif outcome is LoadOutcome.CORRUPT:
            try:
                backup = self._preserve(payload, backup_stamp())
            except OSError as e:
                raise StorageError(f"Cannot back up corrupt {self.description}: {e}") from e
            logger.error(
                "Corrupt %s preserved as %s; registry reset to empty, previous data lost",
                self.description,
                backup,
            )
            self._save_locked(document)
        elif outcome is LoadOutcome.REPAIRED:
            logger.warning("Malformed %s normalized and saved", self.description)
            self._save_locked(document)

        return document

    def _save_locked(self, document: RegistryDocument) -> None:
        try:
            self._write(encode_document(document))
        except OSError as e:
            raise StorageError(f"Cannot write {self.description}: {e}") from e

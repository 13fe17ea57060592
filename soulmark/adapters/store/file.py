"""
JSON file registry store - Single-document file persistence.

Writes go to a temporary file in the same directory followed by an atomic
rename, so a crash mid-write never leaves a truncated registry. A corrupt
file is copied to ``<name>.corrupt-<timestamp>`` before being reset.
"""

import logging
import os
import tempfile
from pathlib import Path

from .base import PayloadRegistryStore

logger = logging.getLogger(__name__)


class JsonFileRegistryStore(PayloadRegistryStore):
    """
    Implements RegistryStore via a JSON file.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Safe for one process; concurrent writers in other processes are not
    coordinated.
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path)
        self.description = f"registry file {self.path}"
        logger.info("Registry path: %s", self.path)

    def _read(self) -> bytes | None:
        if not self.path.exists():
            return None
        return self.path.read_bytes()

    def _write(self, payload: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _preserve(self, payload: str | bytes, stamp: str) -> str:
        backup = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        data = payload.encode() if isinstance(payload, str) else payload
        backup.write_bytes(data)
        return str(backup)

"""
In-memory registry store - Test double behind the RegistryStore port.

Holds the encoded payload rather than live objects, so callers get the
same copy semantics and normalization as the durable stores.
"""

from .base import PayloadRegistryStore


class InMemoryRegistryStore(PayloadRegistryStore):
    description = "in-memory registry"

    def __init__(self, payload: str | bytes | None = None) -> None:
        super().__init__()
        self.payload = payload
        self.backups: dict[str, str | bytes] = {}

    def _read(self) -> str | bytes | None:
        return self.payload

    def _write(self, payload: str) -> None:
        self.payload = payload

    def _preserve(self, payload: str | bytes, stamp: str) -> str:
        name = f"registry.corrupt-{stamp}"
        self.backups[name] = payload
        return name

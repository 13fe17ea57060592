"""Registry store adapters - Memory, JSON file and PostgreSQL implementations."""

from .file import JsonFileRegistryStore
from .memory import InMemoryRegistryStore
from .postgres import PostgresRegistryStore, run_migrations

__all__ = ["InMemoryRegistryStore", "JsonFileRegistryStore", "PostgresRegistryStore", "run_migrations"]

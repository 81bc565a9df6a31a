"""
Persistence port and adapters.

- **port.py**: the ``Store`` protocol the services depend on
- **memory_store.py**: ``InMemoryStore`` for tests and local development
- **sql_store.py**: ``SqlStore`` on PostgreSQL (imported lazily by callers
  that need it, so the in-memory path does not require a database driver)
"""

from questlog.store.memory_store import InMemoryStore
from questlog.store.port import UNCHECKED, Store

__all__ = ["InMemoryStore", "Store", "UNCHECKED"]

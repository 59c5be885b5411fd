"""Persistence for Luna.

Modules:
    kv_store   — String key-value store contract and its in-memory / JSON-file backends
    repository — Typed profile, cycle and advice-cache operations over a store
"""

from luna.storage.kv_store import (
    InMemoryStore,
    JsonFileStore,
    KeyValueStore,
    StorageError,
    StorageQuotaError,
)
from luna.storage.repository import CycleRepository, RecordDecodeError, advice_date_key

__all__ = [
    "CycleRepository",
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStore",
    "RecordDecodeError",
    "StorageError",
    "StorageQuotaError",
    "advice_date_key",
]

"""
Persistence for SecurePay state.

- base: KeyValueStore protocol, slot keys, in-memory store
- sql: SQLAlchemy-backed store
- loaders: validating deserializers with default fallback
- repository: typed get/save per data set
"""

from securepay.storage.base import InMemoryKeyValueStore, KeyValueStore
from securepay.storage.loaders import LoadResult
from securepay.storage.repository import SettingsRepository
from securepay.storage.sql import SqlKeyValueStore

__all__ = [
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "LoadResult",
    "SettingsRepository",
    "SqlKeyValueStore",
]

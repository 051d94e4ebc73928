"""
Entity Store Package

Owns the ledger collections and persists them through a swappable
key-value storage backend.
"""

from zenledger.store.interface import (
    ACCOUNTS_KEY,
    CONFIG_KEY,
    TAGS_KEY,
    TRANSACTIONS_KEY,
    KeyValueStorageInterface,
    CorruptSlotError,
    StorageError,
    StorageUnavailableError,
)
from zenledger.store.memory import InMemoryKeyValueStorage
from zenledger.store.json_files import JsonFileKeyValueStorage
from zenledger.store.entity_store import (
    ACCOUNT_FILTER_PREF,
    SORT_PREF,
    TAG_FILTER_PREF,
    ConstraintViolation,
    EntityNotFoundError,
    EntityStore,
    LedgerError,
)

__all__ = [
    # Interface
    "KeyValueStorageInterface",
    "ACCOUNTS_KEY",
    "CONFIG_KEY",
    "TAGS_KEY",
    "TRANSACTIONS_KEY",
    # Storage exceptions
    "CorruptSlotError",
    "StorageError",
    "StorageUnavailableError",
    # Implementations
    "InMemoryKeyValueStorage",
    "JsonFileKeyValueStorage",
    # Entity store
    "ACCOUNT_FILTER_PREF",
    "SORT_PREF",
    "TAG_FILTER_PREF",
    "ConstraintViolation",
    "EntityNotFoundError",
    "EntityStore",
    "LedgerError",
]

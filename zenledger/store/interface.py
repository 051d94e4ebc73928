"""
Abstract Storage Interface

DESIGN DECISION: The ledger persists through a tiny key-value interface.
This allows us to:
1. Keep the original four-slot layout (transactions, accounts, tags, config)
2. Use in-memory storage for testing
3. Swap the file-backed store for anything that maps strings to strings
4. Keep ledger logic decoupled from storage implementation

The interface is intentionally simple - values are JSON strings and the
Entity Store decides what goes in them.
"""

from abc import ABC, abstractmethod
from typing import Optional


TRANSACTIONS_KEY = "zenledger_transactions"
ACCOUNTS_KEY = "zenledger_accounts"
TAGS_KEY = "zenledger_tags"
CONFIG_KEY = "zenledger_config"


class KeyValueStorageInterface(ABC):
    """
    Abstract interface for slot storage.

    Any storage implementation (files, browser storage bridge, a database
    table) must implement these methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read a slot.

        Args:
            key: Slot name

        Returns:
            The stored string, or None if the slot is absent

        Raises:
            CorruptSlotError: If the slot exists but is not valid text
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Write a slot, replacing any previous value.

        Args:
            key: Slot name
            value: String to store

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """
        Remove a slot. Removing an absent slot is not an error.

        Args:
            key: Slot name
        """
        pass

    def contains(self, key: str) -> bool:
        """Check whether a slot is present."""
        return self.get(key) is not None


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageUnavailableError(StorageError):
    """Could not reach the storage backend."""
    pass


class CorruptSlotError(StorageError):
    """A slot exists but its bytes cannot be read as text."""
    pass

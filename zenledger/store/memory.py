"""In-memory slot storage, used by tests and throwaway sessions."""

from typing import Optional

from zenledger.store.interface import KeyValueStorageInterface


class InMemoryKeyValueStorage(KeyValueStorageInterface):
    """Dict-backed storage. Nothing survives the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._slots: dict[str, str] = dict(initial or {})
        self.write_count = 0

    def get(self, key: str) -> Optional[str]:
        return self._slots.get(key)

    def set(self, key: str, value: str) -> None:
        self._slots[key] = value
        self.write_count += 1

    def delete(self, key: str) -> None:
        self._slots.pop(key, None)

"""
File-backed Slot Storage

DESIGN DECISION: Each slot is one JSON file in the data directory.
This keeps the original four-slot layout and means a user can copy,
inspect, or back up the files directly.

Writes go to a temporary file first and are moved into place, so a crash
mid-write never leaves a half-written slot behind. Transient OS errors
(locked files on some platforms, full sync folders) are retried.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from zenledger.config import get_settings
from zenledger.store.interface import (
    CorruptSlotError,
    KeyValueStorageInterface,
    StorageError,
    StorageUnavailableError,
)


_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+$")


class JsonFileKeyValueStorage(KeyValueStorageInterface):
    """One file per slot under a data directory."""

    def __init__(self, data_dir: Optional[Path] = None):
        self._dir = Path(data_dir) if data_dir else get_settings().ledger.data_dir
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(
                f"Cannot create data directory {self._dir}: {e}"
            )

    @property
    def data_dir(self) -> Path:
        return self._dir

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise StorageError(f"Invalid slot key: {key!r}")
        return self._dir / f"{key}.json"

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _read(self, path: Path) -> Optional[str]:
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _write(self, path: Path, value: str) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=self._dir, prefix=".slot-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return self._read(path)
        except UnicodeDecodeError as e:
            raise CorruptSlotError(f"Slot '{key}' is not valid UTF-8: {e}")
        except OSError as e:
            raise StorageError(f"Failed to read slot '{key}': {e}")

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self._write(path, value)
        except OSError as e:
            raise StorageError(f"Failed to write slot '{key}': {e}")

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete slot '{key}': {e}")

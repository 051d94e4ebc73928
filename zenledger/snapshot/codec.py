"""
Snapshot Codec

Serializes the three ledger collections to the portable JSON backup
document and restores them from it.

Document shape (keys in this order):
    {"transactions": [...], "accounts": [...], "tags": [...], "version": "1.2"}

RESTORE POLICY:
- The whole document is validated before anything is applied
- A collection present in the document replaces the current one wholesale
- A collection absent from the document is left untouched
- Derived values are never read from the document (old backups carry a
  cached account balance; it is ignored)
"""

import json
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from zenledger.models.ledger import Account, LedgerSnapshot, Tag, Transaction, dump_record
from zenledger.store.entity_store import EntityStore, LedgerError


SNAPSHOT_VERSION = "1.2"


class SnapshotDecodeError(LedgerError):
    """The backup document is malformed. Nothing was applied."""
    pass


class SnapshotDocument(BaseModel):
    """A decoded backup. Each collection is None when absent."""

    transactions: Optional[list[Transaction]] = None
    accounts: Optional[list[Account]] = None
    tags: Optional[list[Tag]] = None
    version: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.transactions is None and self.accounts is None and self.tags is None


class RestoreResult(BaseModel):
    """What a restore changed."""

    replaced: list[str] = Field(default_factory=list)
    version: Optional[str] = None
    transaction_count: int = 0
    account_count: int = 0
    tag_count: int = 0


_COLLECTIONS: dict[str, TypeAdapter] = {
    "transactions": TypeAdapter(list[Transaction]),
    "accounts": TypeAdapter(list[Account]),
    "tags": TypeAdapter(list[Tag]),
}


def encode_snapshot(snapshot: LedgerSnapshot, version: str = SNAPSHOT_VERSION) -> str:
    """
    Encode a snapshot as the portable backup document.

    Deterministic: the same snapshot always produces the same bytes, and
    decoding then re-encoding the output reproduces it exactly.
    """
    document = {
        "transactions": [dump_record(tx) for tx in snapshot.transactions],
        "accounts": [dump_record(account) for account in snapshot.accounts],
        "tags": [dump_record(tag) for tag in snapshot.tags],
        "version": version,
    }
    return json.dumps(document, ensure_ascii=False, separators=(",", ":"))


def decode_snapshot(text: str) -> SnapshotDocument:
    """
    Parse and validate a backup document.

    Raises:
        SnapshotDecodeError: On invalid JSON, a non-object document, a
            collection that is not a list, or any malformed record
    """
    try:
        raw: Any = json.loads(text)
    except (TypeError, ValueError) as e:
        raise SnapshotDecodeError(f"Backup is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise SnapshotDecodeError("Backup must be a JSON object")

    decoded: dict[str, Any] = {}
    for name, adapter in _COLLECTIONS.items():
        value = raw.get(name)
        if value is None:
            continue
        if not isinstance(value, list):
            raise SnapshotDecodeError(f"'{name}' must be a list")
        try:
            decoded[name] = adapter.validate_python(value)
        except ValidationError as e:
            raise SnapshotDecodeError(
                f"Invalid record in '{name}': {e.errors()[0]['msg']}"
            ) from e

    version = raw.get("version")
    if version is not None:
        decoded["version"] = str(version)

    return SnapshotDocument(**decoded)


def restore_snapshot(
    store: EntityStore,
    text: str,
    correlation_id: Optional[UUID] = None,
) -> RestoreResult:
    """
    Restore collections from a backup document into the store.

    Raises:
        SnapshotDecodeError: If the document is malformed (store unchanged)
    """
    logger = store.activity_logger
    try:
        document = decode_snapshot(text)
    except SnapshotDecodeError as e:
        logger.log_snapshot_rejected(str(e), correlation_id=correlation_id)
        raise

    replaced = store.replace_collections(
        accounts=document.accounts,
        tags=document.tags,
        transactions=document.transactions,
    )
    logger.log_snapshot_restored(replaced, document.version, correlation_id=correlation_id)

    return RestoreResult(
        replaced=replaced,
        version=document.version,
        transaction_count=len(document.transactions or []),
        account_count=len(document.accounts or []),
        tag_count=len(document.tags or []),
    )

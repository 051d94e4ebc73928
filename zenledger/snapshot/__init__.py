"""Backup document codec and CSV export."""

from zenledger.snapshot.codec import (
    SNAPSHOT_VERSION,
    RestoreResult,
    SnapshotDecodeError,
    SnapshotDocument,
    decode_snapshot,
    encode_snapshot,
    restore_snapshot,
)
from zenledger.snapshot.tabular import CSV_HEADER, export_csv, export_filename

__all__ = [
    "SNAPSHOT_VERSION",
    "RestoreResult",
    "SnapshotDecodeError",
    "SnapshotDocument",
    "decode_snapshot",
    "encode_snapshot",
    "restore_snapshot",
    "CSV_HEADER",
    "export_csv",
    "export_filename",
]

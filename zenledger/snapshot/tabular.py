"""
Tabular Export

One-way CSV export of the transaction log for spreadsheets.
References are resolved to display names at export time; the CSV is
never read back.
"""

import csv
import io
import json
from datetime import datetime, tzinfo
from typing import Optional

from zenledger.engine.views import account_label
from zenledger.engine.windows import local_date
from zenledger.models.ledger import LedgerSnapshot, Transaction


CSV_HEADER = [
    "Date",
    "Type",
    "Account",
    "To Account",
    "Amount",
    "Tags",
    "SubTags",
    "Note",
    "Confirmed",
]


def _row(tx: Transaction, snapshot: LedgerSnapshot, tz: Optional[tzinfo]) -> list[str]:
    tag_names = [
        tag.name for tag in (snapshot.find_tag(tag_id) for tag_id in tx.tags) if tag
    ]
    return [
        local_date(tx.date, tz).isoformat(),
        tx.type.value,
        account_label(snapshot.accounts, tx.account_id),
        account_label(snapshot.accounts, tx.to_account_id) if tx.is_transfer else "-",
        f"{tx.amount:.2f}",
        "; ".join(tag_names),
        json.dumps(tx.sub_tags, ensure_ascii=False),
        tx.note or "",
        "Yes" if tx.is_confirmed else "No",
    ]


def export_csv(snapshot: LedgerSnapshot, tz: Optional[tzinfo] = None) -> str:
    """Render every transaction as one CSV row, in log order."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for tx in snapshot.transactions:
        writer.writerow(_row(tx, snapshot, tz))
    return buffer.getvalue()


def export_filename(kind: str, now: Optional[datetime] = None) -> str:
    """
    Suggested download name, e.g. bookkeeping_backup_2024-05-01.json.

    Args:
        kind: "backup" (JSON) or "export" (CSV)
    """
    extensions = {"backup": "json", "export": "csv"}
    if kind not in extensions:
        raise ValueError(f"Unknown export kind: {kind}")
    day = (now or datetime.now()).date().isoformat()
    return f"bookkeeping_{kind}_{day}.{extensions[kind]}"

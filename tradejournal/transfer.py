"""
transfer.py
-----------

Export and import of journal data.

Exports:
    - JSON full backup: ``JournalStorage.export_data()`` rendered by ``dump_json``
    - CSV of trades with the fixed header ``EXPORT_HEADER``

Imports (picked by file extension):
    - ``.json``: a full backup; replaces trades and journal entries
    - ``.csv``: either a broker account history (see ``broker_import``),
      whose trades are appended unless already stored, or a CSV in the
      export layout, which replaces the trade list
"""

from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .broker_import import is_broker_history, parse_broker_history
from .errors import ImportFormatError
from .models import (
    Equity,
    JournalEntry,
    Trade,
    format_dt,
    new_id,
    parse_dt,
    to_float,
    to_optional_float,
)
from .storage import JournalStorage

logger = logging.getLogger(__name__)

EXPORT_HEADER = [
    "Date", "Symbol", "Direction", "Entry Price", "Exit Price", "Size",
    "P&L", "Commission", "Status", "Setup", "Risk", "Reward", "Notes", "Tags",
]

SUCCESS = "success"
ERROR = "error"


@dataclass
class ImportResult:
    status: str
    message: str
    trades_imported: int = 0
    entries_imported: int = 0
    duplicates: int = 0

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "message": self.message,
            "tradesImported": self.trades_imported,
            "entriesImported": self.entries_imported,
            "duplicates": self.duplicates,
        }


# ---------- export ----------
def dump_json(data: Dict[str, Any]) -> str:
    return json.dumps(data, indent=2)


def _num(x: Optional[float]) -> str:
    if x is None:
        return ""
    if float(x).is_integer():
        return str(int(x))
    return repr(float(x))


def _quote(s: str) -> str:
    return '"' + s.replace('"', '""') + '"'


def _plain(s: str) -> str:
    """Quote only when the value would otherwise break the row."""
    if any(c in s for c in ',"\n\r'):
        return _quote(s)
    return s


def export_csv(trades: Iterable[Trade]) -> str:
    lines = [",".join(EXPORT_HEADER)]
    for t in trades:
        lines.append(
            ",".join(
                [
                    format_dt(t.entry_date) or "",
                    _plain(t.symbol),
                    t.direction,
                    _num(t.entry_price),
                    _num(t.exit_price),
                    _num(t.size),
                    _num(t.pnl),
                    _num(t.commission),
                    "Open" if t.is_open else "Closed",
                    _plain(t.setup),
                    _num(t.risk),
                    _num(t.reward),
                    _quote(t.notes),
                    _quote(";".join(t.tags)),
                ]
            )
        )
    return "\n".join(lines)


# ---------- import ----------
def parse_json_backup(text: str) -> Tuple[List[Trade], List[JournalEntry]]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportFormatError(f"Invalid JSON: {e.msg}") from e

    if (
        not isinstance(data, dict)
        or not isinstance(data.get("trades"), list)
        or not isinstance(data.get("journal"), list)
    ):
        raise ImportFormatError("Invalid JSON format. Expected trades and journal arrays.")

    trades = [Trade.from_dict(d) for d in data["trades"] if isinstance(d, dict)]
    entries = [JournalEntry.from_dict(d) for d in data["journal"] if isinstance(d, dict)]
    return trades, entries


def _field(values: List[str], i: int) -> str:
    return values[i] if i < len(values) else ""


def parse_plain_csv(text: str) -> List[Trade]:
    """Parse a CSV in the export layout. Columns are read by position; the header row is skipped unchecked."""
    rows = list(csv.reader(io.StringIO(text)))
    trades: List[Trade] = []
    for values in rows[1:]:
        if not any(v.strip() for v in values):
            continue
        exit_price = to_optional_float(_field(values, 4))
        entry_date = parse_dt(_field(values, 0)) or datetime.now(timezone.utc)
        direction = _field(values, 2) or "long"
        tags = _field(values, 13)
        trades.append(
            Trade(
                id=new_id(),
                symbol=_field(values, 1),
                direction="short" if direction == "short" else "long",
                entry_price=to_float(_field(values, 3)),
                exit_price=exit_price,
                size=to_float(_field(values, 5)),
                # the export has a single date column
                entry_date=entry_date,
                exit_date=entry_date if exit_price is not None else None,
                pnl=to_optional_float(_field(values, 6)),
                commission=to_float(_field(values, 7)),
                is_open=_field(values, 8) == "Open",
                setup=_field(values, 9),
                risk=to_float(_field(values, 10)),
                reward=to_float(_field(values, 11)),
                notes=_field(values, 12),
                tags=[tag for tag in tags.split(";") if tag],
                instrument=Equity(),
            )
        )
    return trades


def trade_signature(trade: Trade) -> Tuple[Any, ...]:
    return (
        trade.symbol,
        format_dt(trade.entry_date),
        format_dt(trade.exit_date),
        trade.entry_price,
        trade.exit_price,
    )


def filter_new_trades(existing: Iterable[Trade], incoming: Iterable[Trade]) -> List[Trade]:
    """Drop incoming trades whose signature matches a stored one."""
    seen = {trade_signature(t) for t in existing}
    return [t for t in incoming if trade_signature(t) not in seen]


def import_file(storage: JournalStorage, filename: str, text: str) -> ImportResult:
    """Import ``text`` into ``storage``. Raises ImportFormatError for rejected files."""
    name = filename.lower()
    text = text.lstrip("\ufeff")

    if name.endswith(".json"):
        trades, entries = parse_json_backup(text)
        storage.import_data(trades, entries)
        logger.info("Imported backup: %d trades, %d journal entries", len(trades), len(entries))
        return ImportResult(
            SUCCESS,
            f"Successfully imported {len(trades)} trades and {len(entries)} journal entries.",
            trades_imported=len(trades),
            entries_imported=len(entries),
        )

    if name.endswith(".csv"):
        lines = text.splitlines()
        if lines and is_broker_history(lines[0]):
            parsed = parse_broker_history(lines)
            existing = storage.get_trades()
            new_trades = filter_new_trades(existing, parsed)
            duplicates = len(parsed) - len(new_trades)
            if not new_trades:
                return ImportResult(
                    SUCCESS, "No new trades found. All trades in the CSV already exist.", duplicates=duplicates
                )
            storage.save_trades(existing + new_trades)
            logger.info("Imported %d broker trades (%d duplicates skipped)", len(new_trades), duplicates)
            return ImportResult(
                SUCCESS,
                f"Successfully imported {len(new_trades)} new trades from broker history.",
                trades_imported=len(new_trades),
                duplicates=duplicates,
            )

        trades = parse_plain_csv(text)
        storage.save_trades(trades)
        logger.info("Imported %d trades from CSV", len(trades))
        return ImportResult(
            SUCCESS, f"Successfully imported {len(trades)} trades from CSV.", trades_imported=len(trades)
        )

    raise ImportFormatError("Unsupported file format. Please upload a JSON or CSV file.")


def safe_import(storage: JournalStorage, filename: str, text: str) -> ImportResult:
    """Like ``import_file`` but reports rejected files as an error result. Storage is untouched on error."""
    try:
        return import_file(storage, filename, text)
    except ImportFormatError as e:
        logger.warning("Import of %s rejected: %s", filename, e)
        return ImportResult(ERROR, str(e))

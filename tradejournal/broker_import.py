"""
broker_import.py
----------------

Rebuilds closed trades from a broker "account history" CSV export. The
export is an event log, newest first, with one row per balance change:

    Time,Balance Before,Balance After,Realized P&L (value),Currency,Action

The ``Action`` column is free text such as::

    Enter position for symbol FX:EURUSD at price 1.1000 for 100000 units, long position
    Close long position for symbol FX:EURUSD at price 1.1050 for 100000 units. Position AVG Price was 1.1050

Entries and closes are paired up by symbol, direction and unit count
rounded to the nearest thousand. A close with no exact partner is paired
with the pending entry of the same symbol and direction whose rounded
unit count is nearest. The realized P&L is taken from the export as-is.

Every stage is a separate function so it can be tested on its own.
Malformed rows are skipped; the importer never raises on bad data.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .models import Commodity, Equity, Forex, Instrument, Trade, new_id, to_float

logger = logging.getLogger(__name__)

REQUIRED_HEADERS = ("Time", "Action", "Realized P&L (value)")

SYMBOL_RE = re.compile(r"symbol ([A-Z:]+)")
PRICE_RE = re.compile(r"price ([\d.]+)")
UNITS_RE = re.compile(r"for ([\d.]+) units")
AVG_PRICE_RE = re.compile(r"AVG Price was ([\d.]+)")
VENUE_PREFIX_RE = re.compile(r"^(FX:|OANDA:|PEPPERSTONE:|SPREADEX:)")

FOREX_MARKERS = ("JPY", "USD", "EUR", "GBP")
INDEX_MARKERS = ("NAS", "SPX", "NIKKEI")

STANDARD_LOT = 100000

ENTRY = "entry"
CLOSE = "close"

MatchKey = Tuple[str, str, int]


@dataclass
class BrokerEvent:
    """One parsed row of the account history."""

    time: datetime
    pnl: float
    action: str
    symbol: str
    price: float
    units: float
    avg_price: Optional[float]
    kind: Optional[str]
    direction: str

    @property
    def effective_price(self) -> float:
        return self.avg_price or self.price

    @property
    def key(self) -> MatchKey:
        return match_key(self.symbol, self.direction, self.units)


# ---------- stages ----------
def is_broker_history(header_line: str) -> bool:
    """True when the header row has the Time, Action and Realized P&L columns."""
    headers = [h.strip() for h in header_line.split(",")]
    return all(h in headers for h in REQUIRED_HEADERS)


def split_csv_line(line: str) -> List[str]:
    """Split on commas outside double quotes. Quote characters are dropped."""
    values: List[str] = []
    current: List[str] = []
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    values.append("".join(current).strip())
    return values


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def match_key(symbol: str, direction: str, units: float) -> MatchKey:
    return (symbol, direction, round_half_up(units / 1000) * 1000)


def classify_action(action: str) -> Tuple[Optional[str], str]:
    """Return ``(kind, direction)``; kind is ENTRY, CLOSE or None."""
    if "Enter position" in action:
        kind: Optional[str] = ENTRY
    elif "Close long position" in action or "Close short position" in action:
        kind = CLOSE
    else:
        kind = None
    direction = "long" if "long position" in action else "short"
    return kind, direction


def is_commission_only(action: str) -> bool:
    return "Commission for:" in action and "Enter position" not in action and "Close" not in action


def normalize_symbol(raw: str) -> str:
    return VENUE_PREFIX_RE.sub("", raw)


def parse_time(value: str) -> Optional[datetime]:
    ts = pd.to_datetime(value, errors="coerce")
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()


def parse_event(fields: Sequence[str]) -> Optional[BrokerEvent]:
    """Build an event from the split fields of one row, or None if it is unusable."""
    if len(fields) < 6:
        return None

    action = fields[5] or ""
    if len(action) >= 2 and action.startswith('"') and action.endswith('"'):
        action = action[1:-1]

    if is_commission_only(action):
        logger.debug("Skipping commission row: %.80s", action)
        return None

    symbol_match = SYMBOL_RE.search(action)
    price_match = PRICE_RE.search(action)
    units_match = UNITS_RE.search(action)
    if not (symbol_match and price_match and units_match):
        logger.debug("Row has no symbol/price/units, skipping: %.80s", action)
        return None

    time = parse_time(fields[0])
    if time is None:
        logger.debug("Unparseable time %r, skipping", fields[0])
        return None

    avg_match = AVG_PRICE_RE.search(action)
    kind, direction = classify_action(action)
    return BrokerEvent(
        time=time,
        pnl=to_float(fields[3]),
        action=action,
        symbol=normalize_symbol(symbol_match.group(1)),
        price=to_float(price_match.group(1)),
        units=to_float(units_match.group(1)),
        avg_price=to_float(avg_match.group(1)) if avg_match else None,
        kind=kind,
        direction=direction,
    )


def find_matching_key(pending: Dict[MatchKey, BrokerEvent], key: MatchKey) -> Optional[MatchKey]:
    """Exact key first, else the same symbol/direction with the nearest rounded units.

    Ties go to the entry that was stored first.
    """
    if key in pending:
        return key
    symbol, direction, units = key
    best: Optional[MatchKey] = None
    smallest_diff = math.inf
    for candidate in pending:
        if candidate[0] == symbol and candidate[1] == direction:
            diff = abs(candidate[2] - units)
            if diff < smallest_diff:
                smallest_diff = diff
                best = candidate
    return best


def infer_instrument(symbol: str, units: float) -> Instrument:
    lots = round(abs(units) / STANDARD_LOT, 2)
    if any(m in symbol for m in FOREX_MARKERS):
        return Forex(lots=lots, lot_size=STANDARD_LOT)
    if any(m in symbol for m in INDEX_MARKERS):
        return Commodity(lots=lots)
    return Equity()


def build_trade(entry: BrokerEvent, close: BrokerEvent) -> Trade:
    """Closed trade from a matched entry/close pair. Commission is already in the reported P&L."""
    return Trade(
        id=new_id(),
        symbol=entry.symbol,
        direction=entry.direction,
        entry_price=entry.effective_price,
        exit_price=close.effective_price,
        entry_date=entry.time,
        exit_date=close.time,
        pnl=close.pnl,
        commission=0.0,
        is_open=False,
        notes="Auto-imported from broker history",
        tags=["imported", "broker-history"],
        setup="Imported",
        risk=0.0,
        reward=0.0,
        size=float(round_half_up(abs(close.units))),
        instrument=infer_instrument(close.symbol, close.units),
    )


# ---------- driver ----------
def parse_broker_history(lines: Sequence[str]) -> List[Trade]:
    """Turn the raw lines of an account history export (header first) into closed trades."""
    if not lines:
        return []

    logger.info("Processing broker history with %d lines", len(lines))
    pending: Dict[MatchKey, BrokerEvent] = {}
    trades: List[Trade] = []

    # file is newest first; walk it oldest first so entries precede their closes
    for line in reversed(lines[1:]):
        if not line.strip():
            continue
        event = parse_event(split_csv_line(line))
        if event is None:
            continue

        if event.kind == ENTRY:
            pending[event.key] = event
        elif event.kind == CLOSE:
            matched = find_matching_key(pending, event.key)
            if matched is None:
                logger.info("No matching entry for close %s", event.key)
                continue
            entry = pending.pop(matched)
            trades.append(build_trade(entry, event))
            logger.debug("Matched %s -> %s", matched, event.key)

    if pending:
        logger.info("Unmatched entries left: %s", list(pending))
    logger.info("Reconstructed %d trades from broker history", len(trades))
    return trades

"""
services.py
-----------

In-memory books over ``JournalStorage``. Each book loads its list once;
after that the in-memory copy is the source of truth and every mutation
writes the whole list back.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Any, List

from .calculations import calculate_pnl
from .errors import EntryNotFound, TradeNotFound
from .models import JournalEntry, Trade, new_id
from .storage import JournalStorage

logger = logging.getLogger(__name__)


class TradeBook:
    def __init__(self, storage: JournalStorage) -> None:
        self.storage = storage
        self._trades: List[Trade] = storage.get_trades()

    @property
    def trades(self) -> List[Trade]:
        return list(self._trades)

    def reload(self) -> None:
        self._trades = self.storage.get_trades()

    def _save(self) -> None:
        self.storage.save_trades(self._trades)

    def _index(self, trade_id: str) -> int:
        for i, t in enumerate(self._trades):
            if t.id == trade_id:
                return i
        raise TradeNotFound(trade_id)

    def get(self, trade_id: str) -> Trade:
        return self._trades[self._index(trade_id)]

    def add_trade(self, trade: Trade) -> Trade:
        """Store a new trade under a fresh id. P&L is computed unless the trade is open."""
        trade = dataclasses.replace(trade, id=new_id())
        if not trade.is_open and trade.exit_price is not None and trade.exit_date is None:
            trade.exit_date = datetime.now(timezone.utc)
        trade.pnl = None if trade.is_open else calculate_pnl(trade)
        self._trades.append(trade)
        self._save()
        logger.info("Added %s %s trade %s", trade.direction, trade.symbol, trade.id)
        return trade

    def update_trade(self, trade_id: str, **changes: Any) -> Trade:
        """Apply field changes; recompute P&L when the result is closed with an exit price.

        A trade that ends up closed without an exit date is stamped with the current time.
        """
        i = self._index(trade_id)
        changes.pop("id", None)
        updated = dataclasses.replace(self._trades[i], **changes)
        if not updated.is_open and updated.exit_price is not None and updated.exit_date is None:
            updated.exit_date = datetime.now(timezone.utc)
        if not updated.is_open and updated.exit_price:
            updated.pnl = calculate_pnl(updated)
        elif updated.is_open:
            updated.pnl = None
        self._trades[i] = updated
        self._save()
        return updated

    def close_trade(self, trade_id: str, exit_price: float, exit_date: datetime) -> Trade:
        return self.update_trade(trade_id, exit_price=exit_price, exit_date=exit_date, is_open=False)

    def delete_trade(self, trade_id: str) -> None:
        i = self._index(trade_id)
        del self._trades[i]
        self._save()
        logger.info("Deleted trade %s", trade_id)


class JournalBook:
    def __init__(self, storage: JournalStorage) -> None:
        self.storage = storage
        self._entries: List[JournalEntry] = storage.get_journal_entries()

    @property
    def entries(self) -> List[JournalEntry]:
        return list(self._entries)

    def _save(self) -> None:
        self.storage.save_journal_entries(self._entries)

    def _index(self, entry_id: str) -> int:
        for i, e in enumerate(self._entries):
            if e.id == entry_id:
                return i
        raise EntryNotFound(entry_id)

    def add_entry(self, entry: JournalEntry) -> JournalEntry:
        entry = dataclasses.replace(entry, id=new_id())
        self._entries.append(entry)
        self._save()
        return entry

    def update_entry(self, entry_id: str, **changes: Any) -> JournalEntry:
        i = self._index(entry_id)
        changes.pop("id", None)
        self._entries[i] = dataclasses.replace(self._entries[i], **changes)
        self._save()
        return self._entries[i]

    def delete_entry(self, entry_id: str) -> None:
        del self._entries[self._index(entry_id)]
        self._save()

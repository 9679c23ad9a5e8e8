"""
storage.py
----------

Persistence for the journal. Everything is kept as two JSON blobs in a
key-value store: the trade list and the journal entry list. The rest of
the package only talks to ``JournalStorage``, which works on top of any
``KeyValueStore``; swapping SQLite for the in-memory store (tests) or
something else needs no other change.

There is no versioning or locking: every save rewrites the whole list and
the last writer wins.
"""

from __future__ import annotations

import abc
import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .models import JournalEntry, Trade

logger = logging.getLogger(__name__)

TRADES_KEY = "trade-journal-trades"
JOURNAL_KEY = "trade-journal-entries"


class KeyValueStore(abc.ABC):
    """Minimal get/set interface over named string blobs."""

    @abc.abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abc.abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abc.abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abc.abstractmethod
    def keys(self) -> List[str]:
        ...


class InMemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return sorted(self._data)


class SQLiteStore(KeyValueStore):
    """SQLite-backed key-value table."""

    def __init__(self, db_path: str = "tradejournal.db") -> None:
        self.db_path = db_path
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._create_tables()

    # ---------- schema ----------
    def _create_tables(self) -> None:
        with self.conn:
            self.conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL -- ISO8601
                )
                """
            )

    # ---------- kv ----------
    def get(self, key: str) -> Optional[str]:
        row = self.conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self.conn:
            self.conn.execute(
                """
                INSERT INTO kv(key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value=excluded.value,
                    updated_at=excluded.updated_at
                """,
                (key, value, datetime.now(timezone.utc).isoformat()),
            )

    def delete(self, key: str) -> None:
        with self.conn:
            self.conn.execute("DELETE FROM kv WHERE key = ?", (key,))

    def keys(self) -> List[str]:
        cur = self.conn.execute("SELECT key FROM kv ORDER BY key")
        return [row[0] for row in cur.fetchall()]

    # ---------- housekeeping ----------
    def close(self) -> None:
        self.conn.close()


class JournalStorage:
    """Reads and writes the trade and journal lists through a ``KeyValueStore``."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def _load(self, key: str) -> List[Dict[str, Any]]:
        raw = self.store.get(key)
        if not raw:
            return []
        data = json.loads(raw)
        if not isinstance(data, list):
            logger.warning("Ignoring non-list blob under %s", key)
            return []
        return data

    def _dump(self, key: str, records: List[Dict[str, Any]]) -> None:
        self.store.set(key, json.dumps(records))

    # ---------- trades ----------
    def get_trades(self) -> List[Trade]:
        return [Trade.from_dict(d) for d in self._load(TRADES_KEY)]

    def save_trades(self, trades: List[Trade]) -> None:
        self._dump(TRADES_KEY, [t.to_dict() for t in trades])

    # ---------- journal ----------
    def get_journal_entries(self) -> List[JournalEntry]:
        return [JournalEntry.from_dict(d) for d in self._load(JOURNAL_KEY)]

    def save_journal_entries(self, entries: List[JournalEntry]) -> None:
        self._dump(JOURNAL_KEY, [e.to_dict() for e in entries])

    # ---------- backup ----------
    def export_data(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Full backup payload: ``{trades, journal, exportDate}``."""
        now = now or datetime.now(timezone.utc)
        return {
            "trades": [t.to_dict() for t in self.get_trades()],
            "journal": [e.to_dict() for e in self.get_journal_entries()],
            "exportDate": now.isoformat(),
        }

    def import_data(self, trades: List[Trade], entries: List[JournalEntry]) -> None:
        """Replace both lists."""
        self.save_trades(trades)
        self.save_journal_entries(entries)

    def clear(self) -> None:
        self.store.delete(TRADES_KEY)
        self.store.delete(JOURNAL_KEY)
        logger.info("Cleared all trades and journal entries")

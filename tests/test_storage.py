from __future__ import annotations

import json

import pytest

from tradejournal.models import JournalEntry
from tradejournal.storage import JOURNAL_KEY, TRADES_KEY, InMemoryStore, JournalStorage, SQLiteStore


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryStore()
    else:
        s = SQLiteStore(str(tmp_path / "journal.db"))
        yield s
        s.close()


def test_store_get_set_delete(store):
    assert store.get("missing") is None
    store.set("a", "1")
    store.set("a", "2")
    store.set("b", "3")
    assert store.get("a") == "2"
    assert store.keys() == ["a", "b"]
    store.delete("a")
    store.delete("never-there")
    assert store.get("a") is None
    assert store.keys() == ["b"]


def test_missing_blobs_read_as_empty(store):
    storage = JournalStorage(store)
    assert storage.get_trades() == []
    assert storage.get_journal_entries() == []


def test_trades_persist_as_json_array(store, trade_factory):
    storage = JournalStorage(store)
    trades = [trade_factory(pnl=12.5), trade_factory()]
    storage.save_trades(trades)

    raw = json.loads(store.get(TRADES_KEY))
    assert isinstance(raw, list)
    assert raw[0]["pnl"] == 12.5
    assert raw[0]["isOpen"] is False
    assert raw[1]["exitPrice"] is None
    assert JournalStorage(store).get_trades() == trades


def test_sqlite_survives_reopen(tmp_path, trade_factory):
    path = str(tmp_path / "journal.db")
    first = SQLiteStore(path)
    JournalStorage(first).save_trades([trade_factory(pnl=3)])
    first.close()

    second = SQLiteStore(path)
    assert len(JournalStorage(second).get_trades()) == 1
    second.close()


def test_clear_and_non_list_blob(store):
    storage = JournalStorage(store)
    storage.save_journal_entries([JournalEntry(id="j", date="2024-01-01", title="t")])
    store.set(TRADES_KEY, json.dumps({"not": "a list"}))
    assert storage.get_trades() == []

    storage.clear()
    assert store.get(TRADES_KEY) is None
    assert store.get(JOURNAL_KEY) is None

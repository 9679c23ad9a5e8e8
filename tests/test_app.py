from __future__ import annotations

import io

import pytest

from tradejournal.app import create_app
from tradejournal.config import Settings
from tradejournal.storage import InMemoryStore

BROKER_CSV = (
    "Time,Balance Before,Balance After,Realized P&L (value),Currency,Action\n"
    '2024-05-01 14:00:00,10000,10500,500,USD,"Close long position for symbol FX:EURUSD at price 1.1050 for 100000 units"\n'
    '2024-05-01 10:00:00,10000,10000,0,USD,"Enter position for symbol FX:EURUSD at price 1.1000 for 100000 units, long position"\n'
)


@pytest.fixture()
def client():
    app = create_app(Settings(secret_key="test"), store=InMemoryStore())
    app.config["TESTING"] = True
    return app.test_client()


def add(client, **overrides):
    body = {
        "symbol": "AAPL",
        "direction": "long",
        "entryPrice": 100,
        "size": 10,
        "entryDate": "2024-03-04T09:30:00",
        "instrumentType": "stock",
        "commission": 5,
    }
    body.update(overrides)
    return client.post("/api/trades", json=body)


def test_add_close_and_metrics(client):
    res = add(client)
    assert res.status_code == 201
    trade = res.get_json()
    assert trade["isOpen"] is True
    assert trade["pnl"] is None

    res = client.post(f"/api/trades/{trade['id']}/close", json={"exitPrice": 110, "exitDate": "2024-03-04T15:00:00"})
    assert res.status_code == 200
    assert res.get_json()["pnl"] == pytest.approx(95)

    metrics = client.get("/api/metrics").get_json()
    assert metrics["totalTrades"] == 1
    assert metrics["totalPnL"] == pytest.approx(95)

    curve = client.get("/api/equity-curve").get_json()
    assert curve == [{"date": "2024-03-04", "pnl": pytest.approx(95), "trade": "AAPL"}]


def test_patch_and_delete_trade(client):
    trade = add(client, exitPrice=90, exitDate="2024-03-05T10:00:00", isOpen=False).get_json()
    assert trade["pnl"] == pytest.approx(-105)

    res = client.patch(f"/api/trades/{trade['id']}", json={"direction": "short", "notes": "flipped"})
    assert res.status_code == 200
    assert res.get_json()["pnl"] == pytest.approx(95)
    assert res.get_json()["notes"] == "flipped"

    assert client.delete(f"/api/trades/{trade['id']}").status_code == 204
    assert client.get("/api/trades").get_json() == []
    assert client.delete(f"/api/trades/{trade['id']}").status_code == 404


def test_patch_closing_with_string_flag_sets_exit_date(client):
    trade = add(client).get_json()
    res = client.patch(f"/api/trades/{trade['id']}", json={"isOpen": "false", "exitPrice": 110})
    assert res.status_code == 200
    body = res.get_json()
    assert body["isOpen"] is False
    assert body["exitDate"]
    assert body["pnl"] == pytest.approx(95)


def test_bad_trade_payloads(client):
    assert client.post("/api/trades", json={"entryPrice": 1}).status_code == 400
    assert add(client, entryPrice="abc").status_code == 400
    assert client.post("/api/trades", data="nope").status_code == 400
    trade = add(client).get_json()
    assert client.post(f"/api/trades/{trade['id']}/close", json={}).status_code == 400


def test_journal_endpoints(client):
    res = client.post("/api/journal", json={"date": "2024-03-04", "title": "Focus", "mood": "excellent"})
    assert res.status_code == 201
    entry = res.get_json()

    res = client.patch(f"/api/journal/{entry['id']}", json={"mood": "bad"})
    assert res.get_json()["mood"] == "bad"
    assert client.patch("/api/journal/missing", json={}).status_code == 404
    assert client.post("/api/journal", json={"date": "2024-03-04"}).status_code == 400

    assert client.delete(f"/api/journal/{entry['id']}").status_code == 204
    assert client.get("/api/journal").get_json() == []


def test_calendar_and_analytics(client):
    add(client, exitPrice=110, exitDate="2024-03-04T15:00:00", isOpen=False)
    cal = client.get("/api/calendar?year=2024&month=3").get_json()
    assert cal["stats"]["totalTrades"] == 1
    assert len(cal["days"]) == 42
    assert len(cal["weeks"]) == 6
    assert client.get("/api/calendar?year=2024&month=13").status_code == 400
    assert client.get("/api/calendar?year=x").status_code == 400

    analytics = client.get("/api/analytics").get_json()
    assert analytics["winLoss"] == {"wins": 1, "losses": 0}


def test_export_import_cycle(client):
    add(client, notes='gap, "fade"', tags=["gap"])
    backup = client.get("/export/json")
    assert backup.mimetype == "application/json"
    assert "trading-journal-backup-" in backup.headers["Content-Disposition"]

    csv_export = client.get("/export/csv")
    assert csv_export.data.decode().startswith("Date,Symbol,Direction")

    client.post("/clear")
    assert client.get("/api/trades").get_json() == []

    res = client.post("/import", data={"file": (io.BytesIO(backup.data), "backup.json")}, content_type="multipart/form-data")
    assert res.status_code == 200
    [trade] = client.get("/api/trades").get_json()
    assert trade["notes"] == 'gap, "fade"'


def test_import_broker_csv_and_errors(client):
    res = client.post("/import", data={"file": (io.BytesIO(BROKER_CSV.encode()), "history.csv")}, content_type="multipart/form-data")
    assert res.get_json()["tradesImported"] == 1

    res = client.post("/import", data={"file": (io.BytesIO(b"{}"), "notes.txt")}, content_type="multipart/form-data")
    assert res.status_code == 400
    assert res.get_json()["status"] == "error"

    assert client.post("/import", data={}, content_type="multipart/form-data").status_code == 400


def test_import_broker_csv_with_byte_order_mark_keeps_existing_trades(client):
    add(client)
    payload = b"\xef\xbb\xbf" + BROKER_CSV.encode()
    res = client.post("/import", data={"file": (io.BytesIO(payload), "history.csv")}, content_type="multipart/form-data")
    assert res.status_code == 200
    assert res.get_json()["tradesImported"] == 1

    trades = client.get("/api/trades").get_json()
    assert [t["symbol"] for t in trades] == ["AAPL", "EURUSD"]
    assert trades[1]["pnl"] == pytest.approx(500)

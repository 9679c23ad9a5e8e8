"""
app.py
------

Flask application serving the journal data to the dashboard front end.
Trades and journal entries can be listed, added, edited, closed and
deleted; metrics, the equity curve and calendar/chart series are computed
on every request from the stored trades; data can be exported as JSON or
CSV and imported back.

To run the application:
    1. Install the package (``pip install -e .``).
    2. Execute ``python -m tradejournal.app``.
    3. The API listens on http://localhost:5004 by default (see config.py).

Note: The Flask development server is intended for local use. For
production deployments consider using a production WSGI server
such as Gunicorn.
"""
import dataclasses
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import Flask, Response, jsonify, request

from .analytics import (
    calculate_metrics,
    calendar_month,
    generate_equity_curve,
    monthly_stats,
    summarize,
    weekly_totals,
)
from .config import Settings, setup_logging
from .errors import EntryNotFound, TradeJournalError, TradeNotFound
from .models import JournalEntry, Trade, parse_dt, to_optional_float
from .services import JournalBook, TradeBook
from .storage import JournalStorage, KeyValueStore, SQLiteStore
from .transfer import dump_json, export_csv, safe_import

logger = logging.getLogger(__name__)


class InvalidPayload(TradeJournalError):
    pass


def _json_body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidPayload("Expected a JSON object body")
    return body


def _trade_from_body(body: Dict[str, Any]) -> Trade:
    if not str(body.get("symbol") or "").strip():
        raise InvalidPayload("symbol is required")
    if to_optional_float(body.get("entryPrice")) is None:
        raise InvalidPayload("entryPrice must be a number")
    return Trade.from_dict(body)


def _field_changes(record: Any, exclude: str = "id") -> Dict[str, Any]:
    return {f.name: getattr(record, f.name) for f in dataclasses.fields(record) if f.name != exclude}


def create_app(settings: Optional[Settings] = None, store: Optional[KeyValueStore] = None) -> Flask:
    settings = settings or Settings.from_env()
    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.secret_key
    storage = JournalStorage(store if store is not None else SQLiteStore(settings.db_path))
    app.extensions["journal_storage"] = storage

    # ---------- errors ----------
    @app.errorhandler(InvalidPayload)
    def bad_request(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(TradeNotFound)
    @app.errorhandler(EntryNotFound)
    def not_found(e):
        return jsonify({"error": str(e)}), 404

    # ---------- trades ----------
    @app.route("/api/trades", methods=["GET"])
    def list_trades():
        return jsonify([t.to_dict() for t in storage.get_trades()])

    @app.route("/api/trades", methods=["POST"])
    def add_trade():
        trade = TradeBook(storage).add_trade(_trade_from_body(_json_body()))
        return jsonify(trade.to_dict()), 201

    @app.route("/api/trades/<trade_id>", methods=["PATCH"])
    def update_trade(trade_id: str):
        book = TradeBook(storage)
        merged = {**book.get(trade_id).to_dict(), **_json_body()}
        updated = book.update_trade(trade_id, **_field_changes(_trade_from_body(merged)))
        return jsonify(updated.to_dict())

    @app.route("/api/trades/<trade_id>/close", methods=["POST"])
    def close_trade(trade_id: str):
        body = _json_body()
        exit_price = to_optional_float(body.get("exitPrice"))
        if exit_price is None:
            raise InvalidPayload("exitPrice must be a number")
        exit_date = parse_dt(body.get("exitDate")) or datetime.now(timezone.utc)
        trade = TradeBook(storage).close_trade(trade_id, exit_price, exit_date)
        return jsonify(trade.to_dict())

    @app.route("/api/trades/<trade_id>", methods=["DELETE"])
    def delete_trade(trade_id: str):
        TradeBook(storage).delete_trade(trade_id)
        return "", 204

    # ---------- journal ----------
    @app.route("/api/journal", methods=["GET"])
    def list_entries():
        return jsonify([e.to_dict() for e in storage.get_journal_entries()])

    @app.route("/api/journal", methods=["POST"])
    def add_entry():
        body = _json_body()
        if not str(body.get("title") or "").strip():
            raise InvalidPayload("title is required")
        entry = JournalBook(storage).add_entry(JournalEntry.from_dict(body))
        return jsonify(entry.to_dict()), 201

    @app.route("/api/journal/<entry_id>", methods=["PATCH"])
    def update_entry(entry_id: str):
        book = JournalBook(storage)
        current = next((e for e in book.entries if e.id == entry_id), None)
        if current is None:
            raise EntryNotFound(entry_id)
        merged = JournalEntry.from_dict({**current.to_dict(), **_json_body()})
        return jsonify(book.update_entry(entry_id, **_field_changes(merged)).to_dict())

    @app.route("/api/journal/<entry_id>", methods=["DELETE"])
    def delete_entry(entry_id: str):
        JournalBook(storage).delete_entry(entry_id)
        return "", 204

    # ---------- analytics ----------
    @app.route("/api/metrics")
    def metrics():
        return jsonify(calculate_metrics(storage.get_trades()).to_dict())

    @app.route("/api/equity-curve")
    def equity_curve():
        return jsonify([p.to_dict() for p in generate_equity_curve(storage.get_trades())])

    @app.route("/api/calendar")
    def trading_calendar():
        now = datetime.now()
        try:
            year = int(request.args.get("year", now.year))
            month = int(request.args.get("month", now.month))
        except ValueError:
            raise InvalidPayload("year and month must be integers")
        if not 1 <= month <= 12:
            raise InvalidPayload("month must be between 1 and 12")

        days = calendar_month(storage.get_trades(), year, month)
        return jsonify(
            {
                "days": [d.to_dict() for d in days],
                "weeks": [w.to_dict() for w in weekly_totals(days)],
                "stats": monthly_stats(days).to_dict(),
            }
        )

    @app.route("/api/analytics")
    def analytics():
        return jsonify(summarize(storage.get_trades()))

    # ---------- export / import ----------
    @app.route("/export/json", methods=["GET"])
    def export_backup():
        data = storage.export_data()
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        return Response(
            dump_json(data),
            mimetype="application/json",
            headers={"Content-Disposition": f"attachment; filename=trading-journal-backup-{stamp}.json"},
        )

    @app.route("/export/csv", methods=["GET"])
    def export_trades():
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        return Response(
            export_csv(storage.get_trades()),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename=trading-journal-{stamp}.csv"},
        )

    @app.route("/import", methods=["POST"])
    def import_data():
        f = request.files.get("file")
        if not f or f.filename == "":
            return jsonify({"status": "error", "message": "Please choose a JSON or CSV file."}), 400

        content = f.read().decode("utf-8-sig", errors="ignore")
        result = safe_import(storage, f.filename, content)
        logger.info("Import of %s finished with status %s", f.filename, result.status)
        return jsonify(result.to_dict()), (200 if result.ok else 400)

    @app.route("/clear", methods=["POST"])
    def clear_all():
        storage.clear()
        return jsonify({"status": "success", "message": "All data has been cleared."})

    return app


# Run directly
if __name__ == "__main__":
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    app = create_app(settings)
    app.run(host=settings.host, port=settings.port, debug=True, use_reloader=False)

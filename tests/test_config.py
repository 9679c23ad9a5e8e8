from __future__ import annotations

import logging

from tradejournal.config import Settings, setup_logging


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("TJ_DB", "/tmp/other.db")
    monkeypatch.setenv("TJ_PORT", "8000")
    monkeypatch.setenv("TJ_LOG_LEVEL", "debug")
    monkeypatch.delenv("SECRET_KEY", raising=False)
    settings = Settings.from_env()
    assert settings.db_path == "/tmp/other.db"
    assert settings.port == 8000
    assert settings.log_level == "DEBUG"
    assert settings.secret_key == "dev-secret"


def test_setup_logging_sets_level():
    root = logging.getLogger()
    saved = root.handlers[:], root.level
    try:
        setup_logging("warning")
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
    finally:
        root.handlers, root.level = saved[0], saved[1]

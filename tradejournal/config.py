"""
config.py
---------

Runtime settings, read from environment variables, plus logging setup.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass


@dataclass
class Settings:
    secret_key: str = "dev-secret"
    db_path: str = "tradejournal.db"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 5004

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            secret_key=os.getenv("SECRET_KEY", "dev-secret"),
            db_path=os.getenv("TJ_DB", "tradejournal.db"),
            log_level=os.getenv("TJ_LOG_LEVEL", "INFO").upper(),
            host=os.getenv("TJ_HOST", "0.0.0.0"),
            port=int(os.getenv("TJ_PORT", "5004")),
        )


def setup_logging(level: str = "INFO") -> None:
    """Send log records to stdout with timestamps."""
    root_logger = logging.getLogger()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    logging.getLogger("werkzeug").setLevel(logging.WARNING)

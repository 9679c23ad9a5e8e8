from __future__ import annotations

from datetime import datetime, timedelta
from itertools import count

import pytest

from tradejournal.models import Equity, Trade
from tradejournal.storage import InMemoryStore, JournalStorage

_ids = count(1)
BASE_TIME = datetime(2024, 3, 4, 9, 30)


def make_trade(
    pnl=None,
    symbol="AAPL",
    direction="long",
    entry_price=100.0,
    exit_price=None,
    size=10.0,
    exit_offset_days=0,
    is_open=None,
    instrument=None,
    **kwargs,
) -> Trade:
    """Build a trade; passing ``pnl`` makes it closed."""
    closed = pnl is not None or exit_price is not None
    if is_open is None:
        is_open = not closed
    if closed and exit_price is None:
        exit_price = entry_price + pnl / size
    return Trade(
        id=f"t{next(_ids)}",
        symbol=symbol,
        direction=direction,
        entry_price=entry_price,
        size=size,
        entry_date=BASE_TIME,
        instrument=instrument or Equity(),
        exit_price=exit_price,
        exit_date=BASE_TIME + timedelta(days=exit_offset_days, hours=6) if closed else None,
        is_open=is_open,
        pnl=pnl,
        **kwargs,
    )


@pytest.fixture()
def trade_factory():
    return make_trade


@pytest.fixture()
def storage() -> JournalStorage:
    return JournalStorage(InMemoryStore())
